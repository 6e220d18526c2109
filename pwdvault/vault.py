"""
PwdVault - Vault Module (Credential Store)

This file handles:
- SQLite database (stores encrypted fields)
- Upserting, reading, renaming and deleting records
- Raw row access for the master verifier

Database structure:
- credentials: one row per record, one nullable TEXT column per field.
  Each non-NULL field is hex(nonce ‖ ciphertext ‖ tag), encrypted under
  derive_key(master_password, name).

The master verifier is stored in the same table under the reserved name
SENTINEL_NAME; see master.py.
"""

import sqlite3
import logging
from enum import Enum
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from .crypto import EncryptedField, FieldCipher
from .errors import ReservedNameError, StorageError

logger = logging.getLogger(__name__)


# =============================================================================
# DATABASE SCHEMA
# =============================================================================

SCHEMA = """
CREATE TABLE IF NOT EXISTS credentials (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    email TEXT,                     -- hex(nonce || ciphertext || tag) or NULL
    username TEXT,
    secret TEXT,
    notes TEXT
);
"""

PRAGMAS = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=FULL;
PRAGMA secure_delete=ON;
"""

# Reserved record name holding the master verifier. Starts with a dot so it
# never looks like a service name a user would pick.
SENTINEL_NAME = ".master"


class Field(Enum):
    """The closed set of encrypted fields. Values are the column names."""

    EMAIL = "email"
    USERNAME = "username"
    SECRET = "secret"
    NOTES = "notes"

    @classmethod
    def coerce(cls, value: Union["Field", str]) -> "Field":
        """Accept a Field or one of the column names; reject anything else."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(
                f"Unknown field {value!r} (expected one of: "
                f"{', '.join(f.value for f in cls)})"
            ) from None


# Column names only ever come from Field, never from caller input.
_UPSERT_SQL = {
    field: (
        f"INSERT INTO credentials (name, {field.value}) VALUES (?, ?) "
        f"ON CONFLICT(name) DO UPDATE SET {field.value} = excluded.{field.value}"
    )
    for field in Field
}

_COLUMNS = ", ".join(f.value for f in Field)


@dataclass
class CredentialRecord:
    """A decrypted record. Absent fields are None."""

    id: int
    name: str
    email: Optional[str] = None
    username: Optional[str] = None
    secret: Optional[str] = None
    notes: Optional[str] = None

    def get(self, field: Field) -> Optional[str]:
        return getattr(self, field.value)


# =============================================================================
# VAULT CLASS
# =============================================================================

class Vault:
    """
    Credential store backed by one SQLite connection.

    Usage:
        with Vault("vault.db") as vault:
            vault.upsert_field("github", Field.EMAIL, "a@b.com", master)
            record = vault.get_record("github", master)
            vault.delete_record("github")

    Pass ":memory:" for a throwaway in-memory store.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self.conn: Optional[sqlite3.Connection] = None

    def open(self) -> "Vault":
        """Connect, apply PRAGMAs and create the table if needed."""
        if self.conn is not None:
            return self
        try:
            self.conn = sqlite3.connect(self.db_path)
            self.conn.row_factory = sqlite3.Row
            self.conn.executescript(PRAGMAS)
            self.conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            self.close()
            raise StorageError(f"Cannot open vault at {self.db_path}: {e}") from e
        logger.debug("Opened vault %s", self.db_path)
        return self

    def close(self) -> None:
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self) -> "Vault":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # =========================================================================
    # RECORD OPERATIONS
    # =========================================================================

    def exists(self, name: str) -> bool:
        """Check whether a record exists. No key derivation."""
        _check_name(name)
        return self.read_raw(name) is not None

    def upsert_field(
        self,
        name: str,
        field: Union[Field, str],
        plaintext: str,
        master_password: str
    ) -> int:
        """
        Encrypt one field and store it, creating the record if absent.

        The record key is derived with the record name as salt. Only the
        given field is touched; other fields keep their stored values.

        Args:
            name: Record name (unique key)
            field: Which field to write
            plaintext: Field value
            master_password: Live master password

        Returns:
            Number of rows affected (1)
        """
        _check_name(name)
        field = Field.coerce(field)
        _check_plaintext(plaintext)
        cipher = FieldCipher.for_record(master_password, name)
        return self._upsert_sealed(name, field, cipher, plaintext)

    def put_record(
        self,
        name: str,
        master_password: str,
        email: Optional[str] = None,
        username: Optional[str] = None,
        secret: Optional[str] = None,
        notes: Optional[str] = None
    ) -> int:
        """
        Write several fields of one record. Empty values are skipped.

        The record key is derived once and shared by all fields.

        NOT atomic: every field is its own commit, so an error on a later
        field leaves the earlier ones written.

        Returns:
            Number of fields written
        """
        _check_name(name)
        values = {
            Field.EMAIL: email,
            Field.USERNAME: username,
            Field.SECRET: secret,
            Field.NOTES: notes,
        }
        pending = [(field, value) for field, value in values.items()
                   if value is not None and value != ""]
        if not pending:
            return 0

        cipher = FieldCipher.for_record(master_password, name)
        written = 0
        for field, value in pending:
            _check_plaintext(value)
            self._upsert_sealed(name, field, cipher, value)
            written += 1
        return written

    def get_record(self, name: str, master_password: str) -> Optional[CredentialRecord]:
        """
        Read and decrypt a record.

        Returns:
            CredentialRecord, or None if no record has that name

        Raises:
            DecodeError, AuthenticationFailure, EncodingError: if ANY field
            fails. Nothing is returned for the other fields.
        """
        _check_name(name)
        row = self._fetch_row(name)
        if row is None:
            return None

        cipher = FieldCipher.for_record(master_password, name)
        values = {}
        try:
            for field in Field:
                stored = row[field.value]
                values[field.value] = None if stored is None else cipher.open(EncryptedField.decode(stored))
        except Exception:
            logger.warning("Failed to decrypt record %r", name)
            raise

        return CredentialRecord(id=row['id'], name=row['name'], **values)

    def delete_record(self, name: str) -> bool:
        """
        Permanently delete a record. There is no undo.

        Returns:
            True if a row was removed, False if nothing had that name
        """
        _check_name(name)
        deleted = self._write("DELETE FROM credentials WHERE name = ?", (name,)) > 0
        if deleted:
            logger.info("Deleted record %r", name)
        return deleted

    def rename_record(self, old_name: str, new_name: str, master_password: str) -> bool:
        """
        Rename a record, re-encrypting every field under the new name.

        The record name is the KDF salt, so the old ciphertext cannot be
        kept. Name and fields change in one UPDATE statement.

        Returns:
            False if old_name does not exist

        Raises:
            StorageError: new_name is already taken
        """
        _check_name(old_name)
        _check_name(new_name)
        record = self.get_record(old_name, master_password)
        if record is None:
            return False

        new_cipher = FieldCipher.for_record(master_password, new_name)
        encoded = []
        for field in Field:
            value = record.get(field)
            encoded.append(None if value is None else new_cipher.seal(value).encode())

        assignments = ", ".join(f"{f.value} = ?" for f in Field)
        self._write(
            f"UPDATE credentials SET name = ?, {assignments} WHERE name = ?",
            (new_name, *encoded, old_name)
        )
        logger.info("Renamed record %r to %r", old_name, new_name)
        return True

    def list_names(self) -> List[str]:
        """All record names (sorted), without decrypting anything."""
        rows = self._query(
            "SELECT name FROM credentials WHERE name != ? ORDER BY name",
            (SENTINEL_NAME,)
        )
        return [row['name'] for row in rows]

    def count(self) -> int:
        """Number of user records (verifier row excluded)."""
        rows = self._query(
            "SELECT COUNT(*) AS n FROM credentials WHERE name != ?",
            (SENTINEL_NAME,)
        )
        return rows[0]['n']

    # =========================================================================
    # RAW ROW ACCESS (master verifier)
    # =========================================================================

    def read_raw(self, name: str) -> Optional[Dict[Field, Optional[str]]]:
        """Stored column values of a row, undecrypted. None if absent."""
        row = self._fetch_row(name)
        if row is None:
            return None
        return {field: row[field.value] for field in Field}

    def write_raw(self, name: str, values: Dict[Field, str]) -> int:
        """
        Upsert stored column values as-is, without encryption.

        Only meant for the verifier row, whose columns hold hashes.
        """
        if not values:
            raise ValueError("Nothing to write")
        fields = [Field.coerce(f) for f in values]
        columns = ", ".join(f.value for f in fields)
        placeholders = ", ".join("?" for _ in fields)
        updates = ", ".join(f"{f.value} = excluded.{f.value}" for f in fields)
        return self._write(
            f"INSERT INTO credentials (name, {columns}) VALUES (?, {placeholders}) "
            f"ON CONFLICT(name) DO UPDATE SET {updates}",
            (name, *values.values())
        )

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    def _upsert_sealed(self, name: str, field: Field, cipher: FieldCipher, plaintext: str) -> int:
        """Encrypt with an existing record cipher and commit one field."""
        encoded = cipher.seal(plaintext).encode()
        affected = self._write(_UPSERT_SQL[field], (name, encoded))
        logger.info("Updated %s for record %r", field.value, name)
        return affected

    def _require_open(self) -> sqlite3.Connection:
        if self.conn is None:
            raise StorageError("Vault is not open. Call open() first.")
        return self.conn

    def _fetch_row(self, name: str) -> Optional[sqlite3.Row]:
        rows = self._query(
            f"SELECT id, name, {_COLUMNS} FROM credentials WHERE name = ?",
            (name,)
        )
        return rows[0] if rows else None

    def _query(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        conn = self._require_open()
        try:
            return conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e

    def _write(self, sql: str, params: tuple = ()) -> int:
        """Run one statement and commit it. Returns rows affected."""
        conn = self._require_open()
        try:
            cursor = conn.execute(sql, params)
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageError(str(e)) from e
        return cursor.rowcount


def _check_name(name: str) -> None:
    if not isinstance(name, str) or not name.strip():
        raise ValueError("Record name is required")
    if name == SENTINEL_NAME:
        raise ReservedNameError(f"{SENTINEL_NAME!r} is reserved for the master password")


def _check_plaintext(plaintext) -> None:
    if not isinstance(plaintext, str):
        raise TypeError(f"Field value must be a string, not {type(plaintext).__name__}")
