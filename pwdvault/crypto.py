"""
PwdVault - Cryptography Module

All cryptographic operations for the credential store live in this file.

Security Architecture:
    1. Master Password + record name → PBKDF2-HMAC-SHA256 → Record Key (32 bytes)
    2. Record Key → AES-256-GCM → one ciphertext per field
    3. Stored form of a field: hex(nonce ‖ ciphertext ‖ tag)
    4. Master Password → SHA-256 → Verifier (never encrypted, only compared)

Why this works:
    - Every record gets its own key (the record name is the KDF salt)
    - Every encryption gets a fresh random nonce, so reusing a record key
      for the lifetime of the record is safe
    - AES-GCM authenticates every field: a wrong key or a flipped bit is
      rejected, never decrypted to garbage
"""

import os
import hmac
import string
import secrets
import hashlib
import logging
from dataclasses import dataclass
from typing import Tuple, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import AuthenticationFailure, DecodeError, EncodingError

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

KEY_SIZE = 32            # 256-bit key
NONCE_SIZE = 12          # 96-bit nonce for AES-GCM
TAG_SIZE = 16            # 128-bit authentication tag

# PBKDF2 iteration count. Changing this makes every stored field unreadable.
KDF_ITERATIONS = 4096

SYMBOLS = "!@#$%^&*()_+-="


def _to_bytes(value: Union[str, bytes]) -> bytes:
    if isinstance(value, bytes):
        return value
    return value.encode('utf-8')


# =============================================================================
# Key Derivation
# =============================================================================

def derive_key(master_password: str, salt: Union[str, bytes]) -> bytes:
    """
    Derive a record key from the master password using PBKDF2-HMAC-SHA256.

    The salt is the record name, so two records never share a key even
    though both are rooted in the same master password.

    Args:
        master_password: Master password (user's secret)
        salt: Record name (or raw bytes)

    Returns:
        32-byte key
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE,
        salt=_to_bytes(salt),
        iterations=KDF_ITERATIONS,
    )
    return kdf.derive(_to_bytes(master_password))


def hash_secret(data: Union[str, bytes]) -> bytes:
    """
    Plain SHA-256 digest.

    Only used for the master password and recovery phrase verifiers,
    never for encryption keys.
    """
    return hashlib.sha256(_to_bytes(data)).digest()


def hash_hex(data: Union[str, bytes]) -> str:
    """Hex form of hash_secret(), as stored in the verifier row."""
    return hash_secret(data).hex()


# =============================================================================
# Encryption (AES-256-GCM)
# =============================================================================

def encrypt(key: bytes, plaintext: str) -> Tuple[bytes, bytes]:
    """
    Encrypt one field with AES-256-GCM.

    Args:
        key: 32-byte record key
        plaintext: Field value

    Returns:
        (nonce, ciphertext) tuple
        - nonce: 12 random bytes, fresh for every call
        - ciphertext: encrypted data + 16-byte tag
    """
    return _seal(AESGCM(key), plaintext)


def decrypt(key: bytes, nonce: bytes, ciphertext: bytes) -> str:
    """
    Decrypt one field. Fails closed: no partial or garbage plaintext.

    Raises:
        DecodeError: nonce has the wrong size or ciphertext is shorter than the tag
        AuthenticationFailure: wrong key or tampered data
        EncodingError: authenticated plaintext is not UTF-8
    """
    return _open(AESGCM(key), nonce, ciphertext)


def _seal(aesgcm: AESGCM, plaintext: str) -> Tuple[bytes, bytes]:
    nonce = os.urandom(NONCE_SIZE)
    return nonce, aesgcm.encrypt(nonce, _to_bytes(plaintext), None)


def _open(aesgcm: AESGCM, nonce: bytes, ciphertext: bytes) -> str:
    if len(nonce) != NONCE_SIZE:
        raise DecodeError(f"nonce must be {NONCE_SIZE} bytes, got {len(nonce)}")
    if len(ciphertext) < TAG_SIZE:
        raise DecodeError("ciphertext is shorter than the authentication tag")

    try:
        plaintext = aesgcm.decrypt(nonce, ciphertext, None)
    except InvalidTag:
        raise AuthenticationFailure("authentication tag mismatch") from None

    try:
        return plaintext.decode('utf-8')
    except UnicodeDecodeError as e:
        raise EncodingError("decrypted data is not valid UTF-8") from e


# =============================================================================
# Stored Field Format
# =============================================================================

@dataclass(frozen=True)
class EncryptedField:
    """One encrypted field: nonce plus ciphertext-with-tag."""

    nonce: bytes
    ciphertext: bytes

    def encode(self) -> str:
        """hex(nonce ‖ ciphertext ‖ tag) - the only form written to disk."""
        return (self.nonce + self.ciphertext).hex()

    @classmethod
    def decode(cls, encoded: str) -> "EncryptedField":
        """
        Parse a stored field.

        Raises:
            DecodeError: not hex, or too short to contain nonce and tag
        """
        if not isinstance(encoded, str) or not all(c in string.hexdigits for c in encoded):
            raise DecodeError("field is not valid hex")
        try:
            raw = bytes.fromhex(encoded)
        except (TypeError, ValueError) as e:
            raise DecodeError(f"field is not valid hex: {e}") from e

        if len(raw) < NONCE_SIZE + TAG_SIZE:
            raise DecodeError("field is too short to hold a nonce and a tag")
        return cls(nonce=raw[:NONCE_SIZE], ciphertext=raw[NONCE_SIZE:])


class FieldCipher:
    """
    AES-GCM context for one record.

    A record may have up to four fields; building the context once avoids
    running the KDF once per field.

    Usage:
        cipher = FieldCipher.for_record("hunter2", "github")
        stored = cipher.seal("a@b.com").encode()
        value = cipher.open(EncryptedField.decode(stored))
    """

    def __init__(self, key: bytes):
        if len(key) != KEY_SIZE:
            raise ValueError(f"key must be {KEY_SIZE} bytes")
        self._aesgcm = AESGCM(key)

    @classmethod
    def for_record(cls, master_password: str, name: str) -> "FieldCipher":
        logger.debug("Deriving key for record %r", name)
        return cls(derive_key(master_password, name))

    def seal(self, plaintext: str) -> EncryptedField:
        return EncryptedField(*_seal(self._aesgcm, plaintext))

    def open(self, field: EncryptedField) -> str:
        return _open(self._aesgcm, field.nonce, field.ciphertext)


# =============================================================================
# Password Generation
# =============================================================================

def generate_password(length: int = 12, use_symbols: bool = True) -> str:
    """
    Generate a random password.

    Character sets:
    - Letters: A-Z, a-z (52)
    - Digits: 0-9 (10)
    - Symbols: !@#$%^&*()_+-= (optional, 14)

    Args:
        length: Password length (default 12)
        use_symbols: Include symbols?

    Returns:
        Random password string
    """
    if length < 1:
        raise ValueError("Password length must be at least 1")

    chars = string.ascii_letters + string.digits
    if use_symbols:
        chars += SYMBOLS

    return ''.join(secrets.choice(chars) for _ in range(length))


# =============================================================================
# Helpers
# =============================================================================

def constant_compare(a: Union[str, bytes], b: Union[str, bytes]) -> bool:
    """
    Compare two secrets without leaking where they differ.

    Uses built-in hmac.compare_digest (constant-time).
    """
    return hmac.compare_digest(_to_bytes(a), _to_bytes(b))
