"""
PwdVault - Local Encrypted Credential Store

A single-user password store where every field of every record is
encrypted on its own.

Key Features:
- Field-level encryption: AES-256-GCM, fresh nonce per write
- Per-record keys: PBKDF2-HMAC-SHA256(master password, record name)
- Master password verified by hash, never stored reversibly
- Recovery phrase to reset a forgotten master password

Components:
- crypto.py: Key derivation, field encryption, password generation
- vault.py: SQLite credential store (upsert/read/rename/delete)
- master.py: Master password bootstrap, login and reset
- errors.py: Error types
- config.py: Paths, defaults and logging setup
- cli.py: Command-line interface (uses built-in argparse)

Usage:
    pwdvault init                      # Set master password
    pwdvault add github --generate     # Add record with generated password
    pwdvault list                      # List record names
    pwdvault get github                # Show a record
    pwdvault delete github             # Delete a record
    pwdvault --interactive             # Menu
"""

from .errors import (
    VaultError,
    DecodeError,
    AuthenticationFailure,
    EncodingError,
    StorageError,
    RecordNotFound,
    ReservedNameError,
    PasswordMismatch,
    AlreadyRegistered,
    NotRegistered,
)
from .vault import Vault, Field, CredentialRecord, SENTINEL_NAME
from .master import MasterAuthenticator, MasterState

__version__ = "0.1.0"
