"""
PwdVault - Error Types

Every failure the core can raise derives from VaultError, so the frontend
can catch one base class and still tell the kinds apart.

Absence of a record is NOT an error: Vault.get_record() returns None.
RecordNotFound exists only for frontend operations that need a record.
"""


class VaultError(Exception):
    """Base class for all password vault errors."""


# =============================================================================
# Field decoding / decryption
# =============================================================================

class DecodeError(VaultError):
    """Stored field is not valid hex, or too short to hold nonce + tag."""


class AuthenticationFailure(VaultError):
    """
    AES-GCM tag check failed, or a verifier hash did not match.

    A wrong master password and tampered ciphertext look identical here.
    """


class EncodingError(VaultError):
    """Decrypted bytes authenticated fine but are not valid UTF-8."""


# =============================================================================
# Storage
# =============================================================================

class StorageError(VaultError):
    """SQLite failure (constraint violation, I/O error, closed connection)."""


class RecordNotFound(VaultError):
    """No record exists with the requested name."""


class ReservedNameError(VaultError, ValueError):
    """Record name collides with the master verifier sentinel."""


# =============================================================================
# Master password
# =============================================================================

class PasswordMismatch(VaultError):
    """New password and its confirmation differ."""


class AlreadyRegistered(VaultError):
    """A master verifier is already stored."""


class NotRegistered(VaultError):
    """No master verifier has been stored yet."""
