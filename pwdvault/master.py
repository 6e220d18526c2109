"""
PwdVault - Master Password Module

Bootstraps and verifies the master password, and resets it with the
recovery phrase.

Storage:
    The verifier lives in the credentials table under SENTINEL_NAME:
    - secret column: hex(SHA-256(master password))
    - notes column:  hex(SHA-256(recovery phrase)), optional

    These are hashes, not encryptions: checking a password must not need
    the password itself. Neither hash is salted. That matches the existing
    vault format but is weaker than a salted, memory-hard scheme.

Limitation:
    Every field key is derived from the master password. reset() replaces
    the verifier only, so records written before a reset can no longer be
    decrypted with the new master password.
"""

import logging
from enum import Enum
from typing import Optional

from . import crypto
from .vault import Field, SENTINEL_NAME, Vault
from .errors import (
    AlreadyRegistered,
    AuthenticationFailure,
    NotRegistered,
    PasswordMismatch,
)

logger = logging.getLogger(__name__)


class MasterState(Enum):
    UNINITIALIZED = "uninitialized"
    REGISTERED = "registered"


class MasterAuthenticator:
    """
    Master password checks against a Vault's verifier row.

    Usage:
        auth = MasterAuthenticator(vault)
        if auth.state is MasterState.UNINITIALIZED:
            auth.register(pw, pw_again, recovery_phrase)
        master = auth.login(candidate)   # raises AuthenticationFailure
    """

    def __init__(self, vault: Vault):
        self.vault = vault

    @property
    def state(self) -> MasterState:
        if self._verifier() is None:
            return MasterState.UNINITIALIZED
        return MasterState.REGISTERED

    @property
    def has_recovery_phrase(self) -> bool:
        verifier = self._verifier()
        return bool(verifier and verifier[Field.NOTES])

    def register(
        self,
        password: str,
        confirmation: str,
        recovery_phrase: Optional[str] = None
    ) -> None:
        """
        Store the verifier for a new master password.

        The two entries are compared before anything is hashed or written.

        Raises:
            PasswordMismatch: password and confirmation differ
            AlreadyRegistered: a verifier already exists
            ValueError: empty password
        """
        if password != confirmation:
            raise PasswordMismatch("Passwords don't match")
        if not password:
            raise ValueError("Master password cannot be empty")
        if self.state is MasterState.REGISTERED:
            raise AlreadyRegistered("A master password is already set")

        values = {Field.SECRET: crypto.hash_hex(password)}
        if recovery_phrase:
            values[Field.NOTES] = crypto.hash_hex(recovery_phrase)
        self.vault.write_raw(SENTINEL_NAME, values)
        logger.info("Master password registered (recovery phrase: %s)",
                    "yes" if recovery_phrase else "no")

    def verify(self, candidate: str) -> bool:
        """Check a candidate master password against the stored verifier."""
        return self._matches(Field.SECRET, candidate)

    def verify_recovery_phrase(self, phrase: str) -> bool:
        """False when the phrase is wrong or no recovery phrase was stored."""
        return self._matches(Field.NOTES, phrase)

    def login(self, candidate: str) -> str:
        """
        Authenticate and return the live master password for the session.

        No retries here: one wrong password ends the attempt.

        Raises:
            AuthenticationFailure: candidate does not match
            NotRegistered: no master password has been set
        """
        if not self.verify(candidate):
            logger.warning("Master password rejected")
            raise AuthenticationFailure("Incorrect master password")
        logger.debug("Master password accepted")
        return candidate

    def reset(self, recovery_phrase: str, new_password: str, confirmation: str) -> None:
        """
        Replace the master password after checking the recovery phrase.

        Existing fields are NOT re-encrypted; they stay bound to the old
        master password.

        Raises:
            AuthenticationFailure: wrong recovery phrase, or none was stored
            PasswordMismatch: new password and confirmation differ
            NotRegistered: no master password has been set
        """
        if not self.verify_recovery_phrase(recovery_phrase):
            logger.warning("Recovery phrase rejected")
            raise AuthenticationFailure("Incorrect recovery phrase")
        if new_password != confirmation:
            raise PasswordMismatch("Passwords don't match")
        if not new_password:
            raise ValueError("Master password cannot be empty")

        self.vault.write_raw(SENTINEL_NAME, {Field.SECRET: crypto.hash_hex(new_password)})

        stale = self.vault.count()
        if stale:
            logger.warning(
                "Master password reset: %d existing record(s) remain encrypted "
                "under the previous master password", stale
            )
        else:
            logger.info("Master password reset")

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    def _verifier(self):
        return self.vault.read_raw(SENTINEL_NAME)

    def _matches(self, field: Field, candidate: str) -> bool:
        verifier = self._verifier()
        if verifier is None:
            raise NotRegistered("No master password has been set")
        stored = verifier[field]
        if not stored:
            return False
        return crypto.constant_compare(crypto.hash_hex(candidate), stored)
