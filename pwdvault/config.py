"""
Configuration constants
"""

import os
import logging

# ──────────────────────────────────────────────────────────────
# Vault settings
# ──────────────────────────────────────────────────────────────
DEFAULT_VAULT_PATH = os.environ.get(
    "PWDVAULT_PATH",
    os.path.join(os.path.expanduser("~"), ".pwdvault", "vault.db"),
)

# ──────────────────────────────────────────────────────────────
# Passwords
# ──────────────────────────────────────────────────────────────
DEFAULT_PASSWORD_LENGTH = 12     # Generated record passwords
MIN_MASTER_LENGTH = 8            # Checked by the frontend only

# ──────────────────────────────────────────────────────────────
# Logging
# ──────────────────────────────────────────────────────────────
LOG_LEVEL = os.environ.get("PWDVAULT_LOG_LEVEL", "WARNING").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(verbose: bool = False) -> None:
    """Send log records to stderr. --verbose forces DEBUG."""
    level = logging.DEBUG if verbose else getattr(logging, LOG_LEVEL, logging.WARNING)
    logging.basicConfig(level=level, format=LOG_FORMAT)


def ensure_vault_dir(path: str) -> None:
    d = os.path.dirname(path)
    if d and not os.path.exists(d):
        os.makedirs(d, exist_ok=True)
