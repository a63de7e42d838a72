"""
BALLOTSEAL — Configuration.
Shared settings read from the environment, with ``reload()`` for tests.
"""

import os
from pathlib import Path

from ballotseal.exceptions import InvalidInputError

# Base Paths
BALLOTSEAL_DIR = Path.home() / ".ballotseal"

DEFAULT_DB_PATH = BALLOTSEAL_DIR / "ballotseal.db"
DEFAULT_LEDGER_DB_PATH = BALLOTSEAL_DIR / "ledger.db"


def _load() -> None:
    global DB_PATH, LEDGER_DB_PATH, LEDGER_URL, LEDGER_API_KEY, LEDGER_TIMEOUT
    global CONNECTION_POOL_SIZE, ALLOWED_ORIGINS, SECRET_SALT_FILE

    # Database Configuration
    DB_PATH = os.environ.get("BALLOTSEAL_DB", str(DEFAULT_DB_PATH))
    CONNECTION_POOL_SIZE = int(os.environ.get("BALLOTSEAL_POOL_SIZE", "5"))

    # ─── External Ledger ─────────────────────────────────────────────
    # BALLOTSEAL_LEDGER_URL: "" (local hash-chained ledger) | "https://..." (remote)
    LEDGER_URL = os.environ.get("BALLOTSEAL_LEDGER_URL", "")
    LEDGER_API_KEY = os.environ.get("BALLOTSEAL_LEDGER_API_KEY", "")
    LEDGER_TIMEOUT = float(os.environ.get("BALLOTSEAL_LEDGER_TIMEOUT", "10"))
    LEDGER_DB_PATH = os.environ.get("BALLOTSEAL_LEDGER_DB", str(DEFAULT_LEDGER_DB_PATH))

    # Security Configuration
    ALLOWED_ORIGINS = os.environ.get(
        "BALLOTSEAL_ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173"
    ).split(",")
    SECRET_SALT_FILE = os.environ.get("BALLOTSEAL_SECRET_SALT_FILE", "")


def reload() -> None:
    """Re-read every setting from the environment."""
    _load()


def load_secret_salt() -> str:
    """Return the process-wide voter-tag salt.

    Read from ``BALLOTSEAL_SECRET_SALT`` first, then from the file named by
    ``BALLOTSEAL_SECRET_SALT_FILE``. The value is never logged.
    """
    salt = os.environ.get("BALLOTSEAL_SECRET_SALT", "")
    if not salt and SECRET_SALT_FILE:
        salt_path = Path(SECRET_SALT_FILE)
        if salt_path.exists():
            salt = salt_path.read_text(encoding="utf-8").strip()
    if not salt:
        raise InvalidInputError(
            "Secret salt not configured (set BALLOTSEAL_SECRET_SALT or BALLOTSEAL_SECRET_SALT_FILE)"
        )
    return salt


_load()
