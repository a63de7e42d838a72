"""
BALLOTSEAL — Ledger Layer.

Contract and implementations for anchoring commitments on an external ledger.
"""

from ballotseal import config
from ballotseal.ledger.base import LedgerClient
from ballotseal.ledger.http import HttpLedgerClient
from ballotseal.ledger.local import SQLiteLedger


def create_ledger() -> LedgerClient:
    """Remote client when ``BALLOTSEAL_LEDGER_URL`` is set, local chain otherwise."""
    if config.LEDGER_URL:
        return HttpLedgerClient(
            config.LEDGER_URL,
            api_key=config.LEDGER_API_KEY or None,
            timeout=config.LEDGER_TIMEOUT,
        )
    return SQLiteLedger(config.LEDGER_DB_PATH)


__all__ = ["LedgerClient", "HttpLedgerClient", "SQLiteLedger", "create_ledger"]
