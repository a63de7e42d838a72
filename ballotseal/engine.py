"""
BALLOTSEAL — Engine.

Wires the store handle, the ledger client and the services together.
One engine per process: ``await init_db()`` at start, ``await close()`` at
shutdown.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ballotseal import config
from ballotseal.audit import AuditService
from ballotseal.ballot_store import BallotStore
from ballotseal.closer import ElectionCloser
from ballotseal.connection_pool import BallotConnectionPool
from ballotseal.elections import ElectionRepository
from ballotseal.ledger import LedgerClient, create_ledger
from ballotseal.voting import VoteService

logger = logging.getLogger("ballotseal.engine")


class BallotSealEngine:
    def __init__(
        self,
        db_path: str | Path | None = None,
        ledger: Optional[LedgerClient] = None,
        secret_salt: Optional[str] = None,
        pool_size: Optional[int] = None,
    ):
        self._db_path = Path(db_path or config.DB_PATH)
        self.pool = BallotConnectionPool(
            str(self._db_path), max_connections=pool_size or config.CONNECTION_POOL_SIZE
        )
        self.ledger = ledger or create_ledger()
        self._secret_salt = secret_salt

        self.elections = ElectionRepository(self.pool)
        self.ballots = BallotStore(self.pool)
        self.closer = ElectionCloser(self.pool, self.ledger, self.ballots)
        self.audit = AuditService(self.ledger, self.ballots, self.elections)
        self._votes: Optional[VoteService] = None

    @property
    def db_path(self) -> Path:
        return self._db_path

    @property
    def votes(self) -> VoteService:
        """Vote service; resolves the secret salt on first use."""
        if self._votes is None:
            salt = self._secret_salt or config.load_secret_salt()
            self._votes = VoteService(self.pool, self.ledger, self.ballots, self.elections, salt)
        return self._votes

    async def init_db(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        await self.pool.initialize()
        await self.pool.init_schema()

    async def close(self) -> None:
        await self.pool.close()
        await self.ledger.close()
        logger.debug("Engine closed")
