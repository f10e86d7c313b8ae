"""
PostgreSQL query executor for the token ledger.
"""

from typing import Any, Optional

import asyncpg

from shared.logging import get_logger
from shared.errors import AccessLayerException, EvaluationError


class PostgreSQLPersistence:
    """Connection pool that runs the gate's ledger queries."""

    def __init__(self, dsn: str, min_size: int = 2, max_size: int = 10,
                 command_timeout: float = 30.0):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.command_timeout = command_timeout
        self.logger = get_logger("tokengate.persistence.postgres")
        self.pool: Optional[asyncpg.Pool] = None

    async def start(self):
        """Start the persistence layer."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=self.command_timeout
            )
            self.logger.info("PostgreSQL persistence started")

        except Exception as e:
            self.logger.error("Failed to start PostgreSQL persistence", error=str(e))
            raise AccessLayerException("POSTGRES_START_FAILED", str(e))

    async def stop(self):
        """Stop the persistence layer."""
        if self.pool:
            await self.pool.close()
            self.pool = None
            self.logger.info("PostgreSQL persistence stopped")

    async def fetchval(self, query: str, *args: Any) -> Any:
        """Run ``query`` and return the first column of the first row."""
        if self.pool is None:
            raise EvaluationError("Ledger connection pool is not started")
        return await self.pool.fetchval(query, *args)

    async def health_check(self) -> bool:
        """Check database health."""
        if self.pool is None:
            return False
        try:
            await self.pool.fetchval("SELECT 1")
            return True
        except Exception:
            return False
