"""
Whitelist gate layered in front of ownership checks.
"""

from typing import Optional

from shared.errors import EvaluationError
from shared.logging import get_logger

from .models import WhitelistTable
from .verifier import QueryExecutor, quote_identifier


class WhitelistGate:
    """Admits addresses with an unclaimed whitelist entry."""

    def __init__(self, executor: QueryExecutor, whitelist: WhitelistTable):
        self.executor = executor
        self.whitelist = whitelist
        self.logger = get_logger("tokengate.whitelist")
        table = f"{quote_identifier(whitelist.schema)}.{quote_identifier(whitelist.table)}"
        self.query = f"""
SELECT EXISTS (
  SELECT 1
  FROM {table}
  WHERE {quote_identifier(whitelist.address_column)} = $1
    AND {quote_identifier(whitelist.claimed_column)} = FALSE
)
"""

    async def is_whitelisted(self, address: Optional[str]) -> bool:
        if not address:
            return False

        try:
            listed = await self.executor.fetchval(self.query, address)
        except EvaluationError:
            raise
        except Exception as e:
            self.logger.error("Whitelist query failed", address=address, error=str(e))
            raise EvaluationError(
                "Whitelist query failed",
                {"table": self.whitelist.table, "error": str(e)}
            ) from e

        return bool(listed)
