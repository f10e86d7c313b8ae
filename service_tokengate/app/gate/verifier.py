"""
Token ownership verification against the ledger.
"""

from decimal import Decimal
from typing import Any, Protocol, Union

from shared.errors import EvaluationError
from shared.logging import get_logger

from .models import LedgerTable, TokenIdSet


class QueryExecutor(Protocol):
    """Anything that runs a parameterized query and returns one value."""

    async def fetchval(self, query: str, *args: Any) -> Any:
        ...


def quote_identifier(name: str) -> str:
    return f'"{name}"'


def as_exact_amount(value: Any) -> Union[int, Decimal]:
    """Coerce a ledger amount to an exact number; ``None`` counts as zero."""
    if value is None:
        return 0
    if isinstance(value, (int, Decimal)):
        return value
    return Decimal(str(value))


class OwnershipVerifier:
    """Checks whether an address holds a positive balance of any given token."""

    def __init__(self, executor: QueryExecutor, ledger: LedgerTable):
        self.executor = executor
        self.ledger = ledger
        self.logger = get_logger("tokengate.verifier")
        self.query = self._build_query(ledger)

    @staticmethod
    def _build_query(ledger: LedgerTable) -> str:
        table = f"{quote_identifier(ledger.schema)}.{quote_identifier(ledger.table)}"
        address = quote_identifier(ledger.address_column)
        token = quote_identifier(ledger.token_column)
        amount = quote_identifier(ledger.amount_column)
        return f"""
SELECT
  COALESCE(SUM({amount}), 0) AS amount_owned
FROM {table}
WHERE {address} = $1
  AND (
    {token} = ANY($2::numeric[])
    OR EXISTS (
      SELECT 1
      FROM unnest($3::numeric[], $4::numeric[]) AS bounds(low, high)
      WHERE {token} BETWEEN bounds.low AND bounds.high
    )
  )
"""

    async def owns_any(self, address: str, token_ids: TokenIdSet) -> bool:
        """True iff the summed balance over ``token_ids`` is strictly positive."""
        if not token_ids:
            return False

        ranges = token_ids.ranges()
        try:
            amount = await self.executor.fetchval(
                self.query,
                address,
                [Decimal(token_id) for token_id in token_ids.singles()],
                [Decimal(low) for low, _ in ranges],
                [Decimal(high) for _, high in ranges],
            )
        except EvaluationError:
            raise
        except Exception as e:
            self.logger.error("Ledger query failed", address=address, error=str(e))
            raise EvaluationError(
                "Ledger query failed",
                {"table": self.ledger.table, "error": str(e)}
            ) from e

        amount = as_exact_amount(amount)
        self.logger.debug("Ledger balance", address=address, tokens=repr(token_ids), amount=str(amount))
        return amount > 0
