"""
Shared fixtures for token gate tests.
"""

import asyncio
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

import pytest

import sys
import os
# Test modules import shared/ and service_tokengate/ from the repository root.
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))


class FakeLedger:
    """In-memory stand-in for the ledger and whitelist tables.

    Answers the two queries the gate issues by their argument shape:
    one argument for the whitelist check, four for the balance sum.
    """

    def __init__(self):
        self.balances: List[Tuple[str, int, Any]] = []
        self.whitelist: Dict[str, bool] = {}
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.failure: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None

    def add_balance(self, address: str, token_id: int, amount: Any) -> "FakeLedger":
        self.balances.append((address, token_id, amount))
        return self

    def add_whitelist(self, address: str, claimed: bool = False) -> "FakeLedger":
        self.whitelist[address] = claimed
        return self

    @property
    def ledger_calls(self):
        return [args for _, args in self.calls if len(args) == 4]

    @property
    def whitelist_calls(self):
        return [args for _, args in self.calls if len(args) == 1]

    async def fetchval(self, query: str, *args: Any) -> Any:
        self.calls.append((query, args))
        if self.gate is not None:
            await self.gate.wait()
        if self.failure is not None:
            raise self.failure

        if len(args) == 1:
            address = args[0]
            return address in self.whitelist and not self.whitelist[address]

        address, singles, lows, highs = args
        total = Decimal(0)
        for row_address, token_id, amount in self.balances:
            if row_address != address:
                continue
            matches = Decimal(token_id) in singles or any(
                low <= token_id <= high for low, high in zip(lows, highs)
            )
            if matches:
                total += Decimal(amount)
        return total


@pytest.fixture
def ledger():
    """Create an empty fake ledger."""
    return FakeLedger()
