"""
Data models for the token gate.
"""

from bisect import bisect_right
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from pydantic import BaseModel, Field


Interval = Tuple[int, int]


class TokenIdSet:
    """Immutable set of token ids stored as sorted, disjoint closed intervals.

    Range aliases can span millions of ids, so membership, union and the
    ledger query all work on interval bounds. Iterating still yields every
    id, which keeps the set usable wherever a plain ``set`` of ints is.
    """

    __slots__ = ("_intervals",)

    def __init__(self, intervals: Iterable[Interval] = ()):
        self._intervals: Tuple[Interval, ...] = self._merge(intervals)

    @staticmethod
    def _merge(intervals: Iterable[Interval]) -> Tuple[Interval, ...]:
        merged: List[List[int]] = []
        for start, end in sorted((int(s), int(e)) for s, e in intervals):
            if merged and start <= merged[-1][1] + 1:
                merged[-1][1] = max(merged[-1][1], end)
            else:
                merged.append([start, end])
        return tuple((start, end) for start, end in merged)

    @classmethod
    def of(cls, *token_ids: int) -> "TokenIdSet":
        return cls((token_id, token_id) for token_id in token_ids)

    @classmethod
    def from_range(cls, start: int, end: int) -> "TokenIdSet":
        return cls([(start, end)])

    @property
    def intervals(self) -> Tuple[Interval, ...]:
        return self._intervals

    def singles(self) -> List[int]:
        """Ids held as one-element intervals."""
        return [start for start, end in self._intervals if start == end]

    def ranges(self) -> List[Interval]:
        """Intervals wider than one id."""
        return [(start, end) for start, end in self._intervals if start != end]

    def union(self, other: "TokenIdSet") -> "TokenIdSet":
        return TokenIdSet(self._intervals + other.intervals)

    __or__ = union

    def __contains__(self, token_id: object) -> bool:
        if isinstance(token_id, bool) or not isinstance(token_id, int):
            return False
        index = bisect_right(self._intervals, (token_id, float("inf"))) - 1
        return index >= 0 and self._intervals[index][1] >= token_id

    def __iter__(self) -> Iterator[int]:
        for start, end in self._intervals:
            yield from range(start, end + 1)

    def __len__(self) -> int:
        return sum(end - start + 1 for start, end in self._intervals)

    def __bool__(self) -> bool:
        return bool(self._intervals)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, TokenIdSet):
            return self._intervals == other.intervals
        if isinstance(other, (set, frozenset)):
            return len(self) == len(other) and all(item in self for item in other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._intervals)

    def __repr__(self) -> str:
        parts = [str(s) if s == e else f"{s}..{e}" for s, e in self._intervals]
        return f"TokenIdSet({', '.join(parts)})"


@dataclass(frozen=True)
class TokenAlias:
    """Symbolic name bound to a closed range of token ids."""
    name: str
    start: int
    end: int

    def overlaps(self, start: int, end: int) -> bool:
        return start <= self.end and self.start <= end

    def __contains__(self, token_id: int) -> bool:
        return self.start <= token_id <= self.end


@dataclass(frozen=True)
class NumericReference:
    """Token referenced by its raw id."""
    token_id: int


@dataclass(frozen=True)
class SymbolicReference:
    """Token referenced by alias name."""
    name: str


TokenReference = Union[NumericReference, SymbolicReference]


def is_numeric_literal(value: Any) -> bool:
    """True for ints and strings of decimal digits (bools excluded)."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, str) and value.strip().isdecimal()


def parse_token_reference(value: Union[int, str, TokenReference]) -> TokenReference:
    """Turn a config value into a tagged token reference."""
    if isinstance(value, (NumericReference, SymbolicReference)):
        return value
    if is_numeric_literal(value):
        return NumericReference(int(value))
    if isinstance(value, str) and value:
        return SymbolicReference(value)
    raise TypeError(f"token reference must be an id or alias name, got {value!r}")


@dataclass(frozen=True)
class NoRules:
    """Unconditional allow."""


@dataclass(frozen=True)
class RequireOneOf:
    """Allow callers holding a positive balance of any listed token."""
    references: Tuple[TokenReference, ...]
    token_ids: TokenIdSet

    def extend(self, references: Iterable[TokenReference], token_ids: TokenIdSet) -> "RequireOneOf":
        merged = list(self.references)
        for reference in references:
            if reference not in merged:
                merged.append(reference)
        return RequireOneOf(tuple(merged), self.token_ids | token_ids)


Rule = Union[NoRules, RequireOneOf]


@dataclass(frozen=True)
class LedgerTable:
    """Location of the token balance ledger."""
    schema: str = "public"
    table: str = "storage.ledger_live"
    address_column: str = "idx_address"
    token_column: str = "idx_nat"
    amount_column: str = "nat"


@dataclass(frozen=True)
class WhitelistTable:
    """Location of the address whitelist."""
    schema: str = "public"
    table: str = "whitelist"
    address_column: str = "address"
    claimed_column: str = "claimed"


class Decision(str, Enum):
    """Outcome of an access decision."""
    ALLOW = "allow"
    DENY = "deny"
    ERROR = "error"


@dataclass
class EvaluationResult:
    """Result of a single access decision."""
    decision: Decision
    reason: Optional[str] = None
    endpoint: Optional[str] = None
    error: Optional[str] = None
    evaluation_time_ms: float = 0.0

    @property
    def allowed(self) -> bool:
        return self.decision is Decision.ALLOW


class DecisionRequest(BaseModel):
    """Request model for an access check."""
    path: str = Field(..., description="Request path to gate")
    address: Optional[str] = Field(None, description="Caller ledger address")


class DecisionResponse(BaseModel):
    """Response model for an access check."""
    decision: Decision = Field(..., description="allow or deny")
    allowed: bool = Field(..., description="Whether the caller may proceed")
    reason: Optional[str] = Field(None, description="Reason for the decision")
    endpoint: Optional[str] = Field(None, description="Rule endpoint that matched")
    evaluation_time_ms: float = Field(0.0, description="Evaluation time in milliseconds")


class ReloadResponse(BaseModel):
    """Response model for a configuration reload."""
    aliases: int
    rules: int
    overwrite: bool
    spec: Dict[str, Any] = Field(default_factory=dict)
