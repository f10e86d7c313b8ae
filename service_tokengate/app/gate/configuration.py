"""
Gate configuration snapshot.
"""

from dataclasses import dataclass, field, replace
from typing import Iterable, Union

from .aliases import TokenAliasRegistry
from .errors import InvalidSpecError
from .models import (
    LedgerTable, NoRules, RequireOneOf, TokenIdSet, TokenReference,
    WhitelistTable, parse_token_reference
)
from .rules import RuleTable


@dataclass
class GateConfiguration:
    """Aliases, rules and table locations that a decision runs against.

    The engine swaps whole instances; mutate only a private ``copy()``.
    """
    aliases: TokenAliasRegistry = field(default_factory=TokenAliasRegistry)
    rules: RuleTable = field(default_factory=RuleTable)
    ledger: LedgerTable = field(default_factory=LedgerTable)
    whitelist: WhitelistTable = field(default_factory=WhitelistTable)
    whitelist_enabled: bool = False

    def name_token(self, name: str, token_id: int) -> "GateConfiguration":
        self.aliases.register_id(name, token_id)
        return self

    def name_token_range(self, name: str, start: int, end: int) -> "GateConfiguration":
        self.aliases.register_range(name, start, end)
        return self

    def allow_tokens(self, endpoint: str,
                     tokens: Iterable[Union[int, str, TokenReference]]) -> RequireOneOf:
        """Resolve ``tokens`` now and add them to the endpoint's one-of rule.

        Unknown alias names raise before anything is stored.
        """
        references = []
        token_ids = TokenIdSet()
        for token in tokens:
            try:
                reference = parse_token_reference(token)
            except TypeError as e:
                raise InvalidSpecError(str(e), {"endpoint": endpoint}) from e
            token_ids = token_ids | self.aliases.resolve_reference(reference)
            references.append(reference)
        return self.rules.allow_tokens(endpoint, references, token_ids)

    def set_no_rules(self, endpoint: str) -> "GateConfiguration":
        self.rules.set_rule(endpoint, NoRules())
        return self

    def copy(self) -> "GateConfiguration":
        return replace(self, aliases=self.aliases.copy(), rules=self.rules.copy())

    def blank(self) -> "GateConfiguration":
        """Same table settings, no aliases or rules."""
        return replace(self, aliases=TokenAliasRegistry(), rules=RuleTable())
