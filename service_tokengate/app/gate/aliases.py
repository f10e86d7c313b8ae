"""
Token alias registry.
"""

from typing import Dict, List, Optional, Union

from shared.errors import ConfigurationError
from shared.logging import get_logger

from .errors import (
    DuplicateAliasError, InvalidRangeError, OverlappingRangeError,
    UnknownTokenReferenceError
)
from .models import (
    NumericReference, SymbolicReference, TokenAlias, TokenIdSet, TokenReference,
    is_numeric_literal
)


class TokenAliasRegistry:
    """Maps symbolic token names to disjoint ranges of token ids."""

    def __init__(self):
        self.logger = get_logger("tokengate.aliases")
        # Registration order matters for reverse lookups.
        self._aliases: List[TokenAlias] = []
        self._by_name: Dict[str, TokenAlias] = {}

    def register_range(self, name: str, start: int, end: int) -> TokenAlias:
        """Bind ``name`` to the closed range ``[start, end]``.

        Re-registering a name with identical bounds returns the existing
        alias. Otherwise raises a ``ConfigurationError`` subclass and leaves
        the registry untouched when the bounds are reversed, the range
        intersects an existing alias or the name is taken.
        """
        if not isinstance(name, str) or not name or is_numeric_literal(name):
            raise ConfigurationError(
                f"alias name must be a non-numeric string, got {name!r}",
                {"alias": name}
            )
        start, end = int(start), int(end)
        if start > end:
            raise InvalidRangeError(name, start, end)
        registered = self._by_name.get(name)
        if registered is not None:
            if registered.start == start and registered.end == end:
                return registered
            raise DuplicateAliasError(name)
        for existing in self._aliases:
            if existing.overlaps(start, end):
                raise OverlappingRangeError(name, start, end, existing.name)

        alias = TokenAlias(name=name, start=start, end=end)
        self._aliases.append(alias)
        self._by_name[name] = alias
        self.logger.debug("Alias registered", alias=name, start=start, end=end)
        return alias

    def register_id(self, name: str, token_id: int) -> TokenAlias:
        """Bind ``name`` to a single token id."""
        return self.register_range(name, token_id, token_id)

    def resolve(self, name_or_number: Union[int, str]) -> TokenIdSet:
        """Resolve an id literal or alias name to its token ids."""
        if is_numeric_literal(name_or_number):
            return TokenIdSet.of(int(name_or_number))
        alias = self._by_name.get(name_or_number)
        if alias is None:
            raise UnknownTokenReferenceError(str(name_or_number))
        return TokenIdSet.from_range(alias.start, alias.end)

    def resolve_reference(self, reference: TokenReference) -> TokenIdSet:
        if isinstance(reference, NumericReference):
            return TokenIdSet.of(reference.token_id)
        return self.resolve(reference.name)

    def reverse_lookup(self, token_id: int) -> Optional[str]:
        """First alias whose range contains ``token_id``."""
        for alias in self._aliases:
            if token_id in alias:
                return alias.name
        return None

    def render(self, reference: TokenReference) -> Union[int, str]:
        """Render a reference the way a spec document would spell it.

        Numeric ids use an alias name only when that alias is exactly the
        one id, so loading the rendering back resolves to the same ids.
        """
        if isinstance(reference, SymbolicReference):
            return reference.name
        for alias in self._aliases:
            if alias.start == alias.end == reference.token_id:
                return alias.name
        return reference.token_id

    def get(self, name: str) -> Optional[TokenAlias]:
        return self._by_name.get(name)

    def aliases(self) -> List[TokenAlias]:
        return list(self._aliases)

    def copy(self) -> "TokenAliasRegistry":
        registry = TokenAliasRegistry()
        registry._aliases = list(self._aliases)
        registry._by_name = dict(self._by_name)
        return registry

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._aliases)
