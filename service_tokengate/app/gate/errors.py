"""
Configuration errors raised while registering aliases and rules.
"""

from typing import Any, Dict, Optional

from shared.errors import ConfigurationError


class InvalidRangeError(ConfigurationError):
    """Alias range bounds are reversed."""

    def __init__(self, name: str, start: int, end: int):
        super().__init__(
            f"invalid range for alias '{name}': {start} > {end}",
            {"alias": name, "from": start, "to": end}
        )


class OverlappingRangeError(ConfigurationError):
    """Alias range intersects a registered alias."""

    def __init__(self, name: str, start: int, end: int, existing: str):
        super().__init__(
            f"range [{start}, {end}] of alias '{name}' overlaps alias '{existing}'",
            {"alias": name, "from": start, "to": end, "existing_alias": existing}
        )


class DuplicateAliasError(ConfigurationError):
    """Alias name is already registered."""

    def __init__(self, name: str):
        super().__init__(f"alias '{name}' is already registered", {"alias": name})


class UnknownTokenReferenceError(ConfigurationError):
    """A rule references an alias that was never registered."""

    def __init__(self, reference: str):
        super().__init__(f"unknown token reference {reference}", {"reference": reference})


class InvalidSpecError(ConfigurationError):
    """The declarative spec document is malformed."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
