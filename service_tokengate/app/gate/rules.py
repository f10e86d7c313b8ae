"""
Endpoint rule table with hierarchical prefix fallback.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from shared.logging import get_logger

from .models import NoRules, RequireOneOf, Rule, TokenIdSet, TokenReference


ROOT = "/"


def normalize_endpoint(endpoint: str) -> str:
    """Strip trailing slashes; the root stays ``/``."""
    stripped = endpoint.rstrip("/")
    return stripped or ROOT


def parent_endpoint(endpoint: str) -> str:
    """Drop the last path segment: ``/a/b/c`` -> ``/a/b``."""
    endpoint = normalize_endpoint(endpoint)
    if "/" not in endpoint:
        return ROOT
    return endpoint.rsplit("/", 1)[0] or ROOT


class RuleTable:
    """Per-endpoint access rules."""

    def __init__(self):
        self.logger = get_logger("tokengate.rules")
        self._rules: Dict[str, Rule] = {}

    def set_rule(self, endpoint: str, rule: Rule) -> None:
        """Replace whatever rule is registered at ``endpoint``."""
        key = normalize_endpoint(endpoint)
        self._rules[key] = rule
        self.logger.debug("Rule set", endpoint=key, rule=type(rule).__name__)

    def allow_tokens(self, endpoint: str, references: Iterable[TokenReference],
                     token_ids: TokenIdSet) -> RequireOneOf:
        """Add tokens to the endpoint's one-of rule, creating it if needed."""
        key = normalize_endpoint(endpoint)
        existing = self._rules.get(key)
        if isinstance(existing, RequireOneOf):
            rule = existing.extend(references, token_ids)
        else:
            rule = RequireOneOf(tuple(dict.fromkeys(references)), token_ids)
        self._rules[key] = rule
        return rule

    def get(self, endpoint: str) -> Optional[Rule]:
        return self._rules.get(normalize_endpoint(endpoint))

    def match(self, path: str) -> Optional[Tuple[str, Rule]]:
        """Find the deepest registered ancestor of ``path`` and its rule."""
        endpoint = normalize_endpoint(path)
        while endpoint != ROOT:
            rule = self._rules.get(endpoint)
            if rule is not None:
                return endpoint, rule
            endpoint = parent_endpoint(endpoint)

        rule = self._rules.get(ROOT)
        if rule is None:
            return None
        return ROOT, rule

    def resolve(self, path: str) -> Optional[Rule]:
        """Effective rule for ``path``; ``None`` means unconditional allow."""
        matched = self.match(path)
        return matched[1] if matched else None

    def endpoints(self) -> List[str]:
        return list(self._rules)

    def items(self) -> List[Tuple[str, Rule]]:
        return list(self._rules.items())

    def copy(self) -> "RuleTable":
        table = RuleTable()
        table._rules = dict(self._rules)
        return table

    def __len__(self) -> int:
        return len(self._rules)
