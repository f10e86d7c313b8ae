"""
Declarative spec documents: YAML in, GateConfiguration out, and back.
"""

from dataclasses import replace
from typing import Any, Dict, Mapping, Optional

import yaml

from shared.logging import get_logger

from ..gate.configuration import GateConfiguration
from ..gate.errors import InvalidSpecError
from ..gate.models import LedgerTable, NoRules, RequireOneOf, WhitelistTable, is_numeric_literal


NO_RULES = "no_rules"
ONE_OF = "one_of"

logger = get_logger("tokengate.spec")


def read_spec_file(path: str) -> Dict[str, Any]:
    """Parse a YAML spec document from disk."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            document = yaml.safe_load(f)
    except OSError as e:
        raise InvalidSpecError(f"cannot read spec file {path}: {e}", {"path": path}) from e
    except yaml.YAMLError as e:
        raise InvalidSpecError(f"invalid YAML in spec file {path}: {e}", {"path": path}) from e

    if document is None:
        return {}
    if not isinstance(document, dict):
        raise InvalidSpecError("spec document must be a mapping", {"path": path})
    return document


def _ledger_table(document: Mapping[str, Any], current: LedgerTable) -> LedgerTable:
    columns = document.get("columns") or {}
    if not isinstance(columns, Mapping):
        raise InvalidSpecError("'columns' must be a mapping")
    return replace(
        current,
        schema=document.get("schema", current.schema),
        table=document.get("table", current.table),
        address_column=columns.get("address", current.address_column),
        token_column=columns.get("token", current.token_column),
        amount_column=columns.get("amount", current.amount_column),
    )


def _whitelist_table(section: Mapping[str, Any], schema: str, current: WhitelistTable) -> WhitelistTable:
    columns = section.get("columns") or {}
    if not isinstance(columns, Mapping):
        raise InvalidSpecError("'whitelist.columns' must be a mapping")
    return replace(
        current,
        schema=section.get("schema", schema),
        table=section.get("table", current.table),
        address_column=columns.get("address", current.address_column),
        claimed_column=columns.get("claimed", current.claimed_column),
    )


def _register_aliases(configuration: GateConfiguration, token_names: Mapping[Any, Any]) -> None:
    for key, value in token_names.items():
        # Legacy layout maps ids to names: {42: gold}
        if is_numeric_literal(key) and isinstance(value, str) and not is_numeric_literal(value):
            configuration.name_token(value, int(key))
        elif is_numeric_literal(value):
            configuration.name_token(str(key), int(value))
        elif isinstance(value, Mapping) and "from" in value and "to" in value:
            if not (is_numeric_literal(value["from"]) and is_numeric_literal(value["to"])):
                raise InvalidSpecError(f"range bounds of alias '{key}' must be integers", {"alias": key})
            configuration.name_token_range(str(key), int(value["from"]), int(value["to"]))
        else:
            raise InvalidSpecError(
                f"alias '{key}' must map to an id or a {{from, to}} range",
                {"alias": key}
            )


def _register_rules(configuration: GateConfiguration, rules: Mapping[Any, Any]) -> None:
    for endpoint, rule in rules.items():
        endpoint = str(endpoint)
        if rule == NO_RULES:
            configuration.set_no_rules(endpoint)
            continue
        if isinstance(rule, Mapping):
            tokens = rule.get(ONE_OF) or []
        elif isinstance(rule, list):
            tokens = rule
        else:
            raise InvalidSpecError(
                f"rule for '{endpoint}' must be '{NO_RULES}' or a list of tokens",
                {"endpoint": endpoint}
            )
        if not isinstance(tokens, list):
            raise InvalidSpecError(f"'{ONE_OF}' for '{endpoint}' must be a list", {"endpoint": endpoint})
        if tokens:
            configuration.allow_tokens(endpoint, tokens)


def apply_spec(configuration: GateConfiguration, document: Mapping[str, Any]) -> GateConfiguration:
    """Load ``document`` into ``configuration`` in place.

    Aliases are registered before rules so rules may name them. Any error
    leaves ``configuration`` half-built; callers apply specs to a copy.
    """
    if not isinstance(document, Mapping):
        raise InvalidSpecError("spec document must be a mapping")

    configuration.ledger = _ledger_table(document, configuration.ledger)

    whitelist = document.get("whitelist")
    if whitelist is not None:
        if not isinstance(whitelist, Mapping):
            raise InvalidSpecError("'whitelist' must be a mapping")
        configuration.whitelist = _whitelist_table(
            whitelist, configuration.ledger.schema, configuration.whitelist
        )
        configuration.whitelist_enabled = bool(whitelist.get("enabled", configuration.whitelist_enabled))

    token_names = document.get("tokenNames") or {}
    if not isinstance(token_names, Mapping):
        raise InvalidSpecError("'tokenNames' must be a mapping")
    _register_aliases(configuration, token_names)

    rules = document.get("rules") or {}
    if not isinstance(rules, Mapping):
        raise InvalidSpecError("'rules' must be a mapping")
    _register_rules(configuration, rules)

    logger.info(
        "Spec applied",
        aliases=len(configuration.aliases),
        rules=len(configuration.rules)
    )
    return configuration


def render_spec(configuration: GateConfiguration) -> Dict[str, Any]:
    """Snapshot ``configuration`` in the same shape ``apply_spec`` reads."""
    ledger = configuration.ledger
    whitelist = configuration.whitelist

    token_names: Dict[str, Any] = {}
    for alias in configuration.aliases.aliases():
        if alias.start == alias.end:
            token_names[alias.name] = alias.start
        else:
            token_names[alias.name] = {"from": alias.start, "to": alias.end}

    rules: Dict[str, Any] = {}
    for endpoint, rule in configuration.rules.items():
        if isinstance(rule, NoRules):
            rules[endpoint] = NO_RULES
        elif isinstance(rule, RequireOneOf):
            rendered = []
            for reference in rule.references:
                token = configuration.aliases.render(reference)
                if token not in rendered:
                    rendered.append(token)
            rules[endpoint] = {ONE_OF: rendered}

    return {
        "schema": ledger.schema,
        "table": ledger.table,
        "columns": {
            "address": ledger.address_column,
            "token": ledger.token_column,
            "amount": ledger.amount_column,
        },
        "whitelist": {
            "enabled": configuration.whitelist_enabled,
            "schema": whitelist.schema,
            "table": whitelist.table,
            "columns": {
                "address": whitelist.address_column,
                "claimed": whitelist.claimed_column,
            },
        },
        "tokenNames": token_names,
        "rules": rules,
    }


def build_configuration(document: Mapping[str, Any],
                        base: Optional[GateConfiguration] = None) -> GateConfiguration:
    """Fresh configuration from ``document``, inheriting table settings from ``base``."""
    configuration = base.blank() if base is not None else GateConfiguration()
    return apply_spec(configuration, document)
