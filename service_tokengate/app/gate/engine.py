"""
Access decision engine.
"""

import threading
import time
from typing import Any, Callable, Dict, Mapping, NamedTuple, Optional, Tuple, Union

from shared.errors import EvaluationError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from .configuration import GateConfiguration
from .models import Decision, EvaluationResult, NoRules, TokenReference
from .verifier import OwnershipVerifier, QueryExecutor
from .whitelist import WhitelistGate
from ..spec.loader import apply_spec, build_configuration, read_spec_file, render_spec


class _GateState(NamedTuple):
    configuration: GateConfiguration
    verifier: OwnershipVerifier
    whitelist_gate: WhitelistGate


class AccessDecisionEngine:
    """Decides whether a caller may reach an endpoint.

    Decisions read one immutable state snapshot, so they never observe a
    half-applied reload. Writers copy the current configuration, change the
    copy and swap it in under ``_write_lock``.
    """

    def __init__(self, executor: QueryExecutor,
                 configuration: Optional[GateConfiguration] = None,
                 metrics: Optional[MetricsCollector] = None):
        self.executor = executor
        self.metrics = metrics
        self.logger = get_logger("tokengate.engine")
        configuration = configuration.copy() if configuration is not None else GateConfiguration()
        self._defaults = configuration.blank()
        self._write_lock = threading.Lock()
        self._state = self._build_state(configuration)

    def _build_state(self, configuration: GateConfiguration) -> _GateState:
        return _GateState(
            configuration=configuration,
            verifier=OwnershipVerifier(self.executor, configuration.ledger),
            whitelist_gate=WhitelistGate(self.executor, configuration.whitelist),
        )

    @property
    def configuration(self) -> GateConfiguration:
        """Current configuration snapshot. Treat as read-only."""
        return self._state.configuration

    # Configuration writers

    def _apply(self, mutate: Callable[[GateConfiguration], Any]) -> "AccessDecisionEngine":
        with self._write_lock:
            candidate = self._state.configuration.copy()
            mutate(candidate)
            self._state = self._build_state(candidate)
        return self

    def name_token(self, name: str, token_id: int) -> "AccessDecisionEngine":
        return self._apply(lambda c: c.name_token(name, token_id))

    def name_token_range(self, name: str, start: int, end: int) -> "AccessDecisionEngine":
        return self._apply(lambda c: c.name_token_range(name, start, end))

    def allow_token(self, endpoint: str, *tokens: Union[int, str, TokenReference]) -> "AccessDecisionEngine":
        return self._apply(lambda c: c.allow_tokens(endpoint, tokens))

    def set_no_rules(self, endpoint: str) -> "AccessDecisionEngine":
        return self._apply(lambda c: c.set_no_rules(endpoint))

    def reload(self, configuration: GateConfiguration) -> "AccessDecisionEngine":
        """Replace the whole configuration."""
        with self._write_lock:
            self._state = self._build_state(configuration.copy())
        self.logger.info(
            "Configuration reloaded",
            aliases=len(configuration.aliases),
            rules=len(configuration.rules)
        )
        return self

    def load_spec(self, document: Mapping[str, Any], overwrite: bool = True) -> "AccessDecisionEngine":
        """Load a declarative spec.

        With ``overwrite`` the document replaces all aliases and rules;
        otherwise it is merged into the current configuration. Either way a
        failing document leaves the engine untouched.
        """
        with self._write_lock:
            if overwrite:
                candidate = build_configuration(document, self._defaults)
            else:
                candidate = apply_spec(self._state.configuration.copy(), document)
            self._state = self._build_state(candidate)
        self.logger.info(
            "Spec loaded",
            overwrite=overwrite,
            aliases=len(candidate.aliases),
            rules=len(candidate.rules)
        )
        return self

    def load_spec_file(self, path: str, overwrite: bool = True) -> "AccessDecisionEngine":
        return self.load_spec(read_spec_file(path), overwrite=overwrite)

    def get_current_spec(self) -> Dict[str, Any]:
        """Declarative snapshot with ids rendered as alias names where possible."""
        return render_spec(self._state.configuration)

    # Decisions

    async def _evaluate(self, path: str, address: Optional[str]) -> Tuple[Decision, str, Optional[str]]:
        state = self._state
        matched = state.configuration.rules.match(path)
        if matched is None:
            return Decision.ALLOW, "No rule for endpoint", None

        endpoint, rule = matched
        if isinstance(rule, NoRules):
            return Decision.ALLOW, "Endpoint has no rules", endpoint

        if not address:
            self.logger.info("Denied unauthenticated caller", path=path, endpoint=endpoint)
            return Decision.DENY, "Caller address missing", endpoint

        self.logger.debug("Enforcing rule", path=path, endpoint=endpoint, tokens=repr(rule.token_ids))

        if state.configuration.whitelist_enabled:
            if not await state.whitelist_gate.is_whitelisted(address):
                self.logger.info("Denied caller not on whitelist", path=path, address=address)
                return Decision.DENY, "Address not whitelisted", endpoint

        if await state.verifier.owns_any(address, rule.token_ids):
            return Decision.ALLOW, "Caller owns a required token", endpoint

        self.logger.info("Denied caller without required token", path=path, address=address)
        return Decision.DENY, "Caller owns none of the required tokens", endpoint

    async def has_access(self, path: str, address: Optional[str]) -> bool:
        """Boolean decision; ledger failures raise ``EvaluationError``."""
        decision, _, _ = await self._evaluate(path, address)
        return decision is Decision.ALLOW

    async def decide(self, path: str, address: Optional[str]) -> EvaluationResult:
        """Full decision; ledger failures come back as ``Decision.ERROR``."""
        start_time = time.time()
        try:
            decision, reason, endpoint = await self._evaluate(path, address)
            result = EvaluationResult(decision=decision, reason=reason, endpoint=endpoint)
        except EvaluationError as e:
            self.logger.error("Decision evaluation failed", path=path, address=address, error=e.message)
            result = EvaluationResult(
                decision=Decision.ERROR,
                reason="Evaluation error",
                error=e.message
            )

        duration = time.time() - start_time
        result.evaluation_time_ms = duration * 1000
        if self.metrics is not None:
            self.metrics.record_decision(result.decision.value, duration)
        return result
