"""
Token gate service.
"""

from datetime import datetime

from fastapi import Query

from shared.base_service import BaseService
from shared.errors import ConfigurationError, EvaluationError, ValidationError
from shared.logging import set_caller_context

from .gate.configuration import GateConfiguration
from .gate.engine import AccessDecisionEngine
from .gate.models import (
    Decision, DecisionRequest, DecisionResponse, LedgerTable, ReloadResponse, WhitelistTable
)
from .persistence.postgres import PostgreSQLPersistence


class TokenGateService(BaseService):
    """Token gate service implementation."""

    def __init__(self):
        super().__init__("tokengate", 8013)

        self.persistence = PostgreSQLPersistence(
            self.config.postgres_dsn,
            min_size=self.config.db_pool_min_size,
            max_size=self.config.db_pool_max_size,
            command_timeout=self.config.db_command_timeout
        )
        self.engine = AccessDecisionEngine(
            self.persistence,
            GateConfiguration(
                ledger=LedgerTable(schema=self.config.db_schema),
                whitelist=WhitelistTable(schema=self.config.db_schema),
                whitelist_enabled=self.config.whitelist_enabled
            ),
            metrics=self.metrics
        )

        self._setup_tokengate_routes()

    def _setup_tokengate_routes(self):
        """Set up token gate routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "tokengate",
                "message": "Token Gate Service",
                "version": "1.0.0",
                "capabilities": ["decisions", "aliases", "whitelist", "reload"]
            }

        @self.app.post("/tokengate/check", response_model=DecisionResponse)
        async def check_access(request: DecisionRequest):
            """Decide whether ``address`` may reach ``path``."""
            if not request.path.startswith("/"):
                raise ValidationError("Path must start with '/'", {"path": request.path})

            set_caller_context(request.address)
            result = await self.engine.decide(request.path, request.address)

            if result.decision is Decision.ERROR:
                raise EvaluationError(result.error or "Evaluation failed", {"path": request.path})

            return DecisionResponse(
                decision=result.decision,
                allowed=result.allowed,
                reason=result.reason,
                endpoint=result.endpoint,
                evaluation_time_ms=result.evaluation_time_ms
            )

        @self.app.get("/tokengate/spec")
        async def get_spec():
            """Current aliases and rules in spec document form."""
            return self.engine.get_current_spec()

        @self.app.post("/tokengate/reload", response_model=ReloadResponse)
        async def reload_spec(
            overwrite: bool = Query(True, description="Replace instead of merging")
        ):
            """Reload the configured spec file."""
            if not self.config.spec_file:
                raise ValidationError("No spec file configured")

            try:
                self.engine.load_spec_file(self.config.spec_file, overwrite=overwrite)
            except ConfigurationError:
                self.metrics.increment_counter("token_gate_reloads_total", status="error")
                raise

            self.metrics.increment_counter("token_gate_reloads_total", status="ok")
            configuration = self.engine.configuration
            return ReloadResponse(
                aliases=len(configuration.aliases),
                rules=len(configuration.rules),
                overwrite=overwrite,
                spec=self.engine.get_current_spec()
            )

        @self.app.get("/tokengate/stats")
        async def get_stats():
            """Get token gate statistics."""
            configuration = self.engine.configuration
            return {
                "aliases": len(configuration.aliases),
                "rules": len(configuration.rules),
                "whitelist_enabled": configuration.whitelist_enabled,
                "timestamp": datetime.now().isoformat()
            }

    async def _check_dependencies(self):
        """Check token gate dependencies."""
        dependencies = {}

        try:
            if await self.persistence.health_check():
                dependencies["postgres"] = "ok"
            else:
                dependencies["postgres"] = "error"
        except Exception:
            dependencies["postgres"] = "error"

        return dependencies

    async def start(self):
        """Start token gate components."""
        await self.persistence.start()

        if self.config.spec_file:
            self.engine.load_spec_file(self.config.spec_file)

        configuration = self.engine.configuration
        self.logger.info(
            "Token gate service started",
            aliases=len(configuration.aliases),
            rules=len(configuration.rules)
        )

    async def stop(self):
        """Stop token gate components."""
        await self.persistence.stop()
        self.logger.info("Token gate service stopped")


def create_app():
    """Create token gate service application."""
    service = TokenGateService()
    return service.app


if __name__ == "__main__":
    service = TokenGateService()
    service.run()
