"""
Token Gate Service package.

This package decides whether a caller may reach an HTTP endpoint based on
the tokens their address holds in an external ledger. It provides:

- app.main: API surface for access checks, spec inspection and reloads.
- app.gate: Alias registry, rule table, ledger checks and decision engine.
- app.spec: YAML spec documents, loading and rendering.
- app.persistence: asyncpg pool that runs the ledger queries.
- app.middleware: Middleware that gates another FastAPI application.

Guidelines:
- Decisions are stateless; ledger and whitelist rows are never cached.
- Configuration changes are copy-then-swap, never in place.
- A ledger failure is an error, never an allow or a deny.
"""
