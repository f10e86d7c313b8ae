"""
Token gate package.

Resolves the rule for a request path and checks the caller's ledger
balances against it.

Modules of interest:
- models: Token id sets, references, rules and decision results.
- aliases: Symbolic token names bound to disjoint id ranges.
- rules: Endpoint rules with longest-prefix fallback.
- verifier: Aggregate balance query against the ledger table.
- whitelist: Optional unclaimed-whitelist check.
- engine: Orchestration, atomic reloads and the decision API.
"""
