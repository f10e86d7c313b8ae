"""
Persistence package.

Provides the asyncpg-backed executor for ledger and whitelist queries.
The gate only reads; it never writes to the database.
"""
