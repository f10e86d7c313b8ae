"""Token gate service."""
