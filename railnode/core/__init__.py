"""
Core primitives shared across railnode.

This package hosts:
- configuration helpers (env vars, backend.config.json, per-backend settings)
- the error taxonomy used by every storage adapter
- logging setup (structlog)
- small helpers (timestamps, ids, identifier checks) and the bootstrap memo

Adapters, routers and services should depend on these primitives instead of
reading os.environ or building error messages on their own.
"""
