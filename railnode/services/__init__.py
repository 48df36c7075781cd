"""
Use cases that wire the registry, the storage adapter and the routers.

Routers should receive ready-made stores from these services instead of
constructing adapters themselves.
"""
