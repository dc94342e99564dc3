"""Indexed store and its key-value backends."""

from typing import Any, Dict

from .connection import create_connection_pool, get_connection
from .init import init_database, validate_connection
from .kv import AtomicWrite, KVBackend, MemoryKV, PostgresKV
from .store import IndexedStore


def open_store(backend: str = "memory", db_config: Dict[str, Any] = None) -> IndexedStore:
    """Build an IndexedStore for the configured backend.

    The postgres backend opens a pool and makes sure the schema exists.
    """
    if backend == "memory":
        return IndexedStore(MemoryKV())
    if backend == "postgres":
        pool = create_connection_pool(db_config or {})
        init_database(pool)
        return IndexedStore(PostgresKV(pool))
    raise ValueError(f"Unknown store backend: {backend}")


__all__ = [
    "AtomicWrite",
    "IndexedStore",
    "KVBackend",
    "MemoryKV",
    "PostgresKV",
    "create_connection_pool",
    "get_connection",
    "init_database",
    "open_store",
    "validate_connection",
]
