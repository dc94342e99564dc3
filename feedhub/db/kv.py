"""Key-value backends with atomic multi-key commits.

Keys are tuples of strings; values are JSON-compatible dicts. Listing by
prefix is element-wise, so ``("feed",)`` never matches ``("feed_by_url", ...)``.
"""

import copy
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

Key = Tuple[str, ...]
Value = Dict[str, Any]


@dataclass
class _Write:
    key: Key
    value: Optional[Value] = None
    delete: bool = False
    if_absent: bool = False


class AtomicWrite:
    """A batch of writes committed all-or-nothing."""

    def __init__(self, backend: "KVBackend") -> None:
        self._backend = backend
        self._writes: List[_Write] = []

    def set(self, key: Key, value: Value, if_absent: bool = False) -> "AtomicWrite":
        """Queue a write; with if_absent the whole batch fails if key exists."""
        self._writes.append(_Write(key=tuple(key), value=value, if_absent=if_absent))
        return self

    def delete(self, key: Key) -> "AtomicWrite":
        """Queue a delete."""
        self._writes.append(_Write(key=tuple(key), delete=True))
        return self

    def commit(self) -> bool:
        """Apply the batch. Returns False, writing nothing, on an if_absent conflict."""
        return self._backend._apply(self._writes)


class KVBackend(ABC):
    """Storage contract behind IndexedStore."""

    @abstractmethod
    def get(self, key: Key) -> Optional[Value]:
        """Value at key, or None."""

    @abstractmethod
    def list(self, prefix: Key) -> List[Tuple[Key, Value]]:
        """All entries strictly under prefix, ordered by key."""

    @abstractmethod
    def _apply(self, writes: List[_Write]) -> bool:
        """Apply writes atomically."""

    def atomic(self) -> AtomicWrite:
        """Start an atomic batch."""
        return AtomicWrite(self)

    def close(self) -> None:
        """Release backend resources."""


class MemoryKV(KVBackend):
    """Process-local backend guarded by one lock."""

    def __init__(self) -> None:
        self._data: Dict[Key, Value] = {}
        self._lock = threading.RLock()

    def get(self, key: Key) -> Optional[Value]:
        with self._lock:
            return copy.deepcopy(self._data.get(tuple(key)))

    def list(self, prefix: Key) -> List[Tuple[Key, Value]]:
        prefix = tuple(prefix)
        size = len(prefix)
        with self._lock:
            matches = [
                (key, copy.deepcopy(value))
                for key, value in self._data.items()
                if len(key) > size and key[:size] == prefix
            ]
        return sorted(matches, key=lambda item: item[0])

    def _apply(self, writes: List[_Write]) -> bool:
        with self._lock:
            if any(w.if_absent and w.key in self._data for w in writes):
                return False
            for w in writes:
                if w.delete:
                    self._data.pop(w.key, None)
                else:
                    self._data[w.key] = copy.deepcopy(w.value)
        return True


class _Conflict(Exception):
    """An if_absent key already exists; rolls back the transaction."""


class PostgresKV(KVBackend):
    """Backend storing every key in one ``kv_entries`` table.

    Each commit is one transaction. if_absent writes use
    ``INSERT ... ON CONFLICT DO NOTHING``, so concurrent writers racing on the
    same key serialize on the primary key and exactly one wins.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self.pool = pool

    def get(self, key: Key) -> Optional[Value]:
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT value FROM kv_entries WHERE key = %s::text[]", (list(key),))
                row = cur.fetchone()
        return row["value"] if row else None

    def list(self, prefix: Key) -> List[Tuple[Key, Value]]:
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT key, value
                    FROM kv_entries
                    WHERE cardinality(key) > %s::int
                      AND key[1:%s::int] = %s::text[]
                    ORDER BY key
                    """,
                    (len(prefix), len(prefix), list(prefix)),
                )
                rows = cur.fetchall()
        return [(tuple(row["key"]), row["value"]) for row in rows]

    def _apply(self, writes: List[_Write]) -> bool:
        try:
            with self.pool.connection() as conn:
                with conn.transaction():
                    with conn.cursor() as cur:
                        for w in writes:
                            self._execute_write(cur, w)
        except _Conflict:
            return False
        return True

    def _execute_write(self, cur, w: _Write) -> None:
        if w.delete:
            cur.execute("DELETE FROM kv_entries WHERE key = %s::text[]", (list(w.key),))
        elif w.if_absent:
            cur.execute(
                """
                INSERT INTO kv_entries (key, value)
                VALUES (%s::text[], %s)
                ON CONFLICT (key) DO NOTHING
                """,
                (list(w.key), Jsonb(w.value)),
            )
            if cur.rowcount == 0:
                raise _Conflict(w.key)
        else:
            cur.execute(
                """
                INSERT INTO kv_entries (key, value)
                VALUES (%s::text[], %s)
                ON CONFLICT (key) DO UPDATE SET
                    value = EXCLUDED.value,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (list(w.key), Jsonb(w.value)),
            )

    def close(self) -> None:
        self.pool.close()
