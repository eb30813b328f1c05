"""Key-value persistence: byte-string get/set/remove with atomic multi-set."""

import json
import pathlib
import sqlite3

from cardy.db import init_db
from cardy.errors import PersistenceUnavailable


class KeyValueStore:
    """Base class for byte-string stores.

    Subclasses implement get, set_many, remove and keys; set and the JSON
    helpers are built on top of them.
    """

    def get(self, key: str) -> bytes | None:
        raise NotImplementedError

    def set_many(self, items: dict[str, bytes]) -> None:
        """Write every item or none of them."""
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError

    def keys(self) -> list[str]:
        raise NotImplementedError

    def set(self, key: str, value: bytes) -> None:
        self.set_many({key: value})

    def get_json(self, key: str, default=None):
        raw = self.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError as e:
            raise PersistenceUnavailable(f"unreadable value stored under {key!r}: {e}") from e

    def set_json(self, key: str, value) -> None:
        self.set(key, encode_json(value))

    def close(self) -> None:
        pass


def encode_json(value) -> bytes:
    return json.dumps(value, sort_keys=True).encode()


class MemoryStore(KeyValueStore):
    def __init__(self):
        self._data: dict[str, bytes] = {}

    def get(self, key: str) -> bytes | None:
        return self._data.get(key)

    def set_many(self, items: dict[str, bytes]) -> None:
        for key, value in items.items():
            if not isinstance(value, bytes):
                raise TypeError(f"value for {key!r} must be bytes")
        self._data.update(items)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)


class SqliteStore(KeyValueStore):
    """Store backed by the kv_store table of a SQLite database."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    @classmethod
    def open(cls, db_path: pathlib.Path | str) -> "SqliteStore":
        try:
            return cls(init_db(db_path))
        except sqlite3.Error as e:
            raise PersistenceUnavailable(f"cannot open {db_path}: {e}") from e

    def get(self, key: str) -> bytes | None:
        try:
            row = self.conn.execute(
                "SELECT value FROM kv_store WHERE key=?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise PersistenceUnavailable(f"read of {key!r} failed: {e}") from e
        return bytes(row["value"]) if row else None

    def set_many(self, items: dict[str, bytes]) -> None:
        try:
            with self.conn:
                self.conn.executemany("""
                    INSERT OR REPLACE INTO kv_store (key, value, updated_at)
                    VALUES (?, ?, datetime('now'))
                """, [(k, sqlite3.Binary(v)) for k, v in items.items()])
        except sqlite3.Error as e:
            raise PersistenceUnavailable(f"write of {sorted(items)} failed: {e}") from e

    def remove(self, key: str) -> None:
        try:
            with self.conn:
                self.conn.execute("DELETE FROM kv_store WHERE key=?", (key,))
        except sqlite3.Error as e:
            raise PersistenceUnavailable(f"remove of {key!r} failed: {e}") from e

    def keys(self) -> list[str]:
        try:
            return [r["key"] for r in self.conn.execute(
                "SELECT key FROM kv_store ORDER BY key")]
        except sqlite3.Error as e:
            raise PersistenceUnavailable(f"listing keys failed: {e}") from e

    def close(self) -> None:
        self.conn.close()
