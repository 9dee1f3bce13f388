"""SQLite connection management and schema provisioning."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from threading import Lock
from typing import Dict

import structlog

from ..errors import StorageError

PRODUCTS_TABLE = "crawler_products"

logger = structlog.get_logger("catalog_crawler.storage")


class SQLiteManager:
    """Manage SQLite connections with basic schema guarantees."""

    def __init__(self) -> None:
        self._connections: Dict[Path, sqlite3.Connection] = {}
        self._lock = Lock()

    def connect(self, path: Path) -> sqlite3.Connection:
        path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            if path not in self._connections:
                conn = sqlite3.connect(path, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                self.ensure_schema(conn)
                self._connections[path] = conn
            return self._connections[path]

    def ensure_schema(self, conn: sqlite3.Connection) -> None:
        """Create the products table, upgrading tables that predate ``source_url``."""

        try:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {PRODUCTS_TABLE} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    source_url TEXT NOT NULL DEFAULT '',
                    sku TEXT NOT NULL,
                    price TEXT,
                    title TEXT NOT NULL,
                    updated TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            columns = {row[1] for row in conn.execute(f"PRAGMA table_info({PRODUCTS_TABLE})")}
            if "source_url" not in columns:
                conn.execute(
                    f"ALTER TABLE {PRODUCTS_TABLE} ADD COLUMN source_url TEXT NOT NULL DEFAULT ''"
                )
            index_name = f"ux_{PRODUCTS_TABLE}_source_sku"
            has_index = conn.execute(
                "SELECT 1 FROM sqlite_master WHERE type = 'index' AND name = ?", (index_name,)
            ).fetchone()
            if not has_index:
                # older tables may repeat a SKU; the newest row carries the latest price
                removed = conn.execute(
                    f"DELETE FROM {PRODUCTS_TABLE} WHERE id NOT IN "
                    f"(SELECT MAX(id) FROM {PRODUCTS_TABLE} GROUP BY source_url, sku)"
                ).rowcount
                if removed:
                    logger.warning("duplicate_products_collapsed", table=PRODUCTS_TABLE, removed=removed)
                conn.execute(f"CREATE UNIQUE INDEX {index_name} ON {PRODUCTS_TABLE}(source_url, sku)")
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise StorageError(f"Schema provisioning failed: {exc}") from exc

    def reset(self, path: Path) -> None:
        with self._lock:
            if path in self._connections:
                self._connections[path].close()
                del self._connections[path]
        if path.exists():
            path.unlink()

    def close_all(self) -> None:
        with self._lock:
            for conn in self._connections.values():
                conn.close()
            self._connections.clear()


__all__ = ["PRODUCTS_TABLE", "SQLiteManager"]
