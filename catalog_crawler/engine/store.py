"""Persisted catalog state with batched writes."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Callable, Iterable, Mapping, Sequence
from zoneinfo import ZoneInfo

from ..errors import StorageError
from ..infra.storage import PRODUCTS_TABLE, SQLiteManager
from .catalog import CatalogEntry

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
# Keeps every statement below SQLite's historical 999 bound-parameter limit.
MAX_ROWS_PER_STATEMENT = 150


@dataclass(frozen=True, slots=True)
class PersistedProduct:
    id: int
    source_url: str
    sku: str
    price: str | None
    title: str
    updated_at: str | None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "PersistedProduct":
        return cls(
            id=int(row["id"]),
            source_url=row["source_url"],
            sku=row["sku"],
            price=row["price"],
            title=row["title"],
            updated_at=row["updated"],
        )


def _clean_text(value: object) -> str:
    return str(value).replace("\x00", "")


def _clean_price(value: str | None) -> str | None:
    return None if value is None else _clean_text(value)


def _chunks(items: Sequence, size: int) -> Iterable[Sequence]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class ProductStore:
    """Point lookups plus batched insert/update over the products table.

    Every value reaches SQLite as a bound parameter. A batch shares one
    ``updated`` timestamp and is applied inside a single transaction.
    """

    def __init__(
        self,
        manager: SQLiteManager,
        db_path: Path,
        timezone: str = "Europe/Malta",
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.manager = manager
        self.db_path = db_path
        self.timezone = ZoneInfo(timezone)
        self._now = now or (lambda: datetime.now(self.timezone))
        self._lock = Lock()
        self._conn = self.manager.connect(db_path)

    def find_by_sku_and_source(self, sku: str, source_url: str) -> PersistedProduct | None:
        with self._lock:
            try:
                row = self._conn.execute(
                    f"SELECT * FROM {PRODUCTS_TABLE} WHERE sku = ? AND source_url = ?",
                    (sku, source_url),
                ).fetchone()
            except sqlite3.Error as exc:
                raise StorageError(f"Lookup failed for {sku!r}: {exc}") from exc
        return PersistedProduct.from_row(row) if row is not None else None

    def insert_batch(self, source_url: str, entries: Sequence[CatalogEntry]) -> bool:
        if not entries:
            return False
        updated = self.batch_timestamp()
        source = _clean_text(source_url)
        rows = [
            (source, _clean_text(entry.sku), _clean_price(entry.price), _clean_text(entry.title), updated)
            for entry in entries
        ]
        with self._lock:
            try:
                with self._conn:
                    for chunk in _chunks(rows, MAX_ROWS_PER_STATEMENT):
                        placeholders = ", ".join(["(?, ?, ?, ?, ?)"] * len(chunk))
                        params = [value for row in chunk for value in row]
                        self._conn.execute(
                            f"INSERT INTO {PRODUCTS_TABLE} (source_url, sku, price, title, updated) "
                            f"VALUES {placeholders}",
                            params,
                        )
            except sqlite3.Error as exc:
                raise StorageError(f"Batch insert of {len(rows)} rows failed: {exc}") from exc
        return True

    def update_batch(self, changes: Mapping[int, CatalogEntry]) -> bool:
        if not changes:
            return False
        updated = self.batch_timestamp()
        items = [(int(product_id), entry) for product_id, entry in changes.items()]
        with self._lock:
            try:
                with self._conn:
                    for chunk in _chunks(items, MAX_ROWS_PER_STATEMENT):
                        self._conn.execute(*self._update_statement(chunk, updated))
            except sqlite3.Error as exc:
                raise StorageError(f"Batch update of {len(items)} rows failed: {exc}") from exc
        return True

    @staticmethod
    def _update_statement(
        chunk: Sequence[tuple[int, CatalogEntry]], updated: str
    ) -> tuple[str, list[object]]:
        cases = " ".join(["WHEN ? THEN ?"] * len(chunk))
        price_params: list[object] = []
        title_params: list[object] = []
        for product_id, entry in chunk:
            price_params.extend((product_id, _clean_price(entry.price)))
            title_params.extend((product_id, _clean_text(entry.title)))
        ids = [product_id for product_id, _ in chunk]
        sql = (
            f"UPDATE {PRODUCTS_TABLE} SET "
            f"price = CASE id {cases} END, "
            f"title = CASE id {cases} END, "
            f"updated = ? "
            f"WHERE id IN ({', '.join(['?'] * len(ids))})"
        )
        return sql, [*price_params, *title_params, updated, *ids]

    def batch_timestamp(self) -> str:
        return self._now().astimezone(self.timezone).strftime(DATE_FORMAT)

    # ------------------------------------------------------------------
    def list_products(self, source_url: str | None = None, limit: int = 50) -> list[PersistedProduct]:
        query = f"SELECT * FROM {PRODUCTS_TABLE}"
        params: list[object] = []
        if source_url:
            query += " WHERE source_url = ?"
            params.append(source_url)
        query += " ORDER BY updated DESC, id DESC LIMIT ?"
        params.append(limit)
        with self._lock:
            try:
                rows = self._conn.execute(query, params).fetchall()
            except sqlite3.Error as exc:
                raise StorageError(f"Listing products failed: {exc}") from exc
        return [PersistedProduct.from_row(row) for row in rows]

    def count(self, source_url: str | None = None) -> int:
        query = f"SELECT COUNT(*) FROM {PRODUCTS_TABLE}"
        params: tuple[object, ...] = ()
        if source_url:
            query += " WHERE source_url = ?"
            params = (source_url,)
        with self._lock:
            try:
                return int(self._conn.execute(query, params).fetchone()[0])
            except sqlite3.Error as exc:
                raise StorageError(f"Counting products failed: {exc}") from exc


__all__ = ["DATE_FORMAT", "MAX_ROWS_PER_STATEMENT", "PersistedProduct", "ProductStore"]
