"""Split fetched entries into new and price-changed sets."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Protocol

from .catalog import CatalogEntry
from .store import PersistedProduct


class ProductLookup(Protocol):
    def find_by_sku_and_source(self, sku: str, source_url: str) -> PersistedProduct | None:
        """Return the stored row for ``(source_url, sku)`` if any."""


@dataclass(slots=True)
class Classification:
    new_items: list[CatalogEntry] = field(default_factory=list)
    changed_items: dict[int, CatalogEntry] = field(default_factory=dict)
    unchanged: int = 0

    @property
    def has_changes(self) -> bool:
        return bool(self.new_items or self.changed_items)


class Classifier:
    """Compare entries against persisted state, one lookup per SKU occurrence."""

    def __init__(self, lookup: ProductLookup) -> None:
        self.lookup = lookup

    def classify(self, entries: Iterable[CatalogEntry], source_url: str) -> Classification:
        # sku -> (stored id or None for new, entry); None entry marks "unchanged".
        decisions: dict[str, tuple[int | None, CatalogEntry | None]] = {}
        for entry in entries:
            sku = entry.sku.strip()
            if not sku:
                continue
            stored = self.lookup.find_by_sku_and_source(sku, source_url)
            if stored is None:
                decisions[sku] = (None, entry)
            elif stored.price != entry.price:
                decisions[sku] = (stored.id, entry)
            else:
                decisions[sku] = (stored.id, None)

        result = Classification()
        for stored_id, entry in decisions.values():
            if entry is None:
                result.unchanged += 1
            elif stored_id is None:
                result.new_items.append(entry)
            else:
                result.changed_items[stored_id] = entry
        return result


__all__ = ["Classification", "Classifier", "ProductLookup"]
