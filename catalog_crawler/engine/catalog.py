"""Flatten raw feed products into per-variant catalog entries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    """One sellable variant as seen in a feed."""

    sku: str
    price: str | None
    title: str


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def normalise_price(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return str(value)


def flatten_products(products: Iterable[Any]) -> list[CatalogEntry]:
    """Return one entry per variant carrying a non-blank SKU, in feed order.

    Variant titles are prefixed with the parent product title, so a product
    "Shirt" with variant "Blue / M" yields "Shirt Blue / M".
    """

    entries: list[CatalogEntry] = []
    for product in products:
        if not isinstance(product, dict):
            continue
        variants = product.get("variants")
        if not isinstance(variants, list):
            continue
        parent_title = _text(product.get("title"))
        for variant in variants:
            if not isinstance(variant, dict):
                continue
            sku = _text(variant.get("sku")).strip()
            if not sku:
                continue
            title = f"{parent_title} {_text(variant.get('title'))}".strip()
            entries.append(CatalogEntry(sku=sku, price=normalise_price(variant.get("price")), title=title))
    return entries


__all__ = ["CatalogEntry", "flatten_products", "normalise_price"]
