"""HTML change report rendering."""

from __future__ import annotations

from html import escape
from typing import Iterable, Mapping, Sequence
from urllib.parse import urlsplit

from .catalog import CatalogEntry

NO_CHANGES = "No changes"
SEPARATOR = "<br><br>" + "-" * 85 + "<br><br>"


def source_host(source_url: str) -> str:
    try:
        host = urlsplit(source_url).hostname
    except ValueError:
        host = None
    return (host or source_url).upper()


class ReportComposer:
    """Render one section per source and join sections into a message body."""

    def compose(
        self,
        source_url: str,
        new_items: Sequence[CatalogEntry],
        changed_items: Mapping[int, CatalogEntry],
    ) -> str:
        host = escape(source_host(source_url))
        parts = [
            f"<strong>Changes from {host}: </strong>{escape(source_url)}",
            "<br><br>",
            f"<strong>{host}</strong> Products with updated prices:",
            "<br>",
            self.render_rows(changed_items.values()) or NO_CHANGES,
            SEPARATOR,
            f"<strong>{host}</strong> New products were added:",
            "<br>",
            self.render_rows(new_items) or NO_CHANGES,
            f"<br><br>============== END OF {host} =================================================<br>",
            "<br>" + "=" * 89 + "<br><br>",
        ]
        return "".join(parts)

    @staticmethod
    def render_rows(entries: Iterable[CatalogEntry]) -> str:
        rows = []
        for index, entry in enumerate(entries, start=1):
            price = "" if entry.price is None else entry.price
            rows.append(
                f"<br><strong>{index}) SKU:</strong> {escape(entry.sku)} "
                f"<strong>Title:</strong> {escape(entry.title)} "
                f"<strong>Price:</strong> {escape(price)}"
            )
        return "".join(rows)

    @staticmethod
    def combine(sections: Iterable[str]) -> str:
        return "".join(sections)


__all__ = ["NO_CHANGES", "ReportComposer", "source_host"]
