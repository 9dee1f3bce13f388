"""Exception hierarchy shared by the crawl pipeline."""

from __future__ import annotations


class CrawlerError(Exception):
    """Base class for errors raised by catalog-crawler."""


class InvalidSourceUrl(CrawlerError, ValueError):
    """Source URL is not an absolute http(s) URL."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Invalid source URL: {url!r}")
        self.url = url


class FetchError(CrawlerError):
    """A catalog page could not be retrieved or decoded."""

    def __init__(self, message: str, *, url: str | None = None, page: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.page = page


class SourceTimeout(FetchError):
    """The per-source wall-clock budget ran out mid-crawl."""


class StorageError(CrawlerError):
    """A read or write against the product table failed."""


class NotificationError(CrawlerError):
    """The change report could not be delivered."""


__all__ = [
    "CrawlerError",
    "FetchError",
    "InvalidSourceUrl",
    "NotificationError",
    "SourceTimeout",
    "StorageError",
]
