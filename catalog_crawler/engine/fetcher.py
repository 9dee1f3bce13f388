"""Paginated retrieval of JSON product feeds."""

from __future__ import annotations

import time
from typing import Any, Callable
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import httpx
import structlog

from ..errors import FetchError, InvalidSourceUrl, SourceTimeout

DEFAULT_PAGE_SIZE = 500


def validate_source_url(url: str) -> str:
    """Return the stripped URL, raising ``InvalidSourceUrl`` unless it is absolute http(s)."""

    candidate = (url or "").strip()
    try:
        parts = urlsplit(candidate)
    except ValueError as exc:
        raise InvalidSourceUrl(url) from exc
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise InvalidSourceUrl(url)
    return candidate


def build_page_url(source_url: str, limit: int, page: int) -> str:
    """Set ``limit``/``page`` on ``source_url``, keeping any other query arguments."""

    parts = urlsplit(source_url)
    query = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key not in ("limit", "page")
    ]
    query.extend((("limit", str(limit)), ("page", str(page))))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


class CatalogFetcher:
    """Walk a feed page by page until it runs dry."""

    def __init__(
        self,
        page_size: int = DEFAULT_PAGE_SIZE,
        request_timeout: float = 15.0,
        page_retries: int = 0,
        user_agent: str | None = None,
        client: httpx.Client | None = None,
        logger: structlog.BoundLogger | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.page_size = page_size
        self.request_timeout = request_timeout
        self.page_retries = page_retries
        self.logger = logger or structlog.get_logger("catalog_crawler.fetcher")
        self._clock = clock
        self._client = client or httpx.Client(
            follow_redirects=True,
            timeout=request_timeout,
            headers={"User-Agent": user_agent, "Accept": "application/json"}
            if user_agent
            else {"Accept": "application/json"},
        )

    def close(self) -> None:
        self._client.close()

    def fetch_all(
        self,
        source_url: str,
        deadline: float | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> list[dict[str, Any]]:
        """Return every product of ``source_url``.

        An invalid URL yields an empty list. A page that fails to download or
        decode ends the walk and the pages already collected are returned.
        ``SourceTimeout`` is raised once ``deadline`` (a ``clock`` reading) has
        passed before the next page is requested.
        """

        log = logger or self.logger
        try:
            source_url = validate_source_url(source_url)
        except InvalidSourceUrl:
            log.warning("invalid_source_url", url=source_url)
            return []

        products: list[dict[str, Any]] = []
        page = 1
        while True:
            timeout = self._request_timeout(source_url, page, deadline)
            try:
                batch = self._fetch_page_with_retry(source_url, page, timeout, log)
            except FetchError as exc:
                log.warning(
                    "fetch_truncated",
                    url=source_url,
                    page=page,
                    collected=len(products),
                    error=str(exc),
                )
                break
            if not batch:
                log.debug("catalog_exhausted", url=source_url, page=page)
                break
            products.extend(batch)
            log.info("page_fetched", url=source_url, page=page, count=len(batch))
            page += 1
        log.info("catalog_fetched", url=source_url, pages=page - 1, products=len(products))
        return products

    def fetch_page(self, source_url: str, page: int, timeout: float | None = None) -> list[dict[str, Any]]:
        """Fetch one page; an absent or malformed ``products`` array counts as empty."""

        url = build_page_url(source_url, self.page_size, page)
        try:
            response = self._client.get(url, timeout=timeout or self.request_timeout)
        except httpx.TimeoutException as exc:
            raise FetchError(f"Timed out requesting {url}", url=url, page=page) from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"Request failed for {url}: {exc}", url=url, page=page) from exc
        if response.status_code >= 400:
            raise FetchError(f"Unexpected status {response.status_code} for {url}", url=url, page=page)
        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchError(f"Response from {url} is not JSON", url=url, page=page) from exc
        if not isinstance(payload, dict):
            return []
        products = payload.get("products")
        if not isinstance(products, list):
            return []
        return products

    # ------------------------------------------------------------------
    def _fetch_page_with_retry(
        self,
        source_url: str,
        page: int,
        timeout: float,
        log: structlog.BoundLogger,
    ) -> list[dict[str, Any]]:
        attempt = 0
        while True:
            try:
                return self.fetch_page(source_url, page, timeout)
            except FetchError as exc:
                if attempt >= self.page_retries:
                    raise
                attempt += 1
                log.info("page_retry", url=source_url, page=page, attempt=attempt, error=str(exc))

    def _request_timeout(self, source_url: str, page: int, deadline: float | None) -> float:
        if deadline is None:
            return self.request_timeout
        remaining = deadline - self._clock()
        if remaining <= 0:
            raise SourceTimeout(
                f"Time budget exhausted before page {page} of {source_url}",
                url=source_url,
                page=page,
            )
        return min(self.request_timeout, remaining)


__all__ = ["CatalogFetcher", "DEFAULT_PAGE_SIZE", "build_page_url", "validate_source_url"]
