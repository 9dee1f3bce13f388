"""Bounded worker pool for crawling several sources at once."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from threading import Lock
from typing import Callable, Iterable, TypeVar

T = TypeVar("T")
R = TypeVar("R")


class ThreadPoolManager:
    """Lazily create one shared executor and run jobs in submission order."""

    def __init__(self, max_workers: int = 1) -> None:
        self.max_workers = max(1, max_workers)
        self._executor: ThreadPoolExecutor | None = None
        self._lock = Lock()

    def get(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers, thread_name_prefix="catalog-crawler"
                )
            return self._executor

    def map_ordered(self, func: Callable[[T], R], items: Iterable[T]) -> list[R]:
        """Apply ``func`` to ``items``; results follow input order."""

        items = list(items)
        if self.max_workers == 1 or len(items) <= 1:
            return [func(item) for item in items]
        futures = [self.get().submit(func, item) for item in items]
        return [future.result() for future in futures]

    def shutdown(self) -> None:
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None


__all__ = ["ThreadPoolManager"]
