"""Engine components orchestrating fetch → classify → persist → report."""

from .catalog import CatalogEntry, flatten_products
from .classifier import Classification, Classifier
from .fetcher import CatalogFetcher, build_page_url, validate_source_url
from .report import ReportComposer
from .store import PersistedProduct, ProductStore
from .thread_pool import ThreadPoolManager

__all__ = [
    "CatalogEntry",
    "CatalogFetcher",
    "Classification",
    "Classifier",
    "PersistedProduct",
    "ProductStore",
    "ReportComposer",
    "ThreadPoolManager",
    "build_page_url",
    "flatten_products",
    "validate_source_url",
]
