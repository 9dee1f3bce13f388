"""Logging configuration built around structlog JSON logging."""

from __future__ import annotations

import logging
import logging.config
import os
import re
from pathlib import Path
from threading import Lock
from typing import Any, Iterable

import structlog

ROOT_LOGGER = "catalog_crawler"
SOURCE_LOGGER_PREFIX = f"{ROOT_LOGGER}.source"

_LOGGING_INITIALISED = False
_SETUP_LOCK = Lock()


def _default_log_dir() -> Path:
    env_root = os.environ.get("CATALOG_CRAWLER_HOME")
    if env_root:
        return Path(env_root).expanduser().resolve() / "logs"
    return Path(__file__).resolve().parents[1] / "logs"


def _log_slug(name: str) -> str:
    return re.sub(r"[^0-9A-Za-z_.-]+", "_", name.strip()).strip("_") or "source"


def _logging_dict(log_dir: Path, level: str) -> dict[str, Any]:
    """Console plus run-wide and error-only JSON files under ``log_dir``."""

    def file_handler(filename: str, handler_level: str) -> dict[str, Any]:
        return {
            "class": "logging.FileHandler",
            "level": handler_level,
            "filename": str(log_dir / filename),
            "formatter": "json",
            "encoding": "utf-8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
            }
        },
        "handlers": {
            "console": {"class": "logging.StreamHandler", "level": level, "formatter": "json"},
            "crawler_file": file_handler("crawler.log", "INFO"),
            "error_file": file_handler("error.log", "ERROR"),
        },
        "loggers": {
            ROOT_LOGGER: {
                "handlers": ["console", "crawler_file", "error_file"],
                "level": level,
                "propagate": False,
            },
        },
    }


def configure_logging(verbose: bool = False) -> structlog.BoundLogger:
    """Configure structlog + stdlib handlers once and return the application logger."""

    global _LOGGING_INITIALISED
    with _SETUP_LOCK:
        if not _LOGGING_INITIALISED:
            log_dir = _default_log_dir()
            (log_dir / "sources").mkdir(parents=True, exist_ok=True)
            logging.config.dictConfig(_logging_dict(log_dir, "DEBUG" if verbose else "INFO"))
            structlog.configure(
                processors=[
                    structlog.contextvars.merge_contextvars,
                    structlog.processors.TimeStamper(fmt="iso"),
                    structlog.stdlib.add_log_level,
                    structlog.processors.format_exc_info,
                    structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
                ],
                logger_factory=structlog.stdlib.LoggerFactory(),
                cache_logger_on_first_use=True,
            )
            _LOGGING_INITIALISED = True
    return structlog.get_logger(ROOT_LOGGER)


def source_logger(source_name: str) -> structlog.BoundLogger:
    """Return a logger bound to one catalog source with its own log file.

    Sources crawled in parallel may share a host, so the file handler is
    registered under a lock and at most once per path.
    """

    configure_logging()
    slug = _log_slug(source_name)
    path = source_log_path(source_name)
    logger_name = f"{SOURCE_LOGGER_PREFIX}.{slug}"
    py_logger = logging.getLogger(logger_name)

    with _SETUP_LOCK:
        registered = any(
            isinstance(handler, logging.FileHandler) and handler.baseFilename == str(path)
            for handler in py_logger.handlers
        )
        if not registered:
            path.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(path, encoding="utf-8")
            handler.setLevel(logging.INFO)
            root_handlers = logging.getLogger(ROOT_LOGGER).handlers
            if root_handlers:
                handler.setFormatter(root_handlers[0].formatter)
            py_logger.addHandler(handler)

    return structlog.get_logger(logger_name).bind(source=source_name)


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    """Return the last N lines from a log file."""

    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        lines = stream.readlines()
    return lines[-line_count:]


def available_source_logs() -> Iterable[Path]:
    sources_dir = _default_log_dir() / "sources"
    if not sources_dir.exists():
        return []
    return sorted(sources_dir.glob("*.log"))


def source_log_path(source_name: str) -> Path:
    return _default_log_dir() / "sources" / f"{_log_slug(source_name)}.log"


def global_log_path() -> Path:
    return _default_log_dir() / "crawler.log"


__all__ = [
    "available_source_logs",
    "configure_logging",
    "global_log_path",
    "source_log_path",
    "source_logger",
    "tail_log",
]
