"""Configuration loading helpers for catalog-crawler."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from .models import CrawlerConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
CONFIG_FILENAME = "crawler_config.yaml"
HOME_ENV_VAR = "CATALOG_CRAWLER_HOME"


def _check_suffix(path: Path) -> None:
    if path.suffix not in CONFIG_EXTENSIONS:
        raise ValueError(f"Unsupported configuration format {path.suffix!r}: {path}")


def _read_file(path: Path) -> dict:
    _check_suffix(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    _check_suffix(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    logs_dir: Path | None = None
    config_path: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get(HOME_ENV_VAR)
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path(__file__).resolve().parents[2]).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.logs_dir = (root / "logs").resolve()
        if self.config_path is None:
            self.config_path = self.data_dir / CONFIG_FILENAME
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._cache: CrawlerConfig | None = None

    @property
    def path(self) -> Path:
        return self.locator.config_path

    def load(self) -> CrawlerConfig:
        if self._cache is not None:
            return self._cache
        if self.path.exists():
            config = CrawlerConfig.model_validate(_read_file(self.path))
        else:
            config = CrawlerConfig()
            self.save(config)
        self._cache = config
        return config

    def reload(self) -> CrawlerConfig:
        self._cache = None
        return self.load()

    def save(self, config: CrawlerConfig) -> None:
        _write_file(self.path, config.model_dump(mode="json"))
        self._cache = config

    # ------------------------------------------------------------------
    # Source list helpers
    # ------------------------------------------------------------------
    def list_sources(self) -> list[str]:
        return list(self.load().source_urls)

    def add_source(self, url: str) -> bool:
        """Append ``url`` to the source list; return False when already present."""

        config = self.load()
        url = url.strip()
        if not url or url in config.source_urls:
            return False
        self.save(config.model_copy(update={"source_urls": [*config.source_urls, url]}))
        return True

    def remove_source(self, url: str) -> bool:
        config = self.load()
        url = url.strip()
        if url not in config.source_urls:
            return False
        remaining = [item for item in config.source_urls if item != url]
        self.save(config.model_copy(update={"source_urls": remaining}))
        return True

    def database_path(self) -> Path:
        return self.load().resolved_database_path(self.locator.project_root)


__all__ = ["CONFIG_EXTENSIONS", "ConfigLocator", "ConfigRepository", "HOME_ENV_VAR"]
