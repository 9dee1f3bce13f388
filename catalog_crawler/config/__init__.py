"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import CrawlerConfig, NotifierConfig, ScheduleConfig

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "CrawlerConfig",
    "NotifierConfig",
    "ScheduleConfig",
]
