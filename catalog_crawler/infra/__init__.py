"""Infra layer utilities (storage, mail delivery)."""

from .mailer import SMTPNotifier
from .storage import PRODUCTS_TABLE, SQLiteManager

__all__ = ["PRODUCTS_TABLE", "SMTPNotifier", "SQLiteManager"]
