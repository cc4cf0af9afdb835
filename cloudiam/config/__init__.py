"""Configuration module for application settings."""

from .settings import settings
from .database import get_db, init_db, transaction

__all__ = [
    "settings",
    "get_db",
    "init_db",
    "transaction",
]
