"""Remote tabular store backends."""

from .base import BaseTabularStore  # noqa: F401
from .google_sheets import GoogleSheetsStore  # noqa: F401
from .memory import InMemoryStore  # noqa: F401

__all__ = [
    "BaseTabularStore",
    "GoogleSheetsStore",
    "InMemoryStore",
]
