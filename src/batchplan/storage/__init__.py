# src/batchplan/storage/__init__.py
"""Storage implementations."""

from batchplan.storage.local import LocalStorage

__all__ = ["LocalStorage"]
