"""Convenience exports for ORM models."""
from .storage_item import StorageItem

__all__ = ["StorageItem"]
