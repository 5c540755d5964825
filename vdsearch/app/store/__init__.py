"""Hosted table store adapters (promotions and search history)."""

from .adapters import (
    BaseTableStore,
    InMemoryTableStore,
    StoreError,
    SupabaseTableStore,
)

__all__ = [
    "BaseTableStore",
    "InMemoryTableStore",
    "StoreError",
    "SupabaseTableStore",
]
