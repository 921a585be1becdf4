"""Persistent stores: master catalogs and actor ledgers."""

from questledger.storage.catalog import CatalogState, CatalogStore, FlushResult, UpsertResult
from questledger.storage.progress import ProgressStore

__all__ = [
    "CatalogState",
    "CatalogStore",
    "FlushResult",
    "ProgressStore",
    "UpsertResult",
]
