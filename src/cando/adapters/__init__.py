"""Adapters - I/O implementations of ports."""

from .json_store import JsonSnapshotStore, StoreError

__all__ = [
    "JsonSnapshotStore",
    "StoreError",
]
