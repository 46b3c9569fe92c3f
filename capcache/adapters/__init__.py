"""
Adapters for the AEMET CAP cache.

This module contains the concrete implementations of port interfaces
that handle external I/O: the AEMET OpenData HTTP client and the
snapshot storage backends.
"""

from .aemet.client import AemetClient
from .storage import FileSnapshotStore, SQLiteSnapshotStore, build_snapshot_store

__all__ = ["AemetClient", "FileSnapshotStore", "SQLiteSnapshotStore", "build_snapshot_store"]
