"""
Storage adapters for the AEMET CAP cache.

This module contains snapshot storage backends: a path-addressed JSON
file and a SQLite key/blob table.
"""

from .file_store import FileSnapshotStore
from .sqlite_store import SQLiteSnapshotStore


def build_snapshot_store(backend: str, path: str, key: str = "snapshot"):
    """설정된 백엔드의 스냅샷 저장소를 생성합니다."""
    if backend == "sqlite":
        return SQLiteSnapshotStore(path, key=key)
    if backend == "file":
        return FileSnapshotStore(path)
    raise ValueError(f"알 수 없는 저장소 백엔드: {backend}")


__all__ = ["FileSnapshotStore", "SQLiteSnapshotStore", "build_snapshot_store"]
