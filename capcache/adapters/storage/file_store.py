"""
File-based snapshot store.

Writes go to a sibling temporary file that then replaces the target, so a
crash mid-write never leaves a truncated snapshot behind.
"""

import asyncio
import os
from pathlib import Path
from typing import Optional
from capcache.core.errors import PersistenceError
from capcache.observability.logging_setup import get_logger

log = get_logger("capcache.file_store")


class FileSnapshotStore:
    """파일 기반 스냅샷 저장소"""

    def __init__(self, path: str):
        self.path = Path(path)
        self.location = str(self.path)

    def _read(self) -> Optional[bytes]:
        if not self.path.exists():
            return None
        return self.path.read_bytes()

    def _write(self, data: bytes) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_bytes(data)
        os.replace(str(tmp), str(self.path))

    async def read(self) -> Optional[bytes]:
        try:
            return await asyncio.to_thread(self._read)
        except OSError as e:
            raise PersistenceError(f"{self.location} 읽기 실패: {e}") from e

    async def write(self, data: bytes) -> None:
        try:
            await asyncio.to_thread(self._write, data)
        except OSError as e:
            raise PersistenceError(f"{self.location} 쓰기 실패: {e}") from e
        log.debug(f"스냅샷 파일 기록 path:{self.location} bytes:{len(data)}")
