"""
SQLite-based snapshot store for the AEMET CAP cache.

This module stores the serialized snapshot as a single blob row keyed
by name, for deployments that keep state in one database file.
"""

import aiosqlite
import time
from pathlib import Path
from typing import Optional
from capcache.core.errors import PersistenceError
from capcache.observability.logging_setup import get_logger

log = get_logger("capcache.sqlite_store")

# SQLite 스키마
SCHEMA = """
CREATE TABLE IF NOT EXISTS snapshots (
    k TEXT PRIMARY KEY,
    data BLOB NOT NULL,
    updated_at INTEGER NOT NULL
);
"""

class SQLiteSnapshotStore:
    """SQLite 기반 스냅샷 저장소"""
    
    def __init__(self, path: str, key: str = "snapshot"):
        """
        초기화합니다.
        
        Args:
            path: SQLite 데이터베이스 파일 경로
            key: 스냅샷 행 키
        """
        self.path = path
        self.key = key
        self.location = f"sqlite://{path}#{key}"
        self._initialized = False
        log.info(f"SQLiteSnapshotStore 초기화: {path}, key: {key}")
    
    async def init(self) -> None:
        """데이터베이스를 초기화합니다."""
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self.path) as db:
            await db.executescript(SCHEMA)
            await db.commit()
        self._initialized = True
        log.info("SQLiteSnapshotStore 스키마 초기화 완료")
    
    async def read(self) -> Optional[bytes]:
        """
        저장된 스냅샷을 읽습니다.
        
        Returns:
            스냅샷 바이트 또는 None
        """
        if not Path(self.path).exists():
            return None
        try:
            if not self._initialized:
                await self.init()
            async with aiosqlite.connect(self.path) as db:
                cursor = await db.execute("SELECT data FROM snapshots WHERE k = ?", (self.key,))
                row = await cursor.fetchone()
                return bytes(row[0]) if row else None
        except (aiosqlite.Error, OSError) as e:
            raise PersistenceError(f"{self.location} 읽기 실패: {e}") from e
    
    async def write(self, data: bytes) -> None:
        """
        스냅샷을 저장합니다 (기존 행 교체).
        
        Args:
            data: 직렬화된 스냅샷
        """
        try:
            if not self._initialized:
                await self.init()
            async with aiosqlite.connect(self.path) as db:
                await db.execute(
                    "INSERT OR REPLACE INTO snapshots (k, data, updated_at) VALUES (?, ?, ?)",
                    (self.key, data, int(time.time()))
                )
                await db.commit()
        except (aiosqlite.Error, OSError) as e:
            raise PersistenceError(f"{self.location} 쓰기 실패: {e}") from e
    
    async def get_updated_at(self) -> Optional[int]:
        """
        마지막 저장 시각(Unix timestamp)을 반환합니다.
        
        Returns:
            저장 시각 또는 None
        """
        try:
            if not self._initialized:
                await self.init()
            async with aiosqlite.connect(self.path) as db:
                cursor = await db.execute("SELECT updated_at FROM snapshots WHERE k = ?", (self.key,))
                row = await cursor.fetchone()
                return int(row[0]) if row else None
        except (aiosqlite.Error, OSError) as e:
            log.error(f"SQLiteSnapshotStore get_updated_at 오류: {e}")
            return None
