"""
JSON 스냅샷 파일을 SQLite 저장소로 마이그레이션하는 스크립트.

파일 백엔드가 쓴 캐시 문서(버전 2 또는 이전 서비스의 1.0/1.1)를 읽어
현재 스키마로 변환한 뒤 SQLiteSnapshotStore에 저장합니다.
"""

import sys
import asyncio
from pathlib import Path
from capcache.adapters.storage.sqlite_store import SQLiteSnapshotStore
from capcache.core.errors import PersistenceError
from capcache.core.snapshot import decode_snapshot, encode_snapshot
from capcache.observability.logging_setup import get_logger

log = get_logger("capcache.migrations")


async def migrate(json_path: str, sqlite_path: str, key: str = "snapshot") -> bool:
    """
    JSON 스냅샷 파일을 SQLite로 마이그레이션합니다.

    Args:
        json_path: JSON 스냅샷 파일 경로
        sqlite_path: SQLite 데이터베이스 파일 경로
        key: 스냅샷 행 키
    """
    json_file = Path(json_path)
    if not json_file.exists():
        log.error(f"JSON 파일이 존재하지 않습니다: {json_path}")
        return False

    try:
        snapshot = decode_snapshot(json_file.read_bytes())
    except PersistenceError as e:
        log.error(f"JSON 스냅샷 읽기 실패: {e}")
        return False
    log.info(
        f"JSON 스냅샷 로드 완료: {json_path}, generated_at: {snapshot.generated_at}, "
        f"경보 수: {len(snapshot.alerts)}, zone 수: {snapshot.zones_indexed}"
    )

    store = SQLiteSnapshotStore(sqlite_path, key=key)
    await store.init()
    try:
        await store.write(encode_snapshot(snapshot))
    except PersistenceError as e:
        log.error(f"SQLite 저장 실패: {e}")
        return False

    # 최종 검증
    stored = await store.read()
    verified = stored is not None and decode_snapshot(stored).zones_indexed == snapshot.zones_indexed
    log.info(f"마이그레이션 완료: {store.location}, updated_at: {await store.get_updated_at()}, 검증: {verified}")
    return verified


async def main():
    """메인 함수"""
    if len(sys.argv) < 3:
        print("사용법: python migrate_snapshot_json_to_sqlite.py <json_file> <sqlite_file> [key]")
        print("예시: python migrate_snapshot_json_to_sqlite.py /tmp/aemet_cache.json /data/aemet.db snapshot")
        sys.exit(1)

    json_path = sys.argv[1]
    sqlite_path = sys.argv[2]
    key = sys.argv[3] if len(sys.argv) > 3 else "snapshot"

    success = await migrate(json_path, sqlite_path, key)
    if success:
        print("마이그레이션이 성공적으로 완료되었습니다.")
        sys.exit(0)
    print("마이그레이션 중 오류가 발생했습니다.")
    sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
