"""
스냅샷 마이그레이션 스크립트 테스트

이 모듈은 JSON 스냅샷 파일을 SQLite 저장소로 옮기는 과정을 테스트합니다.
"""

import importlib.util
import json
from pathlib import Path
import pytest
from capcache.adapters.storage import SQLiteSnapshotStore
from capcache.core.snapshot import decode_snapshot

SCRIPT = Path(__file__).resolve().parents[3] / "migrations" / "migrate_snapshot_json_to_sqlite.py"


@pytest.fixture(scope="module")
def migration():
    """마이그레이션 스크립트 모듈"""
    spec = importlib.util.spec_from_file_location("migrate_snapshot_json_to_sqlite", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestMigrateSnapshot:
    """migrate 함수 테스트"""

    async def test_legacy_file_to_sqlite(self, migration, tmp_path):
        """1.0 JSON 문서를 현재 스키마로 SQLite에 저장"""
        legacy = {
            "version": "1.0",
            "generatedAt": "2024-06-01T10:00:00.000Z",
            "areas": ["61"],
            "files": [],
            "alerts": [{
                "area": "61",
                "file": "AFAZ614102VI.xml",
                "header": {"identifier": "L-1"},
                "info": [],
            }],
        }
        json_path = tmp_path / "aemet_cache.json"
        json_path.write_text(json.dumps(legacy), encoding="utf-8")
        db_path = str(tmp_path / "aemet.db")

        assert await migration.migrate(str(json_path), db_path)

        stored = decode_snapshot(await SQLiteSnapshotStore(db_path).read())
        assert stored.generated_at == "2024-06-01T10:00:00.000Z"
        assert stored.version == 2
        assert [a.header.identifier for a in stored.alerts_for("614102")] == ["L-1"]

    async def test_missing_json(self, migration, tmp_path):
        """JSON 파일이 없으면 실패"""
        assert not await migration.migrate(str(tmp_path / "nope.json"), str(tmp_path / "a.db"))

    async def test_corrupt_json(self, migration, tmp_path):
        """손상된 JSON은 실패"""
        json_path = tmp_path / "bad.json"
        json_path.write_bytes(b"{bad")

        assert not await migration.migrate(str(json_path), str(tmp_path / "a.db"))
