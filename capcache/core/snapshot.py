"""
Cache snapshot model and its persisted JSON schema.

A snapshot is an immutable point-in-time aggregate of every area's alerts.
Its zone index is derived from the alert list at construction and is never
persisted. The persisted document carries a ``version`` tag; documents
written by the original service (``"1.0"``/``"1.1"``) are migrated on load.
"""

import json
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, PrivateAttr, ValidationError
from capcache.core.errors import PersistenceError
from capcache.core.models import FileRecord, IndexedAlert
from capcache.core.zones import build_zone_index

SNAPSHOT_SCHEMA_VERSION = 2
LEGACY_VERSIONS = ("1.0", "1.1")


class CacheSnapshot(BaseModel):
    """캐시 스냅샷 (zone 색인은 파생 데이터)"""
    version: int = SNAPSHOT_SCHEMA_VERSION
    generated_at: Optional[str] = None
    areas: List[str] = Field(default_factory=list)
    files: List[FileRecord] = Field(default_factory=list)
    alerts: List[IndexedAlert] = Field(default_factory=list)

    _zone_index: Dict[str, List[IndexedAlert]] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        self._zone_index = build_zone_index(self.alerts)

    @classmethod
    def empty(cls) -> "CacheSnapshot":
        return cls()

    @property
    def zone_index(self) -> Dict[str, List[IndexedAlert]]:
        return self._zone_index

    @property
    def zones_indexed(self) -> int:
        return len(self._zone_index)

    def alerts_for(self, zone: str) -> List[IndexedAlert]:
        return list(self._zone_index.get(zone, []))

    def failed_areas(self) -> Dict[str, str]:
        return {f.area: f.error for f in self.files if f.error is not None}


def encode_snapshot(snapshot: CacheSnapshot) -> bytes:
    """스냅샷을 영속 문서(JSON, UTF-8)로 직렬화합니다. zone 색인은 제외합니다."""
    document = {
        "version": SNAPSHOT_SCHEMA_VERSION,
        "generatedAt": snapshot.generated_at,
        "areas": list(snapshot.areas),
        "files": [f.model_dump(mode="json") for f in snapshot.files],
        "alerts": [a.model_dump(mode="json") for a in snapshot.alerts],
    }
    return json.dumps(document, ensure_ascii=False).encode("utf-8")


def _s(value: Any) -> Optional[str]:
    # 원본 서비스는 숫자처럼 보이는 값을 숫자로 저장했음
    return None if value is None else str(value)


def _pairs(items: Any, name_key: str) -> List[Dict[str, Optional[str]]]:
    return [
        {"name": _s(item.get(name_key)), "value": _s(item.get("value"))}
        for item in (items or [])
        if isinstance(item, dict)
    ]


def _migrate_legacy_alert(raw: Dict[str, Any]) -> Dict[str, Any]:
    """1.x 문서의 camelCase 경보를 현재 모델 모양으로 변환합니다."""
    header = raw.get("header") or {}
    info_list = []
    for info in raw.get("info") or []:
        areas = []
        for area in info.get("areas") or []:
            areas.append({
                "area_desc": _s(area.get("areaDesc")),
                "altitude": _s(area.get("altitude")),
                "ceiling": _s(area.get("ceiling")),
                "polygons": [str(p) for p in area.get("polygons") or []],
                "circles": [str(c) for c in area.get("circles") or []],
                "geocodes": _pairs(area.get("geocodes"), "valueName"),
            })
        info_list.append({
            "language": _s(info.get("language")),
            "category": [str(c) for c in info.get("category") or []],
            "event": _s(info.get("event")),
            "response_type": [str(r) for r in info.get("responseType") or []],
            "urgency": _s(info.get("urgency")),
            "severity": _s(info.get("severity")),
            "certainty": _s(info.get("certainty")),
            "effective": _s(info.get("effective")),
            "onset": _s(info.get("onset")),
            "expires": _s(info.get("expires")),
            "headline": _s(info.get("headline")),
            "description": _s(info.get("description")),
            "instruction": _s(info.get("instruction")),
            "web": _s(info.get("web")),
            "contact": _s(info.get("contact")),
            "parameters": _pairs(info.get("parameters"), "valueName"),
            "event_codes": _pairs(info.get("eventCode"), "name"),
            "areas": areas,
        })
    return {
        "area": _s(raw.get("area")) or "",
        "file": _s(raw.get("file")) or "",
        "raw_xml": raw.get("raw_xml"),
        "header": {
            "identifier": _s(header.get("identifier")),
            "sender": _s(header.get("sender")),
            "sent": _s(header.get("sent")),
            "status": _s(header.get("status")),
            "msg_type": _s(header.get("msgType")),
            "scope": _s(header.get("scope")),
        },
        "info": info_list,
    }


def decode_snapshot(data: bytes) -> CacheSnapshot:
    """
    영속 문서를 스냅샷으로 복원하고 zone 색인을 다시 계산합니다.

    Raises:
        PersistenceError: JSON이 손상되었거나 알 수 없는 버전인 경우
    """
    try:
        document = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise PersistenceError(f"스냅샷 문서 손상: {e}") from e
    if not isinstance(document, dict):
        raise PersistenceError("스냅샷 문서가 JSON 객체가 아닙니다")

    version = document.get("version")
    alerts = document.get("alerts") if isinstance(document.get("alerts"), list) else []
    if str(version) in LEGACY_VERSIONS:
        alerts = [_migrate_legacy_alert(a) for a in alerts if isinstance(a, dict)]
    elif version != SNAPSHOT_SCHEMA_VERSION:
        raise PersistenceError(f"지원하지 않는 스냅샷 버전: {version!r}")

    try:
        return CacheSnapshot(
            generated_at=document.get("generatedAt"),
            areas=[str(a) for a in document.get("areas") or []],
            files=[FileRecord.model_validate(f) for f in document.get("files") or []],
            alerts=[IndexedAlert.model_validate(a) for a in alerts],
        )
    except ValidationError as e:
        raise PersistenceError(f"스냅샷 문서 검증 실패: {e}") from e
