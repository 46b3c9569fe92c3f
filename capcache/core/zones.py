"""
Zone matching and indexing for AEMET CAP alerts.

Zones are fixed 6-digit codes. Two independent mechanisms live here:

* ``match_entries`` answers a single-zone query over one bundle, preferring
  archive entries whose file name contains the zone and falling back to
  geocode values only when no file name matches.
* ``build_zone_index`` precomputes membership for every zone at once by
  scanning file names and geocode values for any 6-digit run. This is more
  permissive than ``match_entries``: a coincidental 6-digit run in an
  unrelated identifier also creates an association. An alert is listed at
  most once per zone even when both its file name and a geocode carry that
  zone, so per-zone counts are counts of distinct alerts.
"""

import re
from typing import Dict, Iterable, List
from capcache.core.cap_parser import parse_document
from capcache.core.errors import CapParseError, InvalidZoneError
from capcache.core.models import ArchiveEntry, IndexedAlert, ZoneCount, ZoneMatch
from capcache.observability.logging_setup import get_logger

log = get_logger("capcache.zones")

ZONE_PATTERN = re.compile(r"[0-9]{6}")


def validate_zone(zone: str) -> str:
    """
    zone 코드 형식을 검증합니다.

    Raises:
        InvalidZoneError: 정확히 6자리 숫자가 아닌 경우
    """
    candidate = (zone or "").strip()
    if not ZONE_PATTERN.fullmatch(candidate):
        raise InvalidZoneError(zone)
    return candidate


def extract_zones(text: str) -> List[str]:
    """문자열 안의 6자리 숫자 연속을 등장 순서대로 (중복 없이) 추출합니다."""
    seen: Dict[str, None] = {}
    for zone in ZONE_PATTERN.findall(text or ""):
        seen.setdefault(zone, None)
    return list(seen)


def zones_for_alert(alert: IndexedAlert) -> List[str]:
    """파일명과 모든 geocode 값에서 발견된 zone 목록"""
    seen: Dict[str, None] = {}
    for zone in extract_zones(alert.file):
        seen.setdefault(zone, None)
    for value in alert.geocode_values():
        for zone in extract_zones(value):
            seen.setdefault(zone, None)
    return list(seen)


def build_zone_index(alerts: Iterable[IndexedAlert]) -> Dict[str, List[IndexedAlert]]:
    """
    zone -> 경보 목록 색인을 만듭니다.

    삽입 순서는 경보 목록 순서를 따르며, 한 경보는 zone 버킷마다 한 번만 들어갑니다.
    """
    index: Dict[str, List[IndexedAlert]] = {}
    for alert in alerts:
        for zone in zones_for_alert(alert):
            index.setdefault(zone, []).append(alert)
    return index


def top_zones(index: Dict[str, List[IndexedAlert]], limit: int = 10) -> List[ZoneCount]:
    counts = [ZoneCount(zone=zone, count=len(alerts)) for zone, alerts in index.items()]
    counts.sort(key=lambda zc: zc.count, reverse=True)
    return counts[:limit]


def _parse_entry(area: str, entry: ArchiveEntry) -> List[IndexedAlert]:
    try:
        return parse_document(area, entry.name, entry.data)
    except CapParseError as e:
        log.warning(f"zone 매칭 중 문서 파싱 실패 area:{area} file:{entry.name} error:{e}")
        return []


def match_entries(area: str, entries: List[ArchiveEntry], zone: str) -> List[ZoneMatch]:
    """
    번들 하나에서 요청된 zone의 경보를 찾습니다.

    1. 파일명 매칭: 이름에 zone이 포함된 .xml 항목
    2. geocode 매칭: 1에서 후보가 하나도 없을 때만, 모든 .xml 항목을 파싱해
       geocode 값에 zone이 포함된 경보만 남김

    Args:
        area: 번들의 영역 코드
        entries: 번들 항목
        zone: 6자리 zone 코드

    Returns:
        매칭 전략이 기록된 경보 목록
    """
    zone = validate_zone(zone)
    xml_entries = [e for e in entries if e.is_xml]

    by_name = [e for e in xml_entries if zone in e.name]
    if by_name:
        return [
            ZoneMatch(**alert.model_dump(), matched_by="file_name")
            for entry in by_name
            for alert in _parse_entry(area, entry)
        ]

    matches: List[ZoneMatch] = []
    for entry in xml_entries:
        for alert in _parse_entry(area, entry):
            if any(zone in value for value in alert.geocode_values()):
                matches.append(ZoneMatch(**alert.model_dump(), matched_by="geocode"))
    return matches
