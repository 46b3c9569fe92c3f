"""
Core domain models for the AEMET CAP cache.

This module defines the normalized CAP alert structure and the records
produced by one refresh cycle, using Pydantic v2 for type safety.
Optional CAP fields use None for "absent"; an empty string means the
element was present but blank.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Literal, Optional
from pydantic import BaseModel, Field

# 매칭 전략 타입 정의
MatchStrategy = Literal["file_name", "geocode"]

ERROR_FILE_NAME = "[ERROR]"
RAW_DOCUMENT_NAME = "datos.xml"


class NameValue(BaseModel):
    """name/value 쌍 (parameter, eventCode, geocode)"""
    name: Optional[str] = None
    value: Optional[str] = None


class AlertHeader(BaseModel):
    """CAP alert 헤더"""
    identifier: Optional[str] = None
    sender: Optional[str] = None
    sent: Optional[str] = None
    status: Optional[str] = None
    msg_type: Optional[str] = None
    scope: Optional[str] = None


class AreaBlock(BaseModel):
    """CAP area 블록"""
    area_desc: Optional[str] = None
    altitude: Optional[str] = None
    ceiling: Optional[str] = None
    polygons: List[str] = Field(default_factory=list)
    circles: List[str] = Field(default_factory=list)
    geocodes: List[NameValue] = Field(default_factory=list)


class AlertInfoBlock(BaseModel):
    """CAP info 블록"""
    language: Optional[str] = None
    category: List[str] = Field(default_factory=list)
    event: Optional[str] = None
    response_type: List[str] = Field(default_factory=list)
    urgency: Optional[str] = None
    severity: Optional[str] = None
    certainty: Optional[str] = None
    effective: Optional[str] = None
    onset: Optional[str] = None
    expires: Optional[str] = None
    headline: Optional[str] = None
    description: Optional[str] = None
    instruction: Optional[str] = None
    web: Optional[str] = None
    contact: Optional[str] = None
    parameters: List[NameValue] = Field(default_factory=list)
    event_codes: List[NameValue] = Field(default_factory=list)
    areas: List[AreaBlock] = Field(default_factory=list)


class CapAlert(BaseModel):
    """파싱된 CAP <alert> 하나"""
    header: AlertHeader = Field(default_factory=AlertHeader)
    info: List[AlertInfoBlock] = Field(default_factory=list)

    def geocode_values(self) -> Iterator[str]:
        """모든 area 블록의 geocode 값을 순서대로 반환합니다."""
        for info in self.info:
            for area in info.areas:
                for geocode in area.geocodes:
                    if geocode.value is not None:
                        yield geocode.value


class IndexedAlert(CapAlert):
    """출처 영역/파일 정보가 붙은 경보"""
    area: str
    file: str
    raw_xml: Optional[str] = None


class ZoneMatch(IndexedAlert):
    """단일 zone 조회 결과 (매칭 전략 포함)"""
    matched_by: MatchStrategy


@dataclass(frozen=True)
class ArchiveEntry:
    """아카이브 항목"""
    name: str
    size: int
    sha1: str
    data: bytes = field(repr=False)

    @property
    def is_xml(self) -> bool:
        return self.name.lower().endswith(".xml")


class FileRecord(BaseModel):
    """파일 인벤토리 항목"""
    area: str
    name: str
    size: int = 0
    sha1: Optional[str] = None
    error: Optional[str] = None
    parse_error: Optional[str] = None


class AreaResult(BaseModel):
    """영역 하나의 수집 결과"""
    area: str
    files: List[FileRecord] = Field(default_factory=list)
    alerts: List[IndexedAlert] = Field(default_factory=list)
    metadata: Optional[Any] = None
    archive: bool = True
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, area: str, message: str) -> "AreaResult":
        """에러 마커가 달린 인벤토리 항목 하나로 실패 결과를 만듭니다."""
        return cls(
            area=area,
            files=[FileRecord(area=area, name=ERROR_FILE_NAME, size=0, sha1=None, error=message)],
            error=message,
        )


class RefreshReport(BaseModel):
    """refresh() 결과"""
    areas_tried: int
    files_count: int
    alerts_count: int
    elapsed_ms: int
    generated_at: Optional[str] = None
    failed_areas: List[str] = Field(default_factory=list)


class QueryResult(BaseModel):
    """query() 결과"""
    zone: str
    generated_at: Optional[str] = None
    stale: bool = False
    alerts: List[IndexedAlert] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.alerts)


class ZoneCount(BaseModel):
    zone: str
    count: int


class CacheStats(BaseModel):
    """stats() 결과"""
    version: int
    generated_at: Optional[str] = None
    areas: List[str] = Field(default_factory=list)
    files_count: int = 0
    alerts_count: int = 0
    zones_indexed: int = 0
    top_zones: List[ZoneCount] = Field(default_factory=list)
    stale: bool = False
    failed_areas: Dict[str, str] = Field(default_factory=dict)
