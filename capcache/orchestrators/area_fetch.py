"""
Area fetch orchestrator for the AEMET CAP cache.

For each configured area this module resolves the discovery catalog,
downloads and decodes the bundle, parses every XML document and fetches
the optional metadata. Areas are fetched concurrently and isolated from
each other: a failing area becomes an inventory row with an error marker.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional, Tuple
from capcache.core.bundle import decode_bundle, sha1_hex
from capcache.core.cap_parser import parse_document
from capcache.core.errors import CapCacheError, CapParseError, MissingCredentialError, UpstreamError
from capcache.core.models import (
    RAW_DOCUMENT_NAME, AreaResult, ArchiveEntry, FileRecord, IndexedAlert, ZoneMatch,
)
from capcache.core.text import decode_json
from capcache.core.zones import match_entries, validate_zone
from capcache.observability import metrics
from capcache.observability.logging_setup import get_logger
from capcache.ports.upstream import FetchedPayload, UpstreamPort

log = get_logger("capcache.area_fetch")


class AreaFetchOrchestrator:
    """영역별 수집 오케스트레이터"""

    def __init__(self, upstream: UpstreamPort, *, max_concurrency: int = 4):
        """
        초기화합니다.

        Args:
            upstream: AEMET 업스트림 포트
            max_concurrency: 동시에 수집할 최대 영역 수
        """
        self.upstream = upstream
        self.max_concurrency = max(1, max_concurrency)

    async def _resolve_bundle(self, area: str) -> Tuple[Dict[str, Any], FetchedPayload]:
        """카탈로그를 조회하고 데이터 번들을 내려받습니다."""
        catalog = await self.upstream.discover(area)
        datos = catalog.get("datos")
        if not datos:
            detail = catalog.get("descripcion")
            suffix = f" ({catalog.get('estado')}: {detail})" if detail else ""
            raise UpstreamError(f'Catálogo sin "datos" para área {area}{suffix}')
        bundle = await self.upstream.download(datos)
        return catalog, bundle

    def _parse(self, area: str, name: str, data: bytes) -> Tuple[List[IndexedAlert], Optional[str]]:
        try:
            alerts = parse_document(area, name, data)
        except CapParseError as e:
            metrics.documents_parsed_total.labels(outcome="error").inc()
            log.warning(f"CAP 문서 파싱 실패 area:{area} file:{name} error:{e}")
            return [], str(e)
        metrics.documents_parsed_total.labels(outcome="ok").inc()
        return alerts, None

    def process_bundle(self, area: str, body: bytes) -> Tuple[List[FileRecord], List[IndexedAlert], bool]:
        """
        번들 바이트를 인벤토리와 경보로 변환합니다.

        아카이브 추출이 구조적으로 실패하면 버퍼 전체를 하나의 XML 문서로 취급합니다.

        Returns:
            (파일 인벤토리, 경보 목록, 아카이브 여부)
        """
        files: List[FileRecord] = []
        alerts: List[IndexedAlert] = []
        decoded = decode_bundle(body)

        if decoded.ok:
            for entry in decoded.entries:
                parse_error = None
                if entry.is_xml:
                    parsed, parse_error = self._parse(area, entry.name, entry.data)
                    alerts.extend(parsed)
                files.append(FileRecord(area=area, name=entry.name, size=entry.size, sha1=entry.sha1,
                                        parse_error=parse_error))
            return files, alerts, True

        metrics.bundle_fallback_total.inc()
        log.info(f"아카이브가 아님, 원시 XML 문서로 처리 area:{area} reason:{decoded.error}")
        parsed, parse_error = self._parse(area, RAW_DOCUMENT_NAME, decoded.payload)
        files.append(FileRecord(area=area, name=RAW_DOCUMENT_NAME, size=len(decoded.payload),
                                sha1=sha1_hex(decoded.payload), parse_error=parse_error))
        return files, parsed, False

    async def _fetch_metadata(self, area: str, url: str) -> Optional[Any]:
        """메타데이터는 선택 사항이므로 실패해도 영역을 실패시키지 않습니다."""
        try:
            payload = await self.upstream.download(url)
            return decode_json(payload.body, payload.content_type)
        except (UpstreamError, ValueError) as e:
            metrics.metadata_failures_total.inc()
            log.warning(f"메타데이터 조회 실패 (무시) area:{area} error:{e}")
            return None

    async def fetch_area(self, area: str) -> AreaResult:
        """
        영역 하나를 수집합니다: 카탈로그 → 번들 → 파싱 → 메타데이터.

        Raises:
            CapCacheError: 카탈로그/다운로드 실패
        """
        catalog, bundle = await self._resolve_bundle(area)
        files, alerts, archive = await asyncio.to_thread(self.process_bundle, area, bundle.body)

        metadata = None
        metadatos = catalog.get("metadatos")
        if metadatos:
            metadata = await self._fetch_metadata(area, metadatos)

        log.info(f"영역 수집 완료 area:{area} files:{len(files)} alerts:{len(alerts)} archive:{archive}")
        return AreaResult(area=area, files=files, alerts=alerts, metadata=metadata, archive=archive)

    async def run_area(self, area: str) -> AreaResult:
        """실패를 영역 단위로 격리하여 수집합니다."""
        start = time.time()
        try:
            result = await self.fetch_area(area)
        except MissingCredentialError:
            raise
        except CapCacheError as e:
            log.error(f"영역 수집 실패 area:{area} error:{e}")
            result = AreaResult.failed(area, str(e))
        except Exception as e:
            log.exception(f"영역 수집 중 예기치 않은 오류 area:{area}")
            result = AreaResult.failed(area, f"{type(e).__name__}: {e}")
        finally:
            metrics.area_fetch_seconds.observe(time.time() - start)

        metrics.area_fetch_total.labels(area=area, outcome="ok" if result.ok else "error").inc()
        return result

    async def fetch_all(self, areas: List[str]) -> List[AreaResult]:
        """
        설정된 모든 영역을 병렬로 수집합니다.

        Returns:
            영역별 결과 (실패한 영역은 에러 마커 포함)
        """
        sem = asyncio.Semaphore(self.max_concurrency)

        async def _one(area: str) -> AreaResult:
            async with sem:
                return await self.run_area(area)

        results = await asyncio.gather(*(_one(area) for area in areas), return_exceptions=True)
        for item in results:
            if isinstance(item, BaseException):
                raise item
        return list(results)

    async def fetch_zone(self, area: str, zone: str) -> List[ZoneMatch]:
        """
        캐시를 거치지 않고 영역 번들 하나에서 zone을 실시간 조회합니다.

        Args:
            area: 2자리 영역 코드
            zone: 6자리 zone 코드

        Returns:
            파일명 우선, geocode 폴백 규칙으로 매칭된 경보
        """
        zone = validate_zone(zone)
        _, bundle = await self._resolve_bundle(area)
        decoded = decode_bundle(bundle.body)
        if decoded.ok:
            entries = decoded.entries
        else:
            entries = [ArchiveEntry(name=RAW_DOCUMENT_NAME, size=len(decoded.payload),
                                    sha1=sha1_hex(decoded.payload), data=decoded.payload)]
        matches = await asyncio.to_thread(match_entries, area, entries, zone)
        log.info(f"실시간 zone 조회 area:{area} zone:{zone} matches:{len(matches)}")
        return matches
