"""
Persistent cache manager for the AEMET CAP cache.

Owns the "current" / "last known good" snapshot pair. A refresh builds a
brand-new snapshot off to the side and publishes it with a single
attribute assignment, so readers see either the old snapshot or the new
one, never a partial build. The in-memory commit always happens before the
snapshot is written to durable storage.
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from capcache.core.errors import CapCacheError, MissingCredentialError, PersistenceError, RefreshFailedError
from capcache.core.models import CacheStats, QueryResult, RefreshReport
from capcache.core.snapshot import SNAPSHOT_SCHEMA_VERSION, CacheSnapshot, decode_snapshot, encode_snapshot
from capcache.core.zones import top_zones, validate_zone
from capcache.observability import metrics
from capcache.observability.logging_setup import get_logger
from capcache.orchestrators.area_fetch import AreaFetchOrchestrator
from capcache.ports.storage import SnapshotStoragePort

log = get_logger("capcache.cache_manager")


def utc_now_iso() -> str:
    """밀리초 정밀도의 UTC ISO-8601 문자열 (예: 2025-01-01T00:00:00.000Z)"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _parse_iso(value: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass(frozen=True)
class CacheState:
    """current/last-known-good 스냅샷 쌍"""
    current: CacheSnapshot
    last_good: Optional[CacheSnapshot] = None


class CacheManager:
    """영속 캐시 관리자"""

    def __init__(self,
                 fetcher: AreaFetchOrchestrator,
                 storage: Optional[SnapshotStoragePort] = None,
                 *,
                 areas: Optional[List[str]] = None,
                 clock: Optional[Callable[[], str]] = None):
        """
        초기화합니다.

        Args:
            fetcher: 영역 수집 오케스트레이터
            storage: 스냅샷 저장소 (None이면 메모리 전용)
            areas: 기본 갱신 대상 영역 코드
            clock: generated_at 타임스탬프 생성 함수
        """
        self.fetcher = fetcher
        self.storage = storage
        self.areas = list(areas or [])
        self._clock = clock or utc_now_iso
        self._state = CacheState(current=CacheSnapshot.empty())
        self._stale = False
        self._refresh_lock: Optional[asyncio.Lock] = None

    def _lock(self) -> asyncio.Lock:
        # 실행 중인 루프 안에서 처음 사용할 때 생성
        if self._refresh_lock is None:
            self._refresh_lock = asyncio.Lock()
        return self._refresh_lock

    @property
    def state(self) -> CacheState:
        return self._state

    @property
    def stale(self) -> bool:
        return self._stale

    def _serving(self) -> CacheSnapshot:
        state = self._state
        if state.current.generated_at is not None:
            return state.current
        return state.last_good or state.current

    def _commit(self, snapshot: CacheSnapshot) -> None:
        # 단일 대입으로 게시 (부분적으로 만들어진 스냅샷은 보이지 않음)
        self._state = CacheState(current=snapshot, last_good=snapshot)
        metrics.snapshot_alerts.set(len(snapshot.alerts))
        metrics.snapshot_zones.set(snapshot.zones_indexed)
        generated = _parse_iso(snapshot.generated_at) if snapshot.generated_at else None
        if generated is not None:
            metrics.snapshot_generated_timestamp.set(generated.timestamp())

    def _mark_stale(self, stale: bool) -> None:
        self._stale = stale
        metrics.refresh_stale.set(1 if stale else 0)

    async def refresh(self, areas: Optional[List[str]] = None) -> RefreshReport:
        """
        모든 영역을 수집해 새 스냅샷을 만들고 게시한 뒤 영속화합니다.

        영역이 하나 이상 설정되었는데 모두 실패하면 기존 스냅샷을 유지하고
        RefreshFailedError를 발생시킵니다. 설정된 영역이 없으면 빈 스냅샷으로
        성공합니다.

        Args:
            areas: 이번 갱신 대상 (None이면 설정값)

        Returns:
            갱신 요약
        """
        # 중복 영역은 한 번만 수집
        target = list(dict.fromkeys(self.areas if areas is None else areas))
        async with self._lock():
            started = time.time()
            try:
                results = await self.fetcher.fetch_all(target)
            except MissingCredentialError:
                metrics.refresh_total.labels(outcome="error").inc()
                self._mark_stale(True)
                raise

            failed = {r.area: r.error for r in results if not r.ok}
            if target and all(not r.ok for r in results):
                metrics.refresh_total.labels(outcome="error").inc()
                self._mark_stale(True)
                log.error(f"모든 영역 갱신 실패, 이전 스냅샷 유지 areas:{len(target)}")
                raise RefreshFailedError(failed)

            snapshot = CacheSnapshot(
                version=SNAPSHOT_SCHEMA_VERSION,
                generated_at=self._clock(),
                areas=target,
                files=[f for r in results for f in r.files],
                alerts=[a for r in results for a in r.alerts],
            )
            self._commit(snapshot)
            self._mark_stale(False)
            metrics.refresh_total.labels(outcome="partial" if failed else "ok").inc()

            await self.persist(snapshot)

            elapsed = time.time() - started
            metrics.refresh_seconds.observe(elapsed)
            report = RefreshReport(
                areas_tried=len(target),
                files_count=len(snapshot.files),
                alerts_count=len(snapshot.alerts),
                elapsed_ms=int(elapsed * 1000),
                generated_at=snapshot.generated_at,
                failed_areas=list(failed),
            )
            log.info(
                f"갱신 완료 areas:{report.areas_tried} files:{report.files_count} "
                f"alerts:{report.alerts_count} zones:{snapshot.zones_indexed} failed:{report.failed_areas} "
                f"ms:{report.elapsed_ms}"
            )
            return report

    async def persist(self, snapshot: CacheSnapshot) -> bool:
        """스냅샷을 영속 저장소에 씁니다. 실패는 로그만 남기고 메모리 상태에 영향이 없습니다."""
        if self.storage is None:
            return False
        try:
            await self.storage.write(encode_snapshot(snapshot))
        except PersistenceError as e:
            metrics.persist_total.labels(op="write", outcome="error").inc()
            log.error(f"캐시 저장 실패 location:{self.storage.location} error:{e}")
            return False
        metrics.persist_total.labels(op="write", outcome="ok").inc()
        log.info(
            f"캐시 저장 완료 location:{self.storage.location} alerts:{len(snapshot.alerts)} "
            f"zones:{snapshot.zones_indexed}"
        )
        return True

    async def load(self) -> bool:
        """
        마지막으로 영속화된 스냅샷을 읽어 current/last-known-good으로 설치합니다.

        파일 없음이나 손상은 치명적이지 않으며 상태를 기본값으로 둡니다.

        Returns:
            설치 여부
        """
        if self.storage is None:
            return False
        before = self._state
        try:
            data = await self.storage.read()
            if data is None:
                log.warning(f"이전 캐시 없음 location:{self.storage.location}")
                return False
            snapshot = decode_snapshot(data)
        except PersistenceError as e:
            metrics.persist_total.labels(op="read", outcome="error").inc()
            log.warning(f"캐시 로드 실패 location:{self.storage.location} error:{e}")
            return False

        if self._state is not before:
            # 읽는 동안 갱신이 먼저 게시됨
            log.info("로드 중 더 새로운 스냅샷이 게시되어 로드 결과를 버립니다")
            return False

        self._commit(snapshot)
        metrics.persist_total.labels(op="read", outcome="ok").inc()
        log.info(
            f"캐시 로드 완료 location:{self.storage.location} generated_at:{snapshot.generated_at} "
            f"zones:{snapshot.zones_indexed}"
        )
        return True

    async def query(self, zone: str) -> QueryResult:
        """
        zone의 경보를 반환합니다.

        아직 스냅샷이 없으면 저장소 로드를 먼저 시도합니다.

        Raises:
            InvalidZoneError: 6자리 형식이 아닌 zone
        """
        zone = validate_zone(zone)
        if self._serving().generated_at is None:
            await self.load()

        snapshot = self._serving()
        stale = self._stale
        metrics.queries_total.labels(stale=str(stale).lower()).inc()
        return QueryResult(zone=zone, generated_at=snapshot.generated_at, stale=stale,
                           alerts=snapshot.alerts_for(zone))

    def stats(self, top: int = 10) -> CacheStats:
        snapshot = self._serving()
        return CacheStats(
            version=snapshot.version,
            generated_at=snapshot.generated_at,
            areas=list(snapshot.areas),
            files_count=len(snapshot.files),
            alerts_count=len(snapshot.alerts),
            zones_indexed=snapshot.zones_indexed,
            top_zones=top_zones(snapshot.zone_index, top),
            stale=self._stale,
            failed_areas=snapshot.failed_areas(),
        )

    def health(self) -> Dict[str, Any]:
        return {"generated_at": self._serving().generated_at, "stale": self._stale}

    async def run_periodic(self, interval_sec: float) -> None:
        """주기적으로 갱신합니다. 실패는 로그만 남기고 다음 주기에 재시도합니다."""
        while True:
            await asyncio.sleep(interval_sec)
            try:
                await self.refresh()
            except CapCacheError as e:
                log.error(f"주기 갱신 실패 error:{e}")
