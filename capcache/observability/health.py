"""
HTTP endpoints for the AEMET CAP cache.

This module implements the zone query, refresh trigger and statistics
routes together with the health, readiness, metrics and info endpoints
for monitoring and operational visibility.
"""

from typing import Optional
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import Response, JSONResponse, PlainTextResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
import time
from capcache.settings import Settings
from capcache.core.errors import InputError, RefreshFailedError, UpstreamError
from capcache.observability.logging_setup import get_logger
from capcache.orchestrators.area_fetch import AreaFetchOrchestrator
from capcache.orchestrators.cache_manager import CacheManager

log = get_logger("capcache.http")

DESCRIPTION = "AEMET avisos – caché por zona (España) – OK (con persistencia)"


def create_app(settings: Settings,
               manager: CacheManager,
               fetcher: Optional[AreaFetchOrchestrator] = None) -> FastAPI:
    """FastAPI 애플리케이션을 생성합니다."""
    app = FastAPI(
        title=settings.observability.service_name,
        version=settings.observability.build_version,
        description="AEMET CAP alert cache by zone"
    )

    start_time = time.time()

    @app.exception_handler(InputError)
    async def input_error_handler(request: Request, exc: InputError):
        return JSONResponse(status_code=400, content={"error": str(exc), "status": 400})

    @app.get("/", response_class=PlainTextResponse)
    async def root():
        """루트 엔드포인트"""
        return DESCRIPTION

    @app.get("/health")
    async def health():
        """헬스 체크 엔드포인트"""
        state = manager.health()
        return JSONResponse({"ok": True, "last_success_at": state["generated_at"], "stale": state["stale"]})

    @app.get("/ready")
    async def ready():
        """레디니스 체크 엔드포인트 (서비스할 스냅샷이 있을 때 ready)"""
        generated_at = manager.health()["generated_at"]
        if generated_at is None:
            return JSONResponse(status_code=503, content={
                "status": "not_ready",
                "service": settings.observability.service_name,
                "timestamp": time.time()
            })
        return JSONResponse({
            "status": "ready",
            "service": settings.observability.service_name,
            "generated_at": generated_at,
            "timestamp": time.time()
        })

    @app.get("/metrics")
    async def metrics():
        """Prometheus 메트릭 엔드포인트"""
        if not settings.observability.metrics_enabled:
            raise HTTPException(status_code=503, detail="Metrics disabled")

        try:
            return Response(
                generate_latest(),
                media_type=CONTENT_TYPE_LATEST
            )
        except Exception as e:
            log.error(f"메트릭 생성 오류: {e}")
            raise HTTPException(status_code=500, detail="Metrics generation failed")

    @app.get("/info")
    async def info():
        """서비스 정보 엔드포인트"""
        uptime = time.time() - start_time
        return JSONResponse({
            "service": settings.observability.service_name,
            "version": settings.observability.build_version,
            "build_date": settings.observability.build_date,
            "uptime_seconds": int(uptime),
            "metrics_enabled": settings.observability.metrics_enabled,
            "log_level": settings.observability.log_level,
            "areas": settings.aemet.areas,
            "cache_backend": settings.cache.backend,
            "refresh_interval_sec": settings.cache.refresh_interval_sec
        })

    @app.get("/stats")
    async def stats():
        """캐시 통계 엔드포인트"""
        s = manager.stats()
        return JSONResponse({
            "version": s.version,
            "generatedAt": s.generated_at,
            "areas": s.areas,
            "files": s.files_count,
            "alerts": s.alerts_count,
            "zonesIndexed": s.zones_indexed,
            "topZones": [{"zona": z.zone, "count": z.count} for z in s.top_zones],
            "stale": s.stale,
            "failedAreas": s.failed_areas
        })

    @app.api_route("/refresh", methods=["GET", "POST"])
    async def refresh():
        """전체 갱신을 트리거합니다."""
        try:
            report = await manager.refresh()
        except RefreshFailedError as e:
            last_good = manager.state.last_good
            if last_good is not None:
                log.warning(f"갱신 실패, 이전 스냅샷으로 계속 서비스 generated_at:{last_good.generated_at}")
                return JSONResponse({
                    "ok": False,
                    "error": str(e),
                    "errors": e.errors,
                    "generatedAt": last_good.generated_at,
                    "stale": True
                })
            return JSONResponse(status_code=502, content={"ok": False, "error": str(e), "errors": e.errors})

        return JSONResponse({
            "ok": True,
            "areasTried": report.areas_tried,
            "files": report.files_count,
            "alerts": report.alerts_count,
            "ms": report.elapsed_ms,
            "failedAreas": report.failed_areas,
            "generatedAt": report.generated_at,
            "stale": False
        })

    @app.get("/avisos")
    async def avisos(zona: str = Query(default="")):
        """zone별 경보 조회 엔드포인트"""
        result = await manager.query(zona)
        return JSONResponse({
            "query": {"zona": result.zone, "last_success_at": result.generated_at},
            "count": result.count,
            "stale": result.stale,
            "avisos": [a.model_dump(mode="json") for a in result.alerts]
        })

    @app.get("/avisos/live")
    async def avisos_live(area: str = Query(default=""), zona: str = Query(default="")):
        """캐시를 거치지 않는 영역 번들 실시간 조회 엔드포인트"""
        if fetcher is None:
            raise HTTPException(status_code=503, detail="Live lookup unavailable")
        area = area.strip()
        if not area:
            raise InputError('Parámetro "area" requerido (p.ej. 61).')
        try:
            matches = await fetcher.fetch_zone(area, zona)
        except UpstreamError as e:
            log.error(f"실시간 조회 실패 area:{area} zona:{zona} error:{e}")
            return JSONResponse(status_code=502, content={"error": str(e), "status": 502})
        return JSONResponse({
            "query": {"area": area, "zona": zona.strip()},
            "count": len(matches),
            "avisos": [m.model_dump(mode="json") for m in matches]
        })

    return app
