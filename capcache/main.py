# capcache/main.py
import os, asyncio, signal
from typing import Optional
import uvicorn
from capcache.settings import Settings
from capcache.observability.health import create_app
from capcache.observability.logging_setup import setup_logging, get_logger
from capcache.adapters.aemet.client import AemetClient
from capcache.adapters.storage import SQLiteSnapshotStore, build_snapshot_store
from capcache.orchestrators.area_fetch import AreaFetchOrchestrator
from capcache.orchestrators.cache_manager import CacheManager

def _b(name, default=False): return os.getenv(name, str(default)).lower() in ("1","true","yes","on")

def _csv(value: str) -> list[str]:
    parts = [part.strip() for part in value.split(",") if part.strip()]
    return list(dict.fromkeys(parts))

def build_settings() -> Settings:
    s = Settings()

    # AEMET
    s.aemet.api_key = os.getenv("AEMET_API_KEY", s.aemet.api_key)
    s.aemet.areas = _csv(os.getenv("AEMET_AREAS", ",".join(s.aemet.areas)))
    s.aemet.base_url = os.getenv("AEMET_BASE_URL", s.aemet.base_url)
    s.aemet.timeout_sec = int(os.getenv("AEMET_TIMEOUT_SEC", s.aemet.timeout_sec))
    s.aemet.max_concurrency = int(os.getenv("AEMET_MAX_CONCURRENCY", s.aemet.max_concurrency))
    s.aemet.max_retries = int(os.getenv("AEMET_MAX_RETRIES", s.aemet.max_retries))

    # 캐시
    s.cache.backend = os.getenv("CACHE_BACKEND", s.cache.backend).lower()
    s.cache.path = os.getenv("CACHE_PATH", s.cache.path)
    s.cache.key = os.getenv("CACHE_KEY", s.cache.key)
    s.cache.refresh_interval_sec = int(os.getenv("REFRESH_INTERVAL_SEC", s.cache.refresh_interval_sec))
    s.cache.load_on_start = _b("CACHE_LOAD_ON_START", s.cache.load_on_start)

    # 관측성
    s.observability.http_port = int(os.getenv("PORT", s.observability.http_port))
    s.observability.metrics_enabled = _b("METRICS_ENABLED", s.observability.metrics_enabled)
    s.observability.log_level = os.getenv("LOG_LEVEL", s.observability.log_level)

    return s

async def start_http(settings: Settings, manager: CacheManager, fetcher: AreaFetchOrchestrator) -> asyncio.Task:
    app = create_app(settings, manager, fetcher)
    return asyncio.create_task(uvicorn.Server(
        uvicorn.Config(app, host="0.0.0.0", port=settings.observability.http_port,
                       log_level=settings.observability.log_level.lower())
    ).serve())

async def main():
    s = build_settings()
    setup_logging(log_level=s.observability.log_level, service=s.observability.service_name)
    log = get_logger()
    log.info(f"설정 로드 완료 areas:{s.aemet.areas} backend:{s.cache.backend} path:{s.cache.path}")
    if not s.aemet.api_key:
        log.warning("AEMET_API_KEY 미설정, 저장된 캐시만 서비스합니다")

    store = build_snapshot_store(s.cache.backend, s.cache.path, s.cache.key)
    if isinstance(store, SQLiteSnapshotStore):
        await store.init()

    async with AemetClient(
        s.aemet.api_key,
        s.aemet.base_url,
        user_agent=s.aemet.user_agent,
        timeout=s.aemet.timeout_sec,
        max_retries=s.aemet.max_retries,
        backoff_initial=s.aemet.backoff_initial_sec,
        backoff_max=s.aemet.backoff_max_sec,
    ) as client:
        fetcher = AreaFetchOrchestrator(client, max_concurrency=s.aemet.max_concurrency)
        manager = CacheManager(fetcher, store, areas=s.aemet.areas)

        # 즉시 서비스할 수 있도록 저장된 스냅샷을 먼저 적재
        if s.cache.load_on_start:
            await manager.load()

        http_task = await start_http(s, manager, fetcher)
        log.info(f"HTTP 서버 시작됨 port:{s.observability.http_port}")

        refresh_task: Optional[asyncio.Task] = None
        if s.cache.refresh_interval_sec > 0:
            refresh_task = asyncio.create_task(manager.run_periodic(s.cache.refresh_interval_sec))
            log.info(f"주기 갱신 활성화 interval_sec:{s.cache.refresh_interval_sec}")

        stop = asyncio.Future()
        try:
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGTERM, signal.SIGINT):
                try: loop.add_signal_handler(sig, lambda: (not stop.done()) and stop.set_result(True))
                except NotImplementedError: pass
        except RuntimeError: pass

        await asyncio.wait([stop, http_task], return_when=asyncio.FIRST_COMPLETED)
        log.info("종료 중")
        if refresh_task: refresh_task.cancel()
        http_task.cancel()

def run():
    asyncio.run(main())

if __name__ == "__main__":
    run()
