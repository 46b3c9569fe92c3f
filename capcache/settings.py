# capcache/settings.py
from __future__ import annotations
from pydantic import BaseModel, Field

class AemetConfig(BaseModel):
    api_key: str = ""
    areas: list[str] = Field(default_factory=list)   # 2자리 영역 코드
    base_url: str = "https://opendata.aemet.es/opendata/api"
    user_agent: str = "AEMET-CAP-Cache/2.0"
    timeout_sec: int = 30
    max_concurrency: int = 4
    max_retries: int = 2
    backoff_initial_sec: float = 0.5
    backoff_max_sec: float = 10.0

class CacheConfig(BaseModel):
    backend: str = "file"                      # file | sqlite
    path: str = "/tmp/aemet_cache.json"
    key: str = "snapshot"
    refresh_interval_sec: int = 0              # 0이면 외부 트리거로만 갱신
    load_on_start: bool = True

class Observability(BaseModel):
    http_port: int = 3000
    metrics_enabled: bool = True
    service_name: str = "AEMET-CAP-Cache"
    build_version: str = "2.0.0"
    build_date: str = "2025-01-01"
    log_level: str = "INFO"

class Settings(BaseModel):
    # 하위 섹션 (기본값/팩토리로 누락 방지)
    aemet: AemetConfig = Field(default_factory=AemetConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    observability: Observability = Field(default_factory=Observability)
