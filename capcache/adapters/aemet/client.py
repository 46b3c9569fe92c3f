"""
AEMET OpenData API client for the CAP cache.

This module implements UpstreamPort over aiohttp: the "latest produced"
avisos_cap discovery endpoint and the raw bundle/metadata downloads.
"""

import aiohttp
import asyncio
import json
from typing import Any, Dict, Optional
from capcache.common.retry import retry_with_backoff
from capcache.core.errors import MissingCredentialError, UpstreamError
from capcache.observability.logging_setup import get_logger
from capcache.ports.upstream import FetchedPayload

log = get_logger("capcache.aemet")

DEFAULT_BASE_URL = "https://opendata.aemet.es/opendata/api"
DEFAULT_USER_AGENT = "AEMET-CAP-Cache/2.0"


def _is_transient(exc: Exception) -> bool:
    return isinstance(exc, UpstreamError) and exc.transient


class AemetClient:
    """AEMET OpenData API 클라이언트"""
    
    def __init__(self,
                 api_key: str,
                 base_url: str = DEFAULT_BASE_URL,
                 *,
                 user_agent: str = DEFAULT_USER_AGENT,
                 timeout: int = 30,
                 max_retries: int = 2,
                 backoff_initial: float = 0.5,
                 backoff_max: float = 10.0):
        """
        초기화합니다.
        
        Args:
            api_key: AEMET OpenData API 키
            base_url: API 기본 URL
            user_agent: User-Agent 헤더
            timeout: 요청 타임아웃 (초)
            max_retries: 일시적 오류 재시도 횟수
            backoff_initial: 첫 재시도 지연 (초)
            backoff_max: 최대 재시도 지연 (초)
        """
        self.api_key = (api_key or "").strip()
        self.base_url = base_url.rstrip('/')
        self.user_agent = user_agent
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_initial = backoff_initial
        self.backoff_max = backoff_max
        self.session: Optional[aiohttp.ClientSession] = None
        
        log.info(f"AEMET 클라이언트 초기화됨 base_url:{self.base_url}")
    
    async def __aenter__(self):
        """비동기 컨텍스트 매니저 진입"""
        self.session = aiohttp.ClientSession(
            headers={"User-Agent": self.user_agent},
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        )
        return self
    
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """비동기 컨텍스트 매니저 종료"""
        if self.session:
            await self.session.close()
            self.session = None
    
    def discovery_url(self, area: str) -> str:
        return f"{self.base_url}/avisos_cap/ultimoelaborado/area/{area}"
    
    async def _fetch(self, url: str, *, params: Optional[Dict[str, str]] = None,
                     accept: Optional[str] = None) -> FetchedPayload:
        """
        GET 요청을 수행하고 본문을 바이트로 반환합니다.
        
        Args:
            url: 요청 URL (쿼리 파라미터 제외, 로그에 그대로 남음)
            params: 쿼리 파라미터
            accept: Accept 헤더
            
        Returns:
            응답 페이로드
        """
        if not self.session:
            raise RuntimeError("세션이 초기화되지 않았습니다. async with를 사용하세요.")
        
        headers = {"Accept": accept} if accept else None
        
        async def _request() -> FetchedPayload:
            try:
                async with self.session.get(url, params=params, headers=headers) as response:
                    body = await response.read()
                    if not 200 <= response.status < 300:
                        raise UpstreamError(f"HTTP {response.status} en {url}", status=response.status, url=url)
                    return FetchedPayload(
                        url=url,
                        status=response.status,
                        body=body,
                        content_type=response.headers.get("Content-Type"),
                    )
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise UpstreamError(f"Error de red en {url}: {e!r}", url=url) from e
        
        return await retry_with_backoff(
            _request,
            max_retries=self.max_retries,
            base_delay=self.backoff_initial,
            max_delay=self.backoff_max,
            retry_if=_is_transient,
        )
    
    async def discover(self, area: str) -> Dict[str, Any]:
        """
        영역의 최근 생성 CAP 카탈로그를 조회합니다.
        
        Args:
            area: 2자리 영역 코드
            
        Returns:
            ``datos``/``metadatos`` URL을 담은 카탈로그
        """
        if not self.api_key:
            raise MissingCredentialError("Falta AEMET_API_KEY en variables de entorno.")
        
        url = self.discovery_url(area)
        payload = await self._fetch(
            url,
            params={"api_key": self.api_key},
            accept="application/json",
        )
        try:
            catalog = json.loads(payload.body)
        except ValueError as e:
            raise UpstreamError(f"Catálogo no es JSON válido en {url}: {e}", status=payload.status, url=url) from e
        if not isinstance(catalog, dict):
            raise UpstreamError(f"Catálogo inesperado en {url}", status=payload.status, url=url)
        
        log.debug(f"카탈로그 조회 완료 area:{area} estado:{catalog.get('estado')}")
        return catalog
    
    async def download(self, url: str) -> FetchedPayload:
        """번들/메타데이터 URL을 원시 바이트로 내려받습니다."""
        payload = await self._fetch(url, accept="application/json,*/*;q=0.8")
        log.debug(f"다운로드 완료 url:{url} bytes:{len(payload.body)} content_type:{payload.content_type}")
        return payload
