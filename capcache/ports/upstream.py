"""
Upstream (AEMET OpenData) port interface.

This module defines the protocol for the discovery endpoint and the
bundle/metadata download endpoint.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol


@dataclass
class FetchedPayload:
    """다운로드 응답 (상태, 헤더, 바이트 본문)"""
    url: str
    status: int
    body: bytes = field(repr=False)
    content_type: Optional[str] = None


class UpstreamPort(Protocol):
    """업스트림 포트 인터페이스"""

    async def discover(self, area: str) -> Dict[str, Any]:
        """
        영역의 "최근 생성" 카탈로그 설명을 조회합니다.

        Args:
            area: 2자리 영역 코드

        Returns:
            최소한 ``datos`` (선택적으로 ``metadatos``)를 담은 JSON 객체

        Raises:
            UpstreamError: 2xx가 아닌 응답 또는 네트워크 오류
        """
        ...

    async def download(self, url: str) -> FetchedPayload:
        """
        번들/메타데이터 URL을 원시 바이트로 내려받습니다.

        Raises:
            UpstreamError: 2xx가 아닌 응답 또는 네트워크 오류
        """
        ...
