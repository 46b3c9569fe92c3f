"""
Exception taxonomy for the AEMET CAP cache.

Input errors are surfaced to the caller immediately. Upstream, decode and
parse errors are isolated per area or per document by the orchestrator.
Persistence errors are logged by the cache manager and never reach callers.
"""

from typing import Dict, Optional


class CapCacheError(Exception):
    """모든 도메인 예외의 기본 클래스"""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class InputError(CapCacheError):
    """호출자 입력 오류 (재시도하지 않음)"""


class InvalidZoneError(InputError):
    """6자리 형식이 아닌 zone 코드"""

    def __init__(self, zone: str) -> None:
        super().__init__(f'Parámetro "zona" inválido: {zone!r}. Debe ser 6 dígitos (p.ej. 614102).')
        self.zone = zone


class MissingCredentialError(InputError):
    """API 키 누락"""


class UpstreamError(CapCacheError):
    """discovery/다운로드 호출 실패"""

    def __init__(self, message: str, *, status: Optional[int] = None, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.status = status
        self.url = url

    @property
    def transient(self) -> bool:
        """네트워크 오류, 5xx, 429만 재시도 대상입니다."""
        if self.status is None:
            return True
        return self.status >= 500 or self.status == 429


class BundleDecodeError(CapCacheError):
    """아카이브 구조가 유효하지 않음 (원시 문서 폴백 트리거)"""


class CapParseError(CapCacheError):
    """단일 XML 문서 파싱 실패"""

    def __init__(self, message: str, *, document: Optional[str] = None) -> None:
        super().__init__(message)
        self.document = document


class RefreshFailedError(CapCacheError):
    """설정된 모든 영역이 실패한 갱신"""

    def __init__(self, errors: Dict[str, str]) -> None:
        detail = "; ".join(f"{area}: {err}" for area, err in errors.items())
        super().__init__(f"Refresh failed for every configured area ({detail})")
        self.errors = errors


class PersistenceError(CapCacheError):
    """영속 저장소 읽기/쓰기/디코딩 실패"""
