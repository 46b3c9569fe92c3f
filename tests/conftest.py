"""
테스트 설정 및 픽스처

이 모듈은 pytest 설정과 공통 픽스처를 제공합니다.
"""

import gzip
import io
import os
import tarfile
import tempfile
import pytest
from typing import Dict, Iterable, Optional, Union
from unittest.mock import AsyncMock
from capcache.core.errors import UpstreamError
from capcache.ports.upstream import FetchedPayload
from capcache.settings import Settings

CAP_NS = "urn:oasis:names:tc:emergency:cap:1.2"


def build_cap_xml(identifier: str = "ES-1",
                  zones: Iterable[str] = ("614102",),
                  event: str = "Aviso de vientos de nivel amarillo",
                  declaration: bool = True) -> str:
    """AEMET 형식의 CAP 문서 하나를 만듭니다."""
    geocodes = "".join(
        f"<geocode><valueName>AEMET-Meteoalerta zona</valueName><value>{zone}</value></geocode>"
        for zone in zones
    )
    head = '<?xml version="1.0" encoding="UTF-8"?>\n' if declaration else ""
    return (
        f'{head}<alert xmlns="{CAP_NS}">'
        f"<identifier>{identifier}</identifier>"
        "<sender>http://www.aemet.es</sender>"
        "<sent>2025-01-01T00:00:00+01:00</sent>"
        "<status>Actual</status><msgType>Alert</msgType><scope>Public</scope>"
        "<info><language>es-ES</language><category>Met</category>"
        f"<event>{event}</event><responseType>Monitor</responseType>"
        "<urgency>Future</urgency><severity>Moderate</severity><certainty>Likely</certainty>"
        "<eventCode><valueName>AEMET-Meteoalerta fenomeno</valueName><value>VI;Vientos</value></eventCode>"
        "<headline>Aviso amarillo</headline>"
        "<parameter><valueName>AEMET-Meteoalerta nivel</valueName><value>amarillo</value></parameter>"
        f"<area><areaDesc>Campiña cordobesa</areaDesc>{geocodes}</area>"
        "</info></alert>"
    )


def build_tar(files: Dict[str, bytes], compress: bool = True) -> bytes:
    """메모리에서 (선택적으로 gzip된) tar 번들을 만듭니다."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tar:
        for name, data in files.items():
            info = tarfile.TarInfo(name=name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    raw = buf.getvalue()
    return gzip.compress(raw) if compress else raw


def build_upstream(bundles: Dict[str, Union[bytes, Exception]],
                   metadata: Optional[bytes] = b'{"nombre": "Meteoalerta"}') -> AsyncMock:
    """
    영역별 번들 (또는 예외)을 돌려주는 업스트림 목업을 만듭니다.

    discover는 datos/metadatos URL을 돌려주고 download는 URL로 분기합니다.
    """
    upstream = AsyncMock()

    async def discover(area):
        outcome = bundles[area]
        if isinstance(outcome, Exception):
            raise outcome
        catalog = {"estado": 200, "datos": f"https://aemet.test/datos/{area}"}
        if metadata is not None:
            catalog["metadatos"] = f"https://aemet.test/meta/{area}"
        return catalog

    async def download(url):
        kind, area = url.rsplit("/", 2)[-2:]
        if kind == "meta":
            return FetchedPayload(url=url, status=200, body=metadata, content_type="application/json")
        return FetchedPayload(url=url, status=200, body=bundles[area])

    upstream.discover.side_effect = discover
    upstream.download.side_effect = download
    return upstream


@pytest.fixture
def temp_db_path():
    """임시 데이터베이스 파일 경로"""
    with tempfile.NamedTemporaryFile(suffix='.db', delete=False) as f:
        temp_path = f.name
    yield temp_path
    # 테스트 후 파일 정리
    if os.path.exists(temp_path):
        os.unlink(temp_path)


@pytest.fixture
def cache_path(tmp_path):
    """아직 존재하지 않는 스냅샷 파일 경로"""
    return str(tmp_path / "cache" / "aemet_cache.json")


@pytest.fixture
def sample_settings():
    """테스트용 설정"""
    settings = Settings()
    settings.observability.service_name = "test-service"
    settings.observability.build_version = "1.0.0"
    settings.observability.log_level = "INFO"
    settings.observability.http_port = 8080
    settings.aemet.api_key = "test-key"
    settings.aemet.areas = ["61", "62"]
    return settings


@pytest.fixture
def cap_xml():
    """CAP 문서 빌더"""
    return build_cap_xml


@pytest.fixture
def make_bundle():
    """tar.gz 번들 빌더"""
    return build_tar


@pytest.fixture
def make_upstream():
    """업스트림 목업 빌더"""
    return build_upstream


@pytest.fixture
def upstream_error():
    """일시적이지 않은 업스트림 오류"""
    return UpstreamError("HTTP 404 en https://aemet.test", status=404, url="https://aemet.test")


# pytest 설정
def pytest_configure(config):
    """pytest 설정"""
    config.addinivalue_line(
        "markers", "slow: 느린 테스트 마커"
    )
    config.addinivalue_line(
        "markers", "integration: 통합 테스트 마커"
    )


def pytest_collection_modifyitems(config, items):
    """테스트 아이템 수정"""
    for item in items:
        # 느린 테스트 마커 추가
        if "performance" in item.name or "stress" in item.name:
            item.add_marker(pytest.mark.slow)

        # 통합 테스트 마커 추가
        if "integration" in item.name:
            item.add_marker(pytest.mark.integration)
