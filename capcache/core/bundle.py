"""
Bundle decoding for AEMET CAP downloads.

A bundle is usually a gzip-compressed tar archive of CAP XML files, but
neither the compression nor the archive format is reliably declared.
Archive extraction is all-or-nothing: any structural failure is returned
as an explicit error so the caller can fall back to the raw-document path.
"""

import gzip
import hashlib
import io
import tarfile
import zlib
from dataclasses import dataclass, field
from typing import List, Optional
from capcache.core.errors import BundleDecodeError
from capcache.core.models import ArchiveEntry

GZIP_MAGIC = b"\x1f\x8b"


@dataclass
class BundleDecodeResult:
    """번들 디코딩 결과"""
    payload: bytes
    entries: List[ArchiveEntry] = field(default_factory=list)
    error: Optional[BundleDecodeError] = None
    decompressed: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


def sha1_hex(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


def is_gzip(data: bytes) -> bool:
    return len(data) >= 2 and data[:2] == GZIP_MAGIC


def gunzip_if_needed(data: bytes) -> bytes:
    """gzip 매직 바이트가 있으면 메모리에서 전부 해제합니다."""
    if not is_gzip(data):
        return data
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as e:
        raise BundleDecodeError(f"gzip 해제 실패: {e}") from e


def extract_tar(data: bytes) -> List[ArchiveEntry]:
    """
    tar 아카이브의 항목을 아카이브 순서대로 추출합니다.

    디렉터리 등 일반 파일이 아닌 항목도 0바이트 항목으로 인벤토리에 남깁니다.
    tarfile은 첫 헤더 이후의 손상된 헤더에서 예외 없이 순회를 멈추므로,
    순회가 끝난 위치 뒤에는 종료 블록(0 바이트)만 남아 있어야 합니다.

    Raises:
        BundleDecodeError: 아카이브 구조가 유효하지 않은 경우
    """
    entries: List[ArchiveEntry] = []
    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:") as tar:
            for member in tar:
                blob = b""
                if member.isfile():
                    handle = tar.extractfile(member)
                    if handle is not None:
                        blob = handle.read()
                entries.append(ArchiveEntry(name=member.name, size=len(blob), sha1=sha1_hex(blob), data=blob))
            end = tar.offset
    except (tarfile.TarError, EOFError, OSError) as e:
        raise BundleDecodeError(f"tar 추출 실패: {e}") from e
    if data[end:].strip(b"\0"):
        raise BundleDecodeError(f"tar 추출 실패: offset {end} 이후 헤더 손상 또는 잘림")
    return entries


def decode_bundle(data: bytes) -> BundleDecodeResult:
    """
    원시 다운로드 버퍼를 아카이브 항목 목록으로 변환합니다.

    Args:
        data: 영역 데이터 다운로드의 원시 바이트

    Returns:
        항목 목록 또는 폴백용 에러가 담긴 결과. payload는 해제에 성공했다면
        해제된 바이트, 아니면 원시 바이트입니다.
    """
    payload = data
    decompressed = False
    try:
        if is_gzip(data):
            payload = gunzip_if_needed(data)
            decompressed = True
        entries = extract_tar(payload)
    except BundleDecodeError as e:
        return BundleDecodeResult(payload=payload, error=e, decompressed=decompressed)
    return BundleDecodeResult(payload=payload, entries=entries, decompressed=decompressed)
