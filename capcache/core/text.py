"""
Text decoding helpers for AEMET payloads.

AEMET mislabels or omits the charset of some payloads, mostly the JSON
metadata carrying accented characters. Metadata goes through the
replacement-character heuristic; XML bundles are decoded strictly as
UTF-8 with a Latin-1 fallback on decode failure.
"""

import json
from typing import Any, Optional

REPLACEMENT_CHAR = "\ufffd"
BOM = "\ufeff"
LATIN1_HINTS = ("iso-8859", "iso8859", "latin1", "latin-1")


def count_replacements(text: str) -> int:
    """U+FFFD 대체 문자 개수를 셉니다."""
    return text.count(REPLACEMENT_CHAR)


def strip_bom(text: str) -> str:
    return text[1:] if text.startswith(BOM) else text


def declares_latin1(content_type: Optional[str]) -> bool:
    """content-type 힌트가 Latin-1/ISO-8859 계열을 명시하는지 확인합니다."""
    if not content_type:
        return False
    ct = content_type.lower()
    return any(hint in ct for hint in LATIN1_HINTS)


def decode_smart(data: bytes, content_type: Optional[str] = None) -> str:
    """
    인코딩 힌트와 대체 문자 휴리스틱으로 바이트를 디코딩합니다.

    Args:
        data: 원시 바이트
        content_type: 선택적 content-type 헤더 값

    Returns:
        디코딩된 텍스트 (선행 BOM 제거)
    """
    if declares_latin1(content_type):
        text = data.decode("latin-1")
    else:
        utf8 = data.decode("utf-8", errors="replace")
        latin1 = data.decode("latin-1")
        # 동률이면 UTF-8 우선
        text = latin1 if count_replacements(latin1) < count_replacements(utf8) else utf8
    return strip_bom(text)


def decode_xml(data: bytes) -> str:
    """XML 본문은 UTF-8을 먼저 시도하고 디코딩 실패 시에만 Latin-1로 폴백합니다."""
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        text = data.decode("latin-1")
    return strip_bom(text)


def decode_json(data: bytes, content_type: Optional[str] = None) -> Any:
    """휴리스틱 디코딩 후 JSON으로 파싱합니다. 실패 시 ValueError."""
    return json.loads(decode_smart(data, content_type))
