"""
hypothesis를 활용한 text 모듈 테스트

이 모듈은 대체 문자 휴리스틱과 인코딩 힌트 처리를 테스트합니다.
"""

import pytest
from hypothesis import given, strategies as st
from capcache.core.text import (
    BOM, REPLACEMENT_CHAR, count_replacements, declares_latin1, decode_json, decode_smart, decode_xml,
)


class TestDecodeSmart:
    """decode_smart 함수 테스트"""

    @given(st.text())
    def test_utf8_roundtrip_preferred(self, text):
        """유효한 UTF-8은 UTF-8로 디코딩 (동률이면 UTF-8 우선)"""
        text = text.replace(REPLACEMENT_CHAR, "").lstrip(BOM)
        assert decode_smart(text.encode("utf-8")) == text

    def test_latin1_bytes_detected(self):
        """Latin-1로 인코딩된 악센트 문자 복구"""
        data = "Campiña cordobesa, Ávila".encode("latin-1")
        assert decode_smart(data) == "Campiña cordobesa, Ávila"

    def test_latin1_content_type_hint(self):
        """content-type 힌트가 있으면 Latin-1 강제"""
        data = "Málaga".encode("utf-8")
        assert decode_smart(data, "application/json; charset=ISO-8859-15") == "MÃ¡laga"

    def test_bom_stripped(self):
        """선행 BOM 제거"""
        assert decode_smart((BOM + "{}").encode("utf-8")) == "{}"

    @pytest.mark.parametrize("content_type,expected", [
        ("text/plain; charset=iso-8859-1", True),
        ("application/json; charset=latin1", True),
        ("application/json;charset=LATIN-1", True),
        ("application/json; charset=utf-8", False),
        (None, False),
        ("", False),
    ])
    def test_declares_latin1(self, content_type, expected):
        """인코딩 힌트 판별"""
        assert declares_latin1(content_type) is expected

    def test_count_replacements(self):
        """대체 문자 개수"""
        assert count_replacements("a\ufffdb\ufffd") == 2
        assert count_replacements("abc") == 0


class TestDecodeXml:
    """decode_xml 함수 테스트"""

    def test_utf8(self):
        """UTF-8 XML"""
        assert decode_xml("<a>ñ</a>".encode("utf-8")) == "<a>ñ</a>"

    def test_latin1_fallback(self):
        """UTF-8 디코딩 실패 시 Latin-1"""
        assert decode_xml("<a>ñ</a>".encode("latin-1")) == "<a>ñ</a>"

    def test_bom(self):
        """BOM 제거"""
        assert decode_xml((BOM + "<a/>").encode("utf-8")) == "<a/>"


class TestDecodeJson:
    """decode_json 함수 테스트"""

    def test_latin1_metadata(self):
        """Latin-1 메타데이터 JSON"""
        data = '{"nombre": "Meteoalerta España"}'.encode("latin-1")
        assert decode_json(data) == {"nombre": "Meteoalerta España"}

    def test_invalid_json(self):
        """잘못된 JSON은 ValueError"""
        with pytest.raises(ValueError):
            decode_json(b"not json")
