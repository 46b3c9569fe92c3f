"""
CAP 파서 단위 테스트

이 모듈은 단수/복수 요소 정규화, 속성형 name-value 쌍,
누락/빈 값 구분 및 잘못된 문서 처리를 테스트합니다.
"""

import pytest
from capcache.core.cap_parser import parse_cap_xml, parse_document
from capcache.core.errors import CapParseError
from capcache.core.models import NameValue

CAP_NS = "urn:oasis:names:tc:emergency:cap:1.2"


class TestParseCapXml:
    """parse_cap_xml 함수 테스트"""

    def test_full_alert(self, cap_xml):
        """AEMET 형식 경보 파싱"""
        alerts = parse_cap_xml(cap_xml(identifier="ES-AV-1", zones=["614102", "614103"]))

        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.header.identifier == "ES-AV-1"
        assert alert.header.sender == "http://www.aemet.es"
        assert alert.header.msg_type == "Alert"
        assert alert.header.scope == "Public"

        info = alert.info[0]
        assert info.language == "es-ES"
        assert info.category == ["Met"]
        assert info.response_type == ["Monitor"]
        assert info.severity == "Moderate"
        assert info.event_codes == [NameValue(name="AEMET-Meteoalerta fenomeno", value="VI;Vientos")]
        assert info.parameters == [NameValue(name="AEMET-Meteoalerta nivel", value="amarillo")]
        assert info.areas[0].area_desc == "Campiña cordobesa"
        assert [g.value for g in info.areas[0].geocodes] == ["614102", "614103"]
        assert list(alert.geocode_values()) == ["614102", "614103"]

    def test_repeated_elements_are_lists(self):
        """반복 요소는 한 번만 나와도 리스트, 여러 번이면 전부"""
        xml = (
            f'<alert xmlns="{CAP_NS}"><identifier>X</identifier>'
            "<info><language>es-ES</language><category>Met</category><category>Safety</category>"
            "<responseType>Prepare</responseType><responseType>Monitor</responseType>"
            "<area><areaDesc>A</areaDesc><polygon>1,1 2,2 3,3 1,1</polygon><circle>1,1 5</circle></area>"
            "<area><areaDesc>B</areaDesc></area></info>"
            "<info><language>en-GB</language></info>"
            "</alert>"
        )
        alert = parse_cap_xml(xml)[0]

        assert len(alert.info) == 2
        assert alert.info[0].category == ["Met", "Safety"]
        assert alert.info[0].response_type == ["Prepare", "Monitor"]
        assert [a.area_desc for a in alert.info[0].areas] == ["A", "B"]
        assert alert.info[0].areas[0].polygons == ["1,1 2,2 3,3 1,1"]
        assert alert.info[0].areas[0].circles == ["1,1 5"]
        assert alert.info[0].areas[1].polygons == []
        assert alert.info[1].language == "en-GB"
        assert alert.info[1].areas == []

    def test_attribute_style_pairs(self):
        """속성형 name-value 쌍은 요소형과 같은 모양"""
        xml = (
            f'<alert xmlns="{CAP_NS}"><info>'
            '<eventCode name="AEMET-Meteoalerta fenomeno" value="VI"/>'
            '<parameter valueName="AEMET-Meteoalerta probabilidad">40%-70%</parameter>'
            '<area><areaDesc>Z</areaDesc><geocode valueName="AEMET-Meteoalerta zona" value="614102"/></area>'
            "</info></alert>"
        )
        info = parse_cap_xml(xml)[0].info[0]

        assert info.event_codes == [NameValue(name="AEMET-Meteoalerta fenomeno", value="VI")]
        assert info.parameters == [NameValue(name="AEMET-Meteoalerta probabilidad", value="40%-70%")]
        assert info.areas[0].geocodes == [NameValue(name="AEMET-Meteoalerta zona", value="614102")]

    def test_absent_vs_blank(self):
        """누락된 필드는 None, 빈 요소는 빈 문자열"""
        xml = f'<alert xmlns="{CAP_NS}"><identifier>X</identifier><info><headline/><description>  </description></info></alert>'
        alert = parse_cap_xml(xml)[0]

        assert alert.header.sender is None
        assert alert.info[0].headline == ""
        assert alert.info[0].description == ""
        assert alert.info[0].instruction is None

    def test_multiple_alert_roots(self, cap_xml):
        """한 문서에 <alert> 루트가 여러 개"""
        xml = cap_xml(identifier="A") + "\n" + cap_xml(identifier="B")
        alerts = parse_cap_xml(xml)

        assert [a.header.identifier for a in alerts] == ["A", "B"]

    def test_undeclared_cap_prefix(self):
        """선언되지 않은 cap: 접두사도 허용"""
        xml = "<cap:alert><cap:identifier>P-1</cap:identifier><cap:info><cap:event>Lluvias</cap:event></cap:info></cap:alert>"
        alerts = parse_cap_xml(xml)

        assert alerts[0].header.identifier == "P-1"
        assert alerts[0].info[0].event == "Lluvias"

    def test_no_alert_element(self):
        """<alert>가 없는 문서는 빈 목록"""
        assert parse_cap_xml("<feed><entry/></feed>") == []
        assert parse_cap_xml("") == []

    @pytest.mark.parametrize("xml", [
        "<alert><identifier>X</alert>",
        "<alert><info></alert></info>",
        "esto no es XML",
    ])
    def test_malformed(self, xml):
        """잘못된 문서는 CapParseError"""
        with pytest.raises(CapParseError):
            parse_cap_xml(xml)


class TestParseDocument:
    """parse_document 함수 테스트"""

    def test_provenance_and_raw_xml(self, cap_xml):
        """출처 영역/파일과 원본 XML 보관"""
        xml = cap_xml(identifier="ES-2")
        alerts = parse_document("61", "AFAZ614102VI.xml", xml.encode("utf-8"))

        assert len(alerts) == 1
        assert alerts[0].area == "61"
        assert alerts[0].file == "AFAZ614102VI.xml"
        assert alerts[0].raw_xml == xml
        assert alerts[0].header.identifier == "ES-2"

    def test_latin1_document(self, cap_xml):
        """Latin-1 문서도 디코딩"""
        xml = cap_xml(declaration=False)
        alerts = parse_document("61", "a.xml", xml.encode("latin-1"))

        assert alerts[0].info[0].areas[0].area_desc == "Campiña cordobesa"
