"""
CAP v1.2 parser for AEMET alert documents.

Converts decoded XML text into normalized CapAlert models. Every element
that may repeat in CAP (info, category, responseType, parameter,
eventCode, area, polygon, circle, geocode) is always returned as a list,
and attribute-style name/value pairs resolve to the same NameValue shape
as the element-style encoding.
"""

import re
import xml.etree.ElementTree as ET
from typing import Iterable, List, Optional
from capcache.core.errors import CapParseError
from capcache.core.models import AlertHeader, AlertInfoBlock, AreaBlock, CapAlert, IndexedAlert, NameValue
from capcache.core.text import decode_xml, strip_bom
from capcache.observability.logging_setup import get_logger

log = get_logger("capcache.cap_parser")

CAP_NAMESPACES = {
    "cap": "urn:oasis:names:tc:emergency:cap:1.2",
}

_XML_DECLARATION = re.compile(r"<\?xml\s[^>]*\?>", re.IGNORECASE)
_WRAPPER_TAG = "capdocument"


def _local(name: str) -> str:
    """네임스페이스/접두사를 제거한 로컬 이름"""
    return name.rsplit("}", 1)[-1].rsplit(":", 1)[-1]


def _children(el: ET.Element, name: str) -> List[ET.Element]:
    return [child for child in el if _local(child.tag) == name]


def _first(el: ET.Element, name: str) -> Optional[ET.Element]:
    for child in el:
        if _local(child.tag) == name:
            return child
    return None


def _text(el: ET.Element) -> str:
    return "".join(el.itertext()).strip()


def _opt_text(el: ET.Element, name: str) -> Optional[str]:
    """요소가 없으면 None, 있으면 (빈 문자열일 수 있는) 텍스트"""
    child = _first(el, name)
    return None if child is None else _text(child)


def _texts(el: ET.Element, name: str) -> List[str]:
    return [_text(child) for child in _children(el, name)]


def _attr(el: ET.Element, names: Iterable[str]) -> Optional[str]:
    local_attrs = {_local(k): v for k, v in el.attrib.items()}
    for name in names:
        if name in local_attrs:
            return local_attrs[name].strip()
    return None


def build_name_value(el: ET.Element) -> NameValue:
    """
    요소형/속성형 name-value 쌍을 NameValue로 변환합니다.

    <geocode><valueName>AEMET</valueName><value>614102</value></geocode>,
    <eventCode name="AEMET-Meteoalerta" value="..."/> 및
    <parameter valueName="...">text</parameter> 모두 같은 모양이 됩니다.
    """
    name = _opt_text(el, "valueName")
    if name is None:
        name = _opt_text(el, "name")
    if name is None:
        name = _attr(el, ("valueName", "name"))

    value = _opt_text(el, "value")
    if value is None:
        value = _attr(el, ("value",))
    if value is None and len(el) == 0 and el.text is not None and el.text.strip():
        value = el.text.strip()
    return NameValue(name=name, value=value)


def build_area(el: ET.Element) -> AreaBlock:
    return AreaBlock(
        area_desc=_opt_text(el, "areaDesc"),
        altitude=_opt_text(el, "altitude"),
        ceiling=_opt_text(el, "ceiling"),
        polygons=_texts(el, "polygon"),
        circles=_texts(el, "circle"),
        geocodes=[build_name_value(g) for g in _children(el, "geocode")],
    )


def build_info(el: ET.Element) -> AlertInfoBlock:
    return AlertInfoBlock(
        language=_opt_text(el, "language"),
        category=_texts(el, "category"),
        event=_opt_text(el, "event"),
        response_type=_texts(el, "responseType"),
        urgency=_opt_text(el, "urgency"),
        severity=_opt_text(el, "severity"),
        certainty=_opt_text(el, "certainty"),
        effective=_opt_text(el, "effective"),
        onset=_opt_text(el, "onset"),
        expires=_opt_text(el, "expires"),
        headline=_opt_text(el, "headline"),
        description=_opt_text(el, "description"),
        instruction=_opt_text(el, "instruction"),
        web=_opt_text(el, "web"),
        contact=_opt_text(el, "contact"),
        parameters=[build_name_value(p) for p in _children(el, "parameter")],
        event_codes=[build_name_value(ec) for ec in _children(el, "eventCode")],
        areas=[build_area(a) for a in _children(el, "area")],
    )


def build_alert(el: ET.Element) -> CapAlert:
    header = AlertHeader(
        identifier=_opt_text(el, "identifier"),
        sender=_opt_text(el, "sender"),
        sent=_opt_text(el, "sent"),
        status=_opt_text(el, "status"),
        msg_type=_opt_text(el, "msgType"),
        scope=_opt_text(el, "scope"),
    )
    return CapAlert(header=header, info=[build_info(i) for i in _children(el, "info")])


def _wrap(xml_text: str) -> str:
    # 여러 <alert> 루트를 허용하기 위해 합성 루트로 감쌉니다
    body = _XML_DECLARATION.sub("", strip_bom(xml_text))
    ns_decl = " ".join(f'xmlns:{prefix}="{uri}"' for prefix, uri in CAP_NAMESPACES.items())
    return f"<{_WRAPPER_TAG} {ns_decl}>{body}</{_WRAPPER_TAG}>"


def parse_cap_xml(xml_text: str) -> List[CapAlert]:
    """
    CAP XML 텍스트를 정규화된 경보 목록으로 파싱합니다.

    Args:
        xml_text: 하나 이상의 <alert> 루트를 담은 디코딩된 XML

    Returns:
        <alert> 요소 하나당 CapAlert 하나 (문서 순서)

    Raises:
        CapParseError: XML로 파싱할 수 없는 문서
    """
    try:
        wrapper = ET.fromstring(_wrap(xml_text))
    except ET.ParseError as e:
        raise CapParseError(f"XML 파싱 실패: {e}", document=xml_text) from e

    if len(wrapper) == 0 and (wrapper.text or "").strip():
        raise CapParseError("XML 루트 요소가 없습니다", document=xml_text)

    alerts = [build_alert(el) for el in wrapper.iter() if el is not wrapper and _local(el.tag) == "alert"]
    if not alerts:
        log.debug("문서에 <alert> 요소가 없습니다")
    return alerts


def parse_document(area: str, file_name: str, data: bytes) -> List[IndexedAlert]:
    """
    XML 문서 하나를 디코딩/파싱하고 출처 영역과 파일명을 붙입니다.

    원본 XML 텍스트는 그대로 전달하기 위해 각 경보에 함께 보관합니다.
    """
    xml_text = decode_xml(data)
    return [
        IndexedAlert(area=area, file=file_name, raw_xml=xml_text, **alert.model_dump())
        for alert in parse_cap_xml(xml_text)
    ]
