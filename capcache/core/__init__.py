"""
Core domain models and pure functions for the AEMET CAP cache.

This module contains bundle/text decoding, CAP parsing, zone indexing
and the snapshot schema, all independent of network and storage I/O.
"""

from .models import (
    AlertHeader, AlertInfoBlock, AreaBlock, AreaResult, ArchiveEntry, CapAlert,
    FileRecord, IndexedAlert, NameValue, ZoneMatch,
)
from .cap_parser import parse_cap_xml, parse_document
from .bundle import decode_bundle
from .text import decode_json, decode_smart, decode_xml
from .zones import build_zone_index, match_entries, validate_zone
from .snapshot import CacheSnapshot, decode_snapshot, encode_snapshot

__all__ = [
    "AlertHeader", "AlertInfoBlock", "AreaBlock", "AreaResult", "ArchiveEntry", "CapAlert",
    "FileRecord", "IndexedAlert", "NameValue", "ZoneMatch",
    "parse_cap_xml", "parse_document", "decode_bundle", "decode_json", "decode_smart", "decode_xml",
    "build_zone_index", "match_entries", "validate_zone",
    "CacheSnapshot", "decode_snapshot", "encode_snapshot",
]
