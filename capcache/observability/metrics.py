"""
Metrics definitions for the AEMET CAP cache.

This module defines Prometheus metrics for monitoring refresh cycles,
per-area fetches and the served snapshot.
"""

from prometheus_client import Counter, Histogram, Gauge

# 카운터 메트릭
refresh_total = Counter(
    "capcache_refresh_total",
    "Refresh cycles by outcome",
    ["outcome"]
)

area_fetch_total = Counter(
    "capcache_area_fetch_total",
    "Per-area fetch attempts by outcome",
    ["area", "outcome"]
)

documents_parsed_total = Counter(
    "capcache_documents_parsed_total",
    "CAP XML documents parsed by outcome",
    ["outcome"]
)

bundle_fallback_total = Counter(
    "capcache_bundle_fallback_total",
    "Bundles treated as a single raw XML document"
)

metadata_failures_total = Counter(
    "capcache_metadata_failures_total",
    "Metadata fetches that failed and were ignored"
)

queries_total = Counter(
    "capcache_queries_total",
    "Zone queries served",
    ["stale"]
)

persist_total = Counter(
    "capcache_persist_total",
    "Snapshot persistence operations by kind and outcome",
    ["op", "outcome"]
)

# 히스토그램 메트릭
refresh_seconds = Histogram(
    "capcache_refresh_duration_seconds",
    "Time spent on a full refresh cycle",
    buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0]
)

area_fetch_seconds = Histogram(
    "capcache_area_fetch_duration_seconds",
    "Time spent fetching and parsing one area",
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

# 게이지 메트릭
snapshot_alerts = Gauge(
    "capcache_snapshot_alerts",
    "Alerts in the current snapshot"
)

snapshot_zones = Gauge(
    "capcache_snapshot_zones",
    "Zones indexed in the current snapshot"
)

snapshot_generated_timestamp = Gauge(
    "capcache_snapshot_generated_timestamp_seconds",
    "Unix time at which the current snapshot was generated"
)

refresh_stale = Gauge(
    "capcache_refresh_stale",
    "1 when the last refresh attempt failed and older data is being served"
)
