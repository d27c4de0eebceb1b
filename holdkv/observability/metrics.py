"""
Metrics definitions for holdkv.

This module defines Prometheus metrics for monitoring
the write path, buffering and TTL purges.
"""

from prometheus_client import Counter, Histogram, Gauge

# 카운터 메트릭
writes_total = Counter(
    "holdkv_writes_total",
    "Number of records written",
    ["topic", "mode"]
)

reads_total = Counter(
    "holdkv_reads_total",
    "Number of get operations",
    ["topic"]
)

buffer_flushes = Counter(
    "holdkv_buffer_flushes_total",
    "Number of buffer flushes",
    ["trigger"]
)

buffer_flush_failures = Counter(
    "holdkv_buffer_flush_failures_total",
    "Number of buffer flushes that failed",
    ["trigger"]
)

rows_purged = Counter(
    "holdkv_rows_purged_total",
    "Number of expired rows removed by clean",
    ["topic"]
)

# 히스토그램 메트릭
flush_seconds = Histogram(
    "holdkv_flush_duration_seconds",
    "Time spent flushing a write buffer",
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0]
)

# 게이지 메트릭
buffer_depth = Gauge(
    "holdkv_buffer_depth",
    "Current number of pending buffered entries",
    ["topic"]
)
