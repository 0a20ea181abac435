"""Prometheus metrics for sync jobs and API features."""
from __future__ import annotations

from prometheus_client import Counter, Histogram


MACRO_SYNC_RUNS_TOTAL = Counter(
    "macrodesk_macro_sync_runs_total",
    "Macro sync runs by outcome",
    ["outcome"],
)

MACRO_SYNC_MACROS_SAVED = Histogram(
    "macrodesk_macro_sync_macros_saved",
    "Comment-producing macros saved per sync run",
    buckets=(0, 10, 50, 100, 250, 500, 1000, 2500, 5000),
)

HELPDESK_PAGES_FETCHED_TOTAL = Counter(
    "macrodesk_helpdesk_pages_fetched_total",
    "Pages fetched from the helpdesk macro listing",
)

CACHE_LOOKUPS_TOTAL = Counter(
    "macrodesk_cache_lookups_total",
    "Read-through cache lookups by key and result",
    ["key", "result"],
)

MACRO_COMPARISONS_TOTAL = Counter(
    "macrodesk_macro_comparisons_total",
    "Macro comparison requests by result",
    ["matched"],
)

FEEDBACK_RECORDED_TOTAL = Counter(
    "macrodesk_feedback_recorded_total",
    "Feedback records written",
    ["feedback_type", "generation_type"],
)

FEEDBACK_EXPORTS_TOTAL = Counter(
    "macrodesk_feedback_exports_total",
    "Feedback exports by target and outcome",
    ["export_type", "outcome"],
)

LLM_REQUEST_LATENCY_SECONDS = Histogram(
    "macrodesk_llm_request_latency_seconds",
    "Language-model call latency by operation",
    ["operation"],
    buckets=(0.25, 0.5, 1, 2, 5, 10, 20, 40, 60),
)

LLM_REQUESTS_TOTAL = Counter(
    "macrodesk_llm_requests_total",
    "Language-model calls by operation and outcome",
    ["operation", "outcome"],
)
