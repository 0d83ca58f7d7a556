"""Prometheus metrics for the Faire sync engine."""

from prometheus_client import Counter, Histogram

faire_pages_fetched_total = Counter(
    "faire_pages_fetched_total",
    "Total number of Faire API pages fetched",
    ["entity_type"],
)

faire_page_fetch_duration_seconds = Histogram(
    "faire_page_fetch_duration_seconds",
    "Time spent fetching one Faire API page",
    ["entity_type"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
)

faire_records_reconciled_total = Counter(
    "faire_records_reconciled_total",
    "Total number of records reconciled into the local store",
    ["entity_type"],
)

faire_record_errors_total = Counter(
    "faire_record_errors_total",
    "Total number of record-level reconciliation failures",
    ["entity_type"],
)

faire_state_fallbacks_total = Counter(
    "faire_state_fallbacks_total",
    "Unrecognized upstream state values mapped to the default",
    ["field"],
)

faire_store_failures_total = Counter(
    "faire_store_failures_total",
    "Phase-level failures per sync phase",
    ["phase"],
)
