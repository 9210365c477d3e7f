import time

from prometheus_client import Counter, Histogram, Gauge, REGISTRY


# registering twice (hot reload, repeated imports in tests) raises ValueError
def get_or_create_metric(name, documentation, metric_type, **kwargs):
    try:
        return metric_type(name, documentation, **kwargs)
    except ValueError:
        return REGISTRY._names_to_collectors[name]


REQUESTS_TOTAL = get_or_create_metric(
    "calendar_requests_total",
    "Total requests",
    Counter,
    labelnames=["endpoint", "status"],
)

REQUEST_LATENCY_SECONDS = get_or_create_metric(
    "calendar_request_latency_seconds",
    "Request latency",
    Histogram,
    labelnames=["endpoint"],
)

FILES_UPLOADED_TOTAL = get_or_create_metric(
    "calendar_files_uploaded_total", "Files submitted for extraction", Counter
)

EVENTS_EXTRACTED_TOTAL = get_or_create_metric(
    "calendar_events_extracted_total", "Pending events produced by extraction", Counter
)

CANDIDATES_REJECTED_TOTAL = get_or_create_metric(
    "calendar_candidates_rejected_total", "Extracted candidates dropped during normalization", Counter
)

EXTRACTION_FAILURES_TOTAL = get_or_create_metric(
    "calendar_extraction_failures_total",
    "Files whose extraction failed",
    Counter,
    labelnames=["kind"],
)

SYNC_FAILURES_TOTAL = get_or_create_metric(
    "calendar_sync_failures_total", "Events that could not be saved after retries", Counter
)

USERS_SYNC_FAILED = get_or_create_metric(
    "calendar_users_sync_failed", "Users currently in a failed sync state", Gauge
)


def record_request(endpoint: str, status: str, start: float) -> None:
    REQUESTS_TOTAL.labels(endpoint=endpoint, status=status).inc()
    REQUEST_LATENCY_SECONDS.labels(endpoint=endpoint).observe(time.time() - start)
