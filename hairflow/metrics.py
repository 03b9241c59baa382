from prometheus_client import Counter, Histogram
# Prometheus metrics definitions

# AI capability metrics, labelled by capability name
# (recipe, timeline, customer_analysis, three_view, five_view, ...)
ai_requests_total = Counter(
    "ai_requests_total", "Total quota-consuming AI requests", ["capability"]
)

# multi-image generation regularly takes close to a minute
_ai_latency_buckets = (
    1.0,
    2.0,
    5.0,
    10.0,
    20.0,
    40.0,
    60.0,
    90.0,
)

ai_latency_seconds = Histogram(
    "ai_latency_seconds",
    "Latency of the external model step",
    ["capability"],
    buckets=_ai_latency_buckets,
)

# reason: timeout | error | no_response
ai_failure_total = Counter(
    "ai_failure_total", "Failed AI capability calls", ["capability", "reason"]
)

# Single fan-out branch failures (the request itself still succeeds)
image_generation_fail_total = Counter(
    "image_generation_fail_total", "Failed image generation branches"
)

# Quota rejects when hitting the daily limit
quota_reject_total = Counter(
    "quota_reject_total", "Number of quota rejected requests"
)

upload_fail_total = Counter(
    "upload_fail_total", "Failed photo uploads to blob storage"
)

# Result was charged and returned but the audit row was not written
persistence_warning_total = Counter(
    "persistence_warning_total", "Result records that failed to persist"
)

payment_fail_total = Counter(
    "payment_fail_total", "Total payment failures"
)

__all__ = [
    "ai_requests_total",
    "ai_latency_seconds",
    "ai_failure_total",
    "image_generation_fail_total",
    "quota_reject_total",
    "upload_fail_total",
    "persistence_warning_total",
    "payment_fail_total",
]
