"""Application metrics using the Prometheus client library.

Every metric the service exposes is defined here, in one inventory.
Other modules import the metric they own and increment/observe it at
the point of action.

Counters only go up and are read as rates in PromQL, e.g.
``rate(certificate_transitions_total{transition="revoke"}[1h])``.
Histograms bucket observations so Prometheus can compute percentiles
with ``histogram_quantile``.  Gauges are snapshots that go up and down.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Learning lifecycle metrics
# ---------------------------------------------------------------------------

ENROLLMENT_EVENTS = Counter(
    "enrollment_events_total",
    "Enrollment lifecycle events",
    ["event"],  # "enrolled" | "unenrolled" | "progress_override"
)

LESSON_COMPLETIONS = Counter(
    "lesson_completions_total",
    "complete-lesson calls by outcome",
    ["outcome"],  # "new" | "repeat" | "course_completed"
)

CERTIFICATE_TRANSITIONS = Counter(
    "certificate_transitions_total",
    "Certificate state transitions by type and result",
    ["transition", "result"],  # issue|revoke|reissue, ok|rejected
)

DOMAIN_ERRORS = Counter(
    "domain_errors_total",
    "Domain errors returned to callers by error code",
    ["code"],
)

# ---------------------------------------------------------------------------
# Collaborator sinks
# ---------------------------------------------------------------------------

SINK_FAILURES = Counter(
    "notification_sink_failures_total",
    "Swallowed failures of fire-and-forget sinks",
    ["sink"],  # "notification" | "email"
)

QUEUE_DEPTH = Gauge(
    "task_queue_depth",
    "Number of tasks waiting in a queue",
    ["queue_name"],
)
