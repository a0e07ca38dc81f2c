"""Prometheus metric inventory.

Every metric the service exports is declared here; the modules that own
the behavior import the metric and update it at the point of action.
Scraped through GET /metrics.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by MetricsMiddleware)
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
# Domain metrics
# ---------------------------------------------------------------------------

QUOTA_CHECKS = Counter(
    "project_quota_checks_total",
    "Monthly project quota checks by outcome",
    ["result"],  # "permitted" or "rejected"
)

INVITATION_EVENTS = Counter(
    "invitations_total",
    "Invitation lifecycle transitions",
    ["event"],  # created, accepted, expired, email_enqueue_failed
)

EMAILS_SENT = Counter(
    "emails_total",
    "Invitation email delivery attempts by result",
    ["result"],  # sent, logged, skipped, failed
)

RATE_LIMIT_HITS = Counter(
    "rate_limit_hits_total",
    "Requests rejected by rate limiting (429s)",
    ["key_type"],  # "user" or "ip"
)

QUEUE_DEPTH = Gauge(
    "task_queue_depth",
    "Number of tasks waiting in a queue",
    ["queue_name"],
)
