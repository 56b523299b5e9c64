"""Prometheus metric inventory.

Every metric the service exports is declared here; the modules that own the
behavior import and increment them at the point of action.

HTTP metrics are fed by MetricsMiddleware.  Ledger metrics are the ones an
operator alerts on: a rise in ``ledger_calls_total{outcome="indeterminate"}``
means credentials are waiting for manual reconciliation.
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
# Ledger metrics
# ---------------------------------------------------------------------------

LEDGER_CALLS = Counter(
    "ledger_calls_total",
    "Ledger operations by outcome",
    # operation: mint|read_hash|has_identity|read_random|plan_price|pay|fetch_mint
    # outcome:   ok|failed|indeterminate|rejected
    ["operation", "outcome"],
)

LEDGER_CALL_DURATION = Histogram(
    "ledger_call_duration_seconds",
    "Ledger round-trip duration, including receipt waits for writes",
    ["operation"],
    # Writes wait for block inclusion, so the tail is long.
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0],
)

# ---------------------------------------------------------------------------
# Domain metrics
# ---------------------------------------------------------------------------

CREDENTIAL_TRANSITIONS = Counter(
    "credential_transitions_total",
    "Credential state transitions",
    ["transition"],  # submit|approve_minted|approve_reused|reject|unverify|reconcile
)

QUIZ_ATTEMPTS = Counter(
    "quiz_attempts_total",
    "Submitted quiz attempts by outcome",
    ["outcome"],  # failed|passed_anchored|passed_unanchored
)
