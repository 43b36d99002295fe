"""Prometheus metrics definitions and helpers."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests processed",
    ("method", "route", "status"),
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "route"),
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
        10.0,
    ),
)

ERROR_COUNTER = Counter(
    "app_internal_errors_total",
    "Number of requests ending in internal server error responses",
    ("method", "route"),
)

PIPELINE_RUNS = Counter(
    "pipeline_runs_total",
    "Image answer pipeline runs by final state",
    ("outcome",),
)

STAGE_TRANSITIONS = Counter(
    "pipeline_stage_transitions_total",
    "Stage status transitions observed by the stage tracker",
    ("stage", "status"),
)

STAGE_DURATION = Histogram(
    "pipeline_stage_duration_seconds",
    "Time between a stage starting and settling",
    ("stage", "status"),
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
)

OUTBOUND_CALLS = Counter(
    "pipeline_outbound_calls_total",
    "Calls made to external services",
    ("service", "status"),
)


def observe_request(
    method: str,
    route: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """Record metrics for a completed HTTP request."""

    safe_route = route or "unknown"
    safe_method = method or "UNKNOWN"
    status_label = str(status_code)
    observed_duration = duration_seconds if duration_seconds >= 0 else 0

    REQUEST_COUNT.labels(
        method=safe_method,
        route=safe_route,
        status=status_label,
    ).inc()
    REQUEST_LATENCY.labels(
        method=safe_method,
        route=safe_route,
    ).observe(observed_duration)

    if status_code >= 500:
        ERROR_COUNTER.labels(
            method=safe_method,
            route=safe_route,
        ).inc()


def observe_stage(stage: str, status: str, duration_seconds: float | None = None) -> None:
    """Record a stage transition and, once settled, how long it ran."""

    STAGE_TRANSITIONS.labels(stage=stage, status=status).inc()
    if duration_seconds is not None:
        STAGE_DURATION.labels(stage=stage, status=status).observe(max(0.0, duration_seconds))


def observe_outbound_call(service: str, status: str) -> None:
    OUTBOUND_CALLS.labels(service=service, status=status).inc()


def observe_pipeline_run(outcome: str) -> None:
    PIPELINE_RUNS.labels(outcome=outcome).inc()
