"""Telemetry helpers and metrics."""

from .metrics import (
    ERROR_COUNTER,
    OUTBOUND_CALLS,
    PIPELINE_RUNS,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    STAGE_DURATION,
    STAGE_TRANSITIONS,
    observe_outbound_call,
    observe_pipeline_run,
    observe_request,
    observe_stage,
)

__all__ = [
    "ERROR_COUNTER",
    "OUTBOUND_CALLS",
    "PIPELINE_RUNS",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "STAGE_DURATION",
    "STAGE_TRANSITIONS",
    "observe_outbound_call",
    "observe_pipeline_run",
    "observe_request",
    "observe_stage",
]
