"""httpx transport that writes every outbound call to a ``RequestTracer``."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import httpx

from image_answer.telemetry import observe_outbound_call

from .tracer import RequestTracer
from .types import ApiRequestRecord


class ServiceCallError(RuntimeError):
    """Raised when a call cannot be completed or its body cannot be decoded."""


@dataclass(frozen=True)
class ServiceResponse:
    status: int
    body: Any
    content_type: str
    record: ApiRequestRecord

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300


def _decode_body(response: httpx.Response) -> tuple[Any, str]:
    """Parse JSON when the content type says so, otherwise keep the raw text."""

    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        return response.json(), content_type
    return response.text, content_type


@dataclass(frozen=True)
class PendingCall:
    """A call already written to the trace but not sent yet."""

    record: ApiRequestRecord
    url: str
    payload: Mapping[str, Any]
    headers: Mapping[str, str]
    metric_label: str


class TracedHttpClient:
    """POST JSON payloads while recording each call for observers."""

    def __init__(self, client: httpx.AsyncClient, tracer: RequestTracer) -> None:
        self._client = client
        self.tracer = tracer

    def prepare(
        self,
        name: str,
        url: str,
        payload: Mapping[str, Any],
        *,
        headers: Optional[Mapping[str, str]] = None,
        trace_headers: Optional[Mapping[str, str]] = None,
        trace_body: Any = None,
        metric_label: str = "flowise",
    ) -> PendingCall:
        """Write the call to the trace; ``send`` dispatches it.

        ``trace_headers``/``trace_body`` replace what is written to the trace
        when the real values are secret or too large to keep around.
        """

        request_headers = {"Content-Type": "application/json", **(headers or {})}
        record = self.tracer.record(
            name,
            url,
            "POST",
            headers=trace_headers if trace_headers is not None else request_headers,
            body=trace_body if trace_body is not None else dict(payload),
        )
        return PendingCall(
            record=record,
            url=url,
            payload=dict(payload),
            headers=request_headers,
            metric_label=metric_label,
        )

    async def send(self, call: PendingCall) -> ServiceResponse:
        record = call.record
        try:
            response = await self._client.post(call.url, json=call.payload, headers=call.headers)
            body, content_type = _decode_body(response)
        except (httpx.HTTPError, ValueError) as exc:
            message = str(exc) or exc.__class__.__name__
            self.tracer.fail(record, message)
            observe_outbound_call(call.metric_label, "error")
            raise ServiceCallError(message) from exc
        except asyncio.CancelledError:
            self.tracer.fail(record, "Cancelled")
            observe_outbound_call(call.metric_label, "cancelled")
            raise

        self.tracer.settle(record, response.status_code, body)
        observe_outbound_call(call.metric_label, str(response.status_code))
        return ServiceResponse(
            status=response.status_code,
            body=body,
            content_type=content_type,
            record=record,
        )

    async def post_json(self, name: str, url: str, payload: Mapping[str, Any], **options: Any) -> ServiceResponse:
        """Record and send in one step; ``options`` are those of ``prepare``."""

        return await self.send(self.prepare(name, url, payload, **options))



__all__ = ["PendingCall", "ServiceCallError", "ServiceResponse", "TracedHttpClient"]
