"""Append-only log of every outbound call made during a run."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Mapping, Optional

from .types import ApiRequestRecord

logger = logging.getLogger("image_answer.pipeline")

RequestListener = Callable[[ApiRequestRecord], None]


class RequestTracer:
    """Record outbound calls in dispatch order and settle them in place."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: list[ApiRequestRecord] = []
        self._index: dict[str, ApiRequestRecord] = {}
        self._listeners: list[RequestListener] = []

    def add_listener(self, listener: RequestListener) -> None:
        self._listeners.append(listener)

    def record(
        self,
        name: str,
        url: str,
        method: str,
        headers: Optional[Mapping[str, str]] = None,
        body: Any = None,
    ) -> ApiRequestRecord:
        entry = ApiRequestRecord(
            name=name,
            url=url,
            method=method.upper(),
            headers=dict(headers) if headers is not None else None,
            body=body,
        )
        with self._lock:
            self._records.append(entry)
            self._index[entry.id] = entry
        logger.info("Llamada %s %s %s", entry.name, entry.method, entry.url)
        self._notify(entry.copy())
        return entry

    def settle(self, handle: ApiRequestRecord, status: int, response: Any) -> None:
        with self._lock:
            entry = self._index.get(handle.id)
            if entry is None:
                return
            entry.status = status
            entry.response = response
            snapshot = entry.copy()
        logger.info("Respuesta %s status=%s", entry.name, status)
        self._notify(snapshot)

    def fail(self, handle: ApiRequestRecord, error: str) -> None:
        with self._lock:
            entry = self._index.get(handle.id)
            if entry is None:
                return
            entry.error = error
            snapshot = entry.copy()
        logger.warning("Fallo en %s: %s", entry.name, error)
        self._notify(snapshot)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
            self._index.clear()

    def snapshot(self) -> list[ApiRequestRecord]:
        """Return copies of the records in the order they were dispatched."""

        with self._lock:
            return [entry.copy() for entry in self._records]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _notify(self, snapshot: ApiRequestRecord) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:  # pragma: no cover - listener bug
                logger.exception("Request listener failed")


__all__ = ["RequestTracer", "RequestListener"]
