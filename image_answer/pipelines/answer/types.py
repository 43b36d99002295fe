"""Typed containers shared across the image answer pipeline.

These dataclasses live in their own module so the tracer, tracker, stage
helpers and the controller can import them without circular dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Protocol
from uuid import uuid4

if TYPE_CHECKING:
    from .errors import PipelineError


class StageStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ERROR = "error"


class PipelineState(str, Enum):
    IDLE = "idle"
    OCR_RUNNING = "ocr_running"
    ANALYZING = "analyzing"
    FANNING_OUT = "fanning_out"
    DONE = "done"
    FAILED = "failed"


@dataclass(slots=True)
class ApiRequestRecord:
    """One outbound call, created on dispatch and settled once."""

    name: str
    url: str
    method: str
    headers: Optional[dict[str, str]] = None
    body: Any = None
    status: Optional[int] = None
    response: Any = None
    error: Optional[str] = None
    id: str = field(default_factory=lambda: uuid4().hex)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def settled(self) -> bool:
        return self.status is not None or self.error is not None

    def copy(self) -> "ApiRequestRecord":
        return replace(self, headers=dict(self.headers) if self.headers else self.headers)


@dataclass(frozen=True)
class StageDefinition:
    """Fixed identity of a stage, declared before a run starts."""

    id: str
    title: str
    description: str = ""


@dataclass(slots=True)
class PipelineStage:
    id: str
    title: str
    status: StageStatus = StageStatus.PENDING
    description: str = ""
    error: Optional[str] = None

    def copy(self) -> "PipelineStage":
        return replace(self)


@dataclass(frozen=True)
class BatchImage:
    """Ready-to-submit image payload (a ``data:image/...;base64,`` URL)."""

    payload: str
    label: int
    mime_type: str = "image/jpeg"


@dataclass(frozen=True)
class MathpixCredentials:
    app_id: str
    app_key: str


@dataclass(frozen=True)
class ExtractedAnswer:
    """Answer text produced by one fan-out branch."""

    branch: str
    label: str
    text: str


@dataclass(frozen=True)
class NarrationParams:
    language: str = "es-ES"
    rate: float = 0.9
    pitch: float = 1.0
    volume: float = 1.0
    voice_id: Optional[str] = None


@dataclass
class PipelineResult:
    """Final outcome of one pipeline run."""

    state: PipelineState
    ocr_text: Optional[str] = None
    answers: list[ExtractedAnswer] = field(default_factory=list)
    error: Optional["PipelineError"] = None
    stages: list[PipelineStage] = field(default_factory=list)
    requests: list[ApiRequestRecord] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def answer_texts(self) -> list[str]:
        return [answer.text for answer in self.answers]

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


class PipelineEnvironment(Protocol):
    """Resolved credentials, endpoints and flags supplied by the host application."""

    def get_credential(self, key: str) -> Optional[str]: ...

    def get_endpoint_url(self, key: str) -> Optional[str]: ...

    def is_narration_enabled(self) -> bool: ...


class SpeechEngine(Protocol):
    """External speech actor; ``speak`` resolves once playback has finished."""

    async def speak(self, text: str, params: NarrationParams) -> None: ...
