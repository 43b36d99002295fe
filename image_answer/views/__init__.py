"""Pydantic schemas used as views in the MVC architecture."""

from .common import ErrorResponse
from .flowise import FlowiseQueryRequest, FlowiseQueryResponse
from .narration import (
    NarrationClipResponse,
    NarrationSpeakRequest,
    NarrationStatusResponse,
    NarrationToggleRequest,
)
from .pipeline import (
    AnswerResponse,
    ApiRequestResponse,
    CancelResponse,
    OcrResponse,
    PipelineRunResponse,
    StageResponse,
)

__all__ = [
    "ErrorResponse",
    "FlowiseQueryRequest",
    "FlowiseQueryResponse",
    "NarrationClipResponse",
    "NarrationSpeakRequest",
    "NarrationStatusResponse",
    "NarrationToggleRequest",
    "AnswerResponse",
    "ApiRequestResponse",
    "CancelResponse",
    "OcrResponse",
    "PipelineRunResponse",
    "StageResponse",
]
