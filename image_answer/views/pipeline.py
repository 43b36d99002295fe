"""Schemas for pipeline runs and their live state."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

from image_answer.pipelines.answer import (
    ApiRequestRecord,
    PipelineResult,
    PipelineStage,
)


class StageResponse(BaseModel):
    id: str
    title: str
    status: str
    description: str = ""
    error: Optional[str] = None

    @classmethod
    def from_stage(cls, stage: PipelineStage) -> "StageResponse":
        return cls(
            id=stage.id,
            title=stage.title,
            status=stage.status.value,
            description=stage.description,
            error=stage.error,
        )


class ApiRequestResponse(BaseModel):
    id: str
    name: str
    url: str
    method: str
    headers: Optional[dict[str, str]] = None
    body: Any = None
    status: Optional[int] = None
    response: Any = None
    error: Optional[str] = None
    timestamp: datetime

    @classmethod
    def from_record(cls, record: ApiRequestRecord) -> "ApiRequestResponse":
        return cls(
            id=record.id,
            name=record.name,
            url=record.url,
            method=record.method,
            headers=record.headers,
            body=record.body,
            status=record.status,
            response=record.response,
            error=record.error,
            timestamp=record.timestamp,
        )


class AnswerResponse(BaseModel):
    branch: str
    label: str
    text: str


class PipelineRunResponse(BaseModel):
    state: str
    ocr_text: Optional[str] = None
    answers: list[AnswerResponse] = []
    error: Optional[str] = None
    error_code: Optional[str] = None
    stages: list[StageResponse] = []
    requests: list[ApiRequestResponse] = []

    @classmethod
    def from_result(cls, result: PipelineResult) -> "PipelineRunResponse":
        return cls(
            state=result.state.value,
            ocr_text=result.ocr_text,
            answers=[
                AnswerResponse(branch=answer.branch, label=answer.label, text=answer.text)
                for answer in result.answers
            ],
            error=str(result.error) if result.error else None,
            error_code=result.error.code if result.error else None,
            stages=[StageResponse.from_stage(stage) for stage in result.stages],
            requests=[ApiRequestResponse.from_record(record) for record in result.requests],
        )


class OcrResponse(BaseModel):
    text: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    requests: list[ApiRequestResponse] = []


class CancelResponse(BaseModel):
    cancelled: bool
