"""Schemas for single Flowise prediction calls."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, HttpUrl, model_validator


class FlowiseQueryRequest(BaseModel):
    question: str = Field(min_length=1)
    preset: Optional[Literal["analysis", "rag", "tools"]] = "analysis"
    url: Optional[HttpUrl] = None

    @model_validator(mode="after")
    def require_target(self) -> "FlowiseQueryRequest":
        if not self.question.strip():
            raise ValueError("question must not be blank")
        if self.url is None and self.preset is None:
            raise ValueError("either preset or url is required")
        return self


class FlowiseQueryResponse(BaseModel):
    url: str
    status: Optional[int] = None
    body: Any = None
    output: Optional[str] = None
    reading: Optional[str] = None
    error: Optional[str] = None
