"""Schemas for narration clips, queue state and the speak tester."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class NarrationClipResponse(BaseModel):
    id: str
    text: str
    voice_id: str
    media_type: str
    created_at: datetime


class NarrationStatusResponse(BaseModel):
    enabled: bool
    speaking: bool
    pending: list[str]
    clips: list[NarrationClipResponse]


class NarrationSpeakRequest(BaseModel):
    """Text to read aloud; unset prosody values fall back to the configured ones."""

    text: str = Field(min_length=1, max_length=3000)
    voice_id: Optional[str] = None
    rate: Optional[float] = Field(default=None, ge=0.5, le=2.0)
    pitch: Optional[float] = Field(default=None, ge=0.5, le=2.0)
    volume: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    @field_validator("text")
    @classmethod
    def reject_blank_text(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("text must not be blank")
        return value


class NarrationToggleRequest(BaseModel):
    enabled: bool
