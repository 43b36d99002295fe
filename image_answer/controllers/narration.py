"""Narration endpoints: queue state, the auto-read switch and Polly MP3 clips."""

import logging
from dataclasses import replace

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import Response

from image_answer.controllers.dependencies import (
    ClipStoreDep,
    EnvironmentDep,
    NarrationDep,
    SpeechEngineDep,
)
from image_answer.services import NarrationClip, SpeechSynthesisError
from image_answer.views import (
    NarrationClipResponse,
    NarrationSpeakRequest,
    NarrationStatusResponse,
    NarrationToggleRequest,
)

router = APIRouter(prefix="/narration", tags=["narration"])

logger = logging.getLogger(__name__)


def _clip_view(clip: NarrationClip) -> NarrationClipResponse:
    return NarrationClipResponse(
        id=clip.id,
        text=clip.text,
        voice_id=clip.voice_id,
        media_type=clip.media_type,
        created_at=clip.created_at,
    )


@router.get("", response_model=NarrationStatusResponse)
async def narration_status(
    environment: EnvironmentDep,
    narration: NarrationDep,
    store: ClipStoreDep,
) -> NarrationStatusResponse:
    return NarrationStatusResponse(
        enabled=environment.is_narration_enabled(),
        speaking=narration.is_speaking,
        pending=narration.pending,
        clips=[_clip_view(clip) for clip in store.recent()],
    )


@router.put("", response_model=NarrationStatusResponse)
async def toggle_narration(
    request: NarrationToggleRequest,
    environment: EnvironmentDep,
    narration: NarrationDep,
    store: ClipStoreDep,
) -> NarrationStatusResponse:
    """Turn auto-read of pipeline answers on or off until the process restarts."""

    environment.set_narration_enabled(request.enabled)
    logger.info("Narración automática enabled=%s", request.enabled)
    return await narration_status(environment, narration, store)


@router.post("", response_model=NarrationClipResponse, status_code=status.HTTP_201_CREATED)
async def speak_text(
    request: NarrationSpeakRequest,
    engine: SpeechEngineDep,
    narration: NarrationDep,
) -> NarrationClipResponse:
    """Synthesise arbitrary text with the configured voice, or the one given."""

    overrides = {
        name: value
        for name, value in request.model_dump(include={"voice_id", "rate", "pitch", "volume"}).items()
        if value is not None
    }
    params = replace(narration.params, **overrides)
    try:
        clip = await engine.synthesize(request.text, params)
    except SpeechSynthesisError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return _clip_view(clip)


@router.get("/clips", response_model=list[NarrationClipResponse])
async def list_clips(store: ClipStoreDep) -> list[NarrationClipResponse]:
    """Most recent narration clips, oldest first."""

    return [_clip_view(clip) for clip in store.recent()]


@router.get("/clips/{clip_id}", response_class=Response)
async def get_clip(clip_id: str, store: ClipStoreDep) -> Response:
    """Return the MP3 bytes of one clip."""

    clip = store.get(clip_id)
    if clip is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Clip not found")
    return Response(content=clip.audio_bytes, media_type=clip.media_type)
