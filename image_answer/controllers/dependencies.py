"""Common FastAPI dependencies reused across controllers.

The pipeline, its HTTP client and the narration clip store are process-wide
singletons built on first use; ``close_dependencies`` releases them on
shutdown.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

import httpx
from fastapi import Depends

from image_answer.config.settings import settings
from image_answer.pipelines.answer import (
    AnswerPipeline,
    EndpointKey,
    NarrationParams,
    NarrationQueue,
    RequestTracer,
    TracedHttpClient,
)
from image_answer.services import (
    NarrationClipStore,
    PollySpeechEngine,
    SettingsEnvironment,
)


@lru_cache
def get_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.request_timeout_seconds)


@lru_cache
def get_environment() -> SettingsEnvironment:
    return SettingsEnvironment(settings)


@lru_cache
def get_clip_store() -> NarrationClipStore:
    return NarrationClipStore(max_clips=settings.narration.max_clips)


@lru_cache
def get_speech_engine() -> PollySpeechEngine:
    return PollySpeechEngine(settings.polly, get_clip_store())


@lru_cache
def get_narration() -> NarrationQueue:
    narration = settings.narration
    engine = get_speech_engine()
    params = NarrationParams(
        language=narration.language,
        rate=narration.rate,
        pitch=narration.pitch,
        volume=narration.volume,
        voice_id=settings.polly.default_voice_id,
    )
    return NarrationQueue(engine, params, pause_seconds=narration.pause_seconds)


@lru_cache
def get_pipeline() -> AnswerPipeline:
    return AnswerPipeline(
        TracedHttpClient(get_http_client(), RequestTracer()),
        get_environment(),
        narration=get_narration(),
        branch_labels={
            EndpointKey.RAG: settings.flowise.rag_label,
            EndpointKey.TOOLS: settings.flowise.tools_label,
        },
    )


def get_standalone_client() -> TracedHttpClient:
    """Traced client with its own tracer, for calls made outside a pipeline run."""

    return TracedHttpClient(get_http_client(), RequestTracer())


async def close_dependencies() -> None:
    if get_narration.cache_info().currsize:
        await get_narration().close()
    if get_http_client.cache_info().currsize:
        await get_http_client().aclose()
    for factory in (
        get_pipeline,
        get_narration,
        get_speech_engine,
        get_clip_store,
        get_environment,
        get_http_client,
    ):
        factory.cache_clear()


PipelineDep = Annotated[AnswerPipeline, Depends(get_pipeline)]
EnvironmentDep = Annotated[SettingsEnvironment, Depends(get_environment)]
ClipStoreDep = Annotated[NarrationClipStore, Depends(get_clip_store)]
NarrationDep = Annotated[NarrationQueue, Depends(get_narration)]
SpeechEngineDep = Annotated[PollySpeechEngine, Depends(get_speech_engine)]
StandaloneClientDep = Annotated[TracedHttpClient, Depends(get_standalone_client)]


__all__ = [
    "ClipStoreDep",
    "EnvironmentDep",
    "NarrationDep",
    "PipelineDep",
    "SpeechEngineDep",
    "StandaloneClientDep",
    "close_dependencies",
    "get_clip_store",
    "get_environment",
    "get_http_client",
    "get_narration",
    "get_pipeline",
    "get_speech_engine",
    "get_standalone_client",
]
