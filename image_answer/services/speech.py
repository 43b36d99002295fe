"""Amazon Polly speech engine for the narration queue."""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from html import escape as html_escape
from typing import Any, Optional
from uuid import uuid4

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from image_answer.config.settings import PollyConfig
from image_answer.pipelines.answer import NarrationParams

logger = logging.getLogger(__name__)


class SpeechSynthesisError(RuntimeError):
    """Raised when Polly cannot synthesise a narration item."""


@dataclass(frozen=True)
class NarrationClip:
    """Synthesised narration kept in memory for clients to play back."""

    text: str
    audio_bytes: bytes
    media_type: str
    voice_id: str
    id: str = field(default_factory=lambda: uuid4().hex)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class NarrationClipStore:
    """Bounded in-memory store of the most recent clips."""

    def __init__(self, max_clips: int = 20) -> None:
        self._max_clips = max_clips
        self._clips: OrderedDict[str, NarrationClip] = OrderedDict()

    def add(self, clip: NarrationClip) -> None:
        self._clips[clip.id] = clip
        while len(self._clips) > self._max_clips:
            self._clips.popitem(last=False)

    def get(self, clip_id: str) -> Optional[NarrationClip]:
        return self._clips.get(clip_id)

    def recent(self) -> list[NarrationClip]:
        return list(self._clips.values())

    def clear(self) -> None:
        self._clips.clear()


def build_ssml(text: str, params: NarrationParams) -> str:
    """Map browser-style rate/pitch/volume (1.0 = neutral) to SSML prosody."""

    rate_pct = max(20, min(200, int(round(params.rate * 100))))
    pitch_pct = max(-50, min(50, int(round((params.pitch - 1.0) * 100))))
    volume_db = max(-20.0, min(0.0, (params.volume - 1.0) * 20.0))

    prosody_attrs: list[str] = []
    if rate_pct != 100:
        prosody_attrs.append(f'rate="{rate_pct}%"')
    if pitch_pct != 0:
        prosody_attrs.append(f'pitch="{pitch_pct:+d}%"')
    if volume_db != 0.0:
        prosody_attrs.append(f'volume="{volume_db:+.1f}dB"')
    if prosody_attrs:
        attr_str = " ".join(prosody_attrs)
        return f"<speak><prosody {attr_str}>{html_escape(text)}</prosody></speak>"
    return f"<speak>{html_escape(text)}</speak>"


class PollySpeechEngine:
    """Synthesise narration with Polly and publish the MP3 to a clip store.

    ``speak`` resolves once the clip has been produced; any Polly failure
    surfaces as ``SpeechSynthesisError`` for the narration queue to log.
    """

    def __init__(self, config: PollyConfig, store: NarrationClipStore) -> None:
        self._config = config
        self._store = store
        self._client: Any = None

    @property
    def store(self) -> NarrationClipStore:
        return self._store

    def _polly(self) -> Any:
        if self._client is None:
            client_kwargs: dict[str, Any] = {"region_name": self._config.region}
            if self._config.access_key and self._config.secret_key:
                client_kwargs["aws_access_key_id"] = self._config.access_key
                client_kwargs["aws_secret_access_key"] = self._config.secret_key.get_secret_value()
            self._client = boto3.client("polly", **client_kwargs)
        return self._client

    async def speak(self, text: str, params: NarrationParams) -> None:
        await self.synthesize(text, params)

    async def synthesize(self, text: str, params: NarrationParams) -> NarrationClip:
        """Produce one clip, store it and return it."""

        voice_id = params.voice_id or self._config.default_voice_id
        ssml = build_ssml(text, params)
        try:
            response: dict[str, Any] = await run_in_threadpool(
                self._polly().synthesize_speech,
                TextType="ssml",
                Text=ssml,
                VoiceId=voice_id,
                LanguageCode=params.language,
                Engine=self._config.engine,
                OutputFormat="mp3",
            )
        except (BotoCoreError, ClientError) as exc:
            logger.exception("Polly synth failed for voice '%s'", voice_id)
            raise SpeechSynthesisError(f"Failed to synthesize speech: {exc}") from exc

        audio_stream = response.get("AudioStream")
        if audio_stream is None:
            raise SpeechSynthesisError("Polly returned no audio stream.")
        audio_bytes = await run_in_threadpool(audio_stream.read)
        if not audio_bytes:
            raise SpeechSynthesisError("Polly returned an empty audio stream.")

        clip = NarrationClip(
            text=text,
            audio_bytes=audio_bytes,
            media_type="audio/mpeg",
            voice_id=voice_id,
        )
        self._store.add(clip)
        return clip


__all__ = [
    "NarrationClip",
    "NarrationClipStore",
    "PollySpeechEngine",
    "SpeechSynthesisError",
    "build_ssml",
]
