"""Settings environment and the Polly speech engine."""

from __future__ import annotations

import asyncio
import io

import pytest
from botocore.exceptions import ClientError

from image_answer.config.settings import (
    FlowiseConfig,
    MathpixConfig,
    NarrationConfig,
    PollyConfig,
    Settings,
)
from image_answer.pipelines.answer import CredentialKey, EndpointKey, NarrationParams
from image_answer.services import (
    NarrationClip,
    NarrationClipStore,
    PollySpeechEngine,
    SettingsEnvironment,
    SpeechSynthesisError,
    build_ssml,
)


class FakePolly:
    def __init__(self, error: Exception | None = None) -> None:
        self.calls: list[dict] = []
        self.error = error

    def synthesize_speech(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return {"AudioStream": io.BytesIO(b"ID3-mp3-bytes")}


def _engine(monkeypatch, fake: FakePolly, store: NarrationClipStore) -> PollySpeechEngine:
    monkeypatch.setattr("image_answer.services.speech.boto3.client", lambda *args, **kwargs: fake)
    return PollySpeechEngine(PollyConfig(default_voice_id="Lucia", engine="neural"), store)


def test_environment_reads_grouped_settings():
    settings = Settings(
        mathpix=MathpixConfig(app_id="id-1", app_key="key-1"),
        flowise=FlowiseConfig(analysis_url="https://a", rag_url="https://r", tools_url=None),
        narration=NarrationConfig(enabled=True),
    )
    environment = SettingsEnvironment(settings)

    assert environment.get_credential(CredentialKey.MATHPIX_APP_ID) == "id-1"
    assert environment.get_credential(CredentialKey.MATHPIX_APP_KEY) == "key-1"
    assert environment.get_endpoint_url(EndpointKey.MATHPIX) == "https://api.mathpix.com/v3/text"
    assert environment.get_endpoint_url(EndpointKey.RAG) == "https://r"
    assert environment.get_endpoint_url(EndpointKey.TOOLS) is None
    assert environment.get_endpoint_url("unknown") is None
    assert environment.is_narration_enabled() is True


def test_ssml_maps_neutral_values_to_plain_speak():
    assert build_ssml("a < b", NarrationParams(rate=1.0)) == "<speak>a &lt; b</speak>"


def test_ssml_prosody_from_params():
    ssml = build_ssml("hola", NarrationParams(rate=0.9, pitch=1.1, volume=0.5))

    assert ssml == '<speak><prosody rate="90%" pitch="+10%" volume="-10.0dB">hola</prosody></speak>'


def test_clip_store_keeps_only_the_most_recent():
    store = NarrationClipStore(max_clips=2)
    clips = [
        NarrationClip(text=str(index), audio_bytes=b"x", media_type="audio/mpeg", voice_id="Lucia")
        for index in range(3)
    ]
    for clip in clips:
        store.add(clip)

    assert [clip.text for clip in store.recent()] == ["1", "2"]
    assert store.get(clips[0].id) is None


def test_speak_stores_the_synthesised_clip(monkeypatch):
    fake = FakePolly()
    store = NarrationClipStore()
    engine = _engine(monkeypatch, fake, store)

    asyncio.run(engine.speak("RAG: 4", NarrationParams(language="es-ES", rate=0.9)))

    (call,) = fake.calls
    assert call["VoiceId"] == "Lucia"
    assert call["LanguageCode"] == "es-ES"
    assert call["TextType"] == "ssml"
    assert call["OutputFormat"] == "mp3"
    (clip,) = store.recent()
    assert clip.text == "RAG: 4"
    assert clip.audio_bytes == b"ID3-mp3-bytes"
    assert clip.media_type == "audio/mpeg"


def test_speak_prefers_the_voice_from_params(monkeypatch):
    fake = FakePolly()
    engine = _engine(monkeypatch, fake, NarrationClipStore())

    asyncio.run(engine.speak("hola", NarrationParams(voice_id="Sergio")))

    assert fake.calls[0]["VoiceId"] == "Sergio"


def test_polly_errors_become_synthesis_errors(monkeypatch):
    error = ClientError({"Error": {"Code": "ThrottlingException", "Message": "slow down"}}, "SynthesizeSpeech")
    store = NarrationClipStore()
    engine = _engine(monkeypatch, FakePolly(error), store)

    with pytest.raises(SpeechSynthesisError):
        asyncio.run(engine.speak("hola", NarrationParams()))

    assert store.recent() == []


def test_runtime_narration_switch_overrides_settings():
    environment = SettingsEnvironment(Settings(narration=NarrationConfig(enabled=False)))

    environment.set_narration_enabled(True)
    assert environment.is_narration_enabled() is True

    environment.set_narration_enabled(False)
    assert environment.is_narration_enabled() is False


def test_synthesize_returns_the_stored_clip(monkeypatch):
    store = NarrationClipStore()
    engine = _engine(monkeypatch, FakePolly(), store)

    clip = asyncio.run(engine.synthesize("hola", NarrationParams()))

    assert clip.voice_id == "Lucia"
    assert store.get(clip.id) is clip
