"""Service layer helpers for external integrations."""

from .environment import SettingsEnvironment
from .speech import (
    NarrationClip,
    NarrationClipStore,
    PollySpeechEngine,
    SpeechSynthesisError,
    build_ssml,
)

__all__ = [
    "SettingsEnvironment",
    "NarrationClip",
    "NarrationClipStore",
    "PollySpeechEngine",
    "SpeechSynthesisError",
    "build_ssml",
]
