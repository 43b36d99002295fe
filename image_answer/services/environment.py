"""Settings-backed credentials, endpoints and flags for the pipeline."""

from __future__ import annotations

from typing import Optional

from image_answer.config.settings import Settings
from image_answer.pipelines.answer import CredentialKey, EndpointKey


class SettingsEnvironment:
    """Resolve pipeline configuration from the application ``Settings``."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._narration_override: Optional[bool] = None

    def get_credential(self, key: str) -> Optional[str]:
        mathpix = self._settings.mathpix
        if key == CredentialKey.MATHPIX_APP_ID:
            return mathpix.app_id
        if key == CredentialKey.MATHPIX_APP_KEY:
            return mathpix.app_key.get_secret_value() if mathpix.app_key else None
        return None

    def get_endpoint_url(self, key: str) -> Optional[str]:
        flowise = self._settings.flowise
        return {
            EndpointKey.MATHPIX: self._settings.mathpix.url,
            EndpointKey.ANALYSIS: flowise.analysis_url,
            EndpointKey.RAG: flowise.rag_url,
            EndpointKey.TOOLS: flowise.tools_url,
        }.get(key)

    def is_narration_enabled(self) -> bool:
        if self._narration_override is not None:
            return self._narration_override
        return self._settings.narration.enabled

    def set_narration_enabled(self, enabled: bool) -> None:
        """Switch auto-read narration at runtime; wins over the configured value."""

        self._narration_override = enabled


__all__ = ["SettingsEnvironment"]
