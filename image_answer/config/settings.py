from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class MathpixConfig(BaseSettings):
    """Mathpix OCR configuration"""

    url: str = "https://api.mathpix.com/v3/text"
    app_id: Optional[str] = None
    app_key: Optional[SecretStr] = None

    model_config = SettingsConfigDict(
        env_prefix="MATHPIX_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class FlowiseConfig(BaseSettings):
    """Flowise prediction endpoints used by the analysis and answering stages."""

    analysis_url: Optional[str] = None
    rag_url: Optional[str] = None
    tools_url: Optional[str] = None
    rag_label: str = "RAG con Respuestas"
    tools_label: str = "Herramientas con Respuestas"
    # hosts /flowise/query may call besides the configured flows, as a JSON list
    allowed_hosts: list[str] = Field(default_factory=list)

    model_config = SettingsConfigDict(
        env_prefix="FLOWISE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class NarrationConfig(BaseSettings):
    """Narration (text-to-speech) parameters."""

    enabled: bool = False
    language: str = "es-ES"
    rate: float = Field(default=0.9, ge=0.1, le=10.0)
    pitch: float = Field(default=1.0, ge=0.0, le=2.0)
    volume: float = Field(default=1.0, ge=0.0, le=1.0)
    pause_seconds: float = Field(default=0.1, ge=0.0)
    max_clips: int = Field(default=20, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="NARRATION_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class PollyConfig(BaseSettings):
    """Amazon Polly configuration."""

    region: str = "us-east-1"
    default_voice_id: str = "Lucia"
    engine: str = "neural"
    access_key: Optional[str] = None
    secret_key: Optional[SecretStr] = None

    model_config = SettingsConfigDict(
        env_prefix="POLLY_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings"""

    app_name: str = "Image Answer Backend"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    log_file: str = "logs/app.log"
    pipeline_log_file: str = "logs/pipeline.log"

    # Outbound calls; None disables the timeout
    request_timeout_seconds: Optional[float] = Field(default=60.0, gt=0)
    max_image_bytes: int = 5 * 1024 * 1024

    # Mathpix
    mathpix: MathpixConfig = Field(default_factory=MathpixConfig)

    # Flowise
    flowise: FlowiseConfig = Field(default_factory=FlowiseConfig)

    # Narration
    narration: NarrationConfig = Field(default_factory=NarrationConfig)

    # Polly
    polly: PollyConfig = Field(default_factory=PollyConfig)

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
