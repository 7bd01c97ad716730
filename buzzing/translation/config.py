"""Configuration for the translation engine."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TranslationConfig(BaseSettings):
    """Pacing and provider settings for translation."""

    model_config = SettingsConfigDict(
        env_prefix="TRANSLATION_",
        case_sensitive=False,
        extra="ignore",
    )

    inter_call_delay_seconds: float = Field(
        default=0.2,
        ge=0.0,
        description="Pause after each uncached provider call (provider rate limit)",
    )
    sweep_delay_seconds: float = Field(
        default=0.1,
        ge=0.0,
        description="Pause between posts in the pending-translation sweep",
    )
    min_text_length: int = Field(
        default=2,
        ge=0,
        description="Stripped texts shorter than this are passed through untranslated",
    )
    provider_endpoint: str = Field(
        default="tmt.tencentcloudapi.com",
        description="Tencent Cloud TMT API endpoint",
    )
    project_id: int = Field(default=0, ge=0, description="Tencent Cloud project id")
