"""Unified configuration for the Pocket core."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global settings of the Pocket core."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow",
    )

    # Groq
    groq_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("groq_api_key", "GROQ_API_KEY", "POCKET_GROQ_API_KEY"),
    )
    groq_chat_url: str = "https://api.groq.com/openai/v1/chat/completions"
    groq_transcription_url: str = "https://api.groq.com/openai/v1/audio/transcriptions"
    groq_model: str = "llama-3.3-70b-versatile"
    groq_fast_model: str = "llama-3.1-8b-instant"
    groq_whisper_model: str = "whisper-large-v3-turbo"
    groq_timeout_sec: float = 30.0
    groq_temperature: float = 0.1
    groq_max_tokens: int = 256

    # Classifier
    intent_cache_size: int = 100
    pattern_confidence: float = 0.9
    llm_default_confidence: float = 0.8
    fallback_confidence: float = 0.5
    classification_timeout_sec: float | None = None

    # Interaction phases
    completion_reset_delay_sec: float = 2.0
    listening_timeout_sec: float = 5.0
    task_history_limit: int = 200

    # Batch session
    session_max_items: int = 10
    session_timeout_sec: float = 300.0

    # Logs
    log_dir: str | None = None
    log_level: str = "INFO"
    log_rotate_mb: int = 5
    log_retention_days: int = 7

    # Observability
    enable_metrics: bool = False

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls.json_config_settings_source,
            file_secret_settings,
        )

    @staticmethod
    def json_config_settings_source() -> dict[str, object]:
        """Load config.json at the repository root when present."""
        config_path = Path(__file__).resolve().parents[2] / "config.json"
        if config_path.is_file():
            try:
                return json.loads(config_path.read_text())
            except ValueError:
                return {}
        return {}

    def masked_dump(self) -> dict[str, object]:
        """Return the settings as a dict with secrets hidden."""
        data = self.model_dump()
        if data.get("groq_api_key"):
            data["groq_api_key"] = "***"
        return data


@lru_cache()
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
