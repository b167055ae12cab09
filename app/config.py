"""Gateway configuration loaded from ``Q_OLLAMA_*`` environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="Q_OLLAMA_",
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=("settings_",),
    )

    # External assistant executable, resolved through PATH
    executable: str = "q"

    # The single model identity every response is answered as
    model_name: str = "amazon-q"

    # Directory for staged attachments; system temp dir when unset
    temp_dir: Path | None = None

    # Seconds before a buffered invocation is killed; unset means no limit
    invocation_timeout: float | None = Field(default=None, gt=0)

    # Emit an error line when a streamed invocation exits non-zero
    stream_exit_errors: bool = True

    host: str = "0.0.0.0"
    port: int = 11434
    log_level: str = "INFO"
    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"])
    version: str = "amazon-q-ollama-1.0.0"


@lru_cache
def get_settings() -> Settings:
    return Settings()
