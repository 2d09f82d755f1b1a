"""Configuration management for toolloop."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"


def _env(name: str) -> AliasChoices:
    return AliasChoices(f"TOOLLOOP_{name}", name)


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="TOOLLOOP_",
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
        protected_namespaces=(),
    )

    # Model selection
    model: Optional[str] = Field(default=None, description="Model name (e.g. 'gpt-4o-mini', 'mistral-small')")
    provider: Optional[str] = Field(default=None, description="Provider name: ollama, openai or anthropic")

    # Run budget
    max_turns: int = Field(default=15, ge=1, description="Maximum number of provider turns per run")
    tool_timeout_seconds: float = Field(default=30.0, gt=0, description="Per-call tool deadline")
    max_tool_output_chars: int = Field(default=8192, ge=0, description="Tool output budget before truncation")
    model_timeout_seconds: float = Field(default=120.0, gt=0, description="Deadline for one provider round-trip")
    finalize_on_last_turn: bool = Field(
        default=False,
        description="Accept a tool-free response on the final turn as the result",
    )

    # Provider credentials and endpoints
    openai_api_key: Optional[str] = Field(default=None, validation_alias=_env("OPENAI_API_KEY"))
    openai_base_url: str = Field(default="https://api.openai.com", validation_alias=_env("OPENAI_BASE_URL"))
    anthropic_api_key: Optional[str] = Field(default=None, validation_alias=_env("ANTHROPIC_API_KEY"))
    anthropic_base_url: str = Field(default="https://api.anthropic.com", validation_alias=_env("ANTHROPIC_BASE_URL"))
    anthropic_version: str = Field(default="2023-06-01", validation_alias=_env("ANTHROPIC_VERSION"))
    ollama_host: str = Field(default="http://localhost:11434", validation_alias=_env("OLLAMA_HOST"))

    # Tool family credentials
    api_base_url: str = Field(default="http://localhost:3001", validation_alias=_env("API_BASE_URL"))
    auth_token: Optional[str] = Field(default=None, validation_alias=_env("AUTH_TOKEN"))

    # Logging
    log_level: str = Field(default="INFO", validation_alias=_env("LOG_LEVEL"))

    def tool_credentials(self) -> dict[str, str]:
        """Credentials handed to every tool through its context."""
        credentials = {"api_base_url": self.api_base_url}
        if self.auth_token:
            credentials["auth_token"] = self.auth_token
        return credentials


def get_settings(workspace_path: Optional[Path] = None) -> Settings:
    """Get application settings.

    Args:
        workspace_path: Optional workspace whose ``.env`` file is loaded

    Returns:
        Settings instance
    """
    if workspace_path is None:
        return Settings()
    return Settings(_env_file=Path(workspace_path) / ENV_FILE)
