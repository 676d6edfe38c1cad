"""Application settings loaded from environment variables."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """promptforge server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default; there is no auth layer in front of the MCP tools.
    promptforge_host: str = "127.0.0.1"
    promptforge_port: int = 8011
    promptforge_log_level: str = "info"
    promptforge_allow_insecure_bind: bool = False

    # Model boundary
    llm_provider: Literal["anthropic", "openai", "mock"] = "openai"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-5-20250929"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o"
    # Any OpenAI-compatible endpoint, e.g. https://api.deepseek.com
    openai_base_url: str = ""
    llm_max_tokens: int = 4096
    llm_temperature: float = 0.7
    llm_timeout_seconds: float = 120.0

    # Template persistence. Empty string keeps templates in memory only.
    db_path: str = "~/.promptforge/templates.db"


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
