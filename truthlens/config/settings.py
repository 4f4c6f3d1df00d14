"""
Application settings and configuration management.

Uses Pydantic Settings for validation and environment variable support.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProviderSettings(BaseSettings):
    """Operator-level provider configuration: platform keys, endpoints, model overrides."""

    groq_api_key: str = Field(default="", description="Platform Groq API key")
    gemini_api_key: str = Field(default="", description="Platform Google Gemini API key")
    openai_api_key: str = Field(default="", description="Platform OpenAI API key")
    deepseek_api_key: str = Field(default="", description="Platform DeepSeek API key")
    openrouter_api_key: str = Field(default="", description="Platform OpenRouter API key")

    fallback_models: dict[str, str] = Field(
        default_factory=dict,
        description="Per-provider comma-separated model list, tried in order. "
                    "Set via PROVIDERS__FALLBACK_MODELS='{\"groq\": \"llama-3.3-70b-versatile,llama-3.1-8b-instant\"}'",
    )

    deepseek_base_url: str = Field(
        default="https://api.deepseek.com",
        description="DeepSeek endpoint. Any OpenAI-compatible host works (e.g. a self-hosted server).",
    )
    openrouter_model: str = Field(
        default="meta-llama/llama-3.1-8b-instruct:free",
        description="Default OpenRouter model when no override is configured",
    )
    openrouter_referer: str = Field(
        default="https://truthlens.app", description="HTTP-Referer header sent to OpenRouter"
    )
    openrouter_title: str = Field(default="TruthLens AI", description="X-Title header sent to OpenRouter")

    self_hosted_url: str = Field(
        default="http://localhost:11434", description="Base URL of the self-hosted Ollama server"
    )
    self_hosted_model: str = Field(default="llama3.2:1b", description="Default self-hosted model")

    model_config = SettingsConfigDict(env_prefix="PROVIDERS_")

    def platform_keys(self) -> dict[str, str]:
        """Platform keys that are actually set, keyed by provider name."""
        keys = {
            "groq": self.groq_api_key,
            "gemini": self.gemini_api_key,
            "openai": self.openai_api_key,
            "deepseek": self.deepseek_api_key,
            "openrouter": self.openrouter_api_key,
        }
        return {name: key for name, key in keys.items() if key}


class InferenceSettings(BaseSettings):
    """Dispatch behaviour shared by every provider call."""

    temperature: float = Field(default=0.7, description="Sampling temperature")
    max_tokens: int = Field(default=1024, description="Maximum tokens in response")
    request_timeout: float = Field(default=60.0, description="Per-call timeout in seconds")
    chain_timeout: float | None = Field(
        default=None,
        description="Caller-level budget for a whole fallback chain in seconds. None means no limit.",
    )
    credential_cache_ttl: float = Field(
        default=60.0, description="Seconds a platform credential snapshot stays fresh"
    )
    cancel_race_losers: bool = Field(
        default=False,
        description="Cancel still-running race candidates once a winner is found. "
                    "Off by default: losers run to completion and their results are discarded.",
    )

    model_config = SettingsConfigDict(env_prefix="INFERENCE_")


class Settings(BaseSettings):
    """Main application settings."""

    # Environment
    environment: Literal["development", "production"] = Field(
        default="development", description="Deployment environment"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_file: Path | None = Field(default=None, description="Log file path")

    # Sub-configurations
    providers: ProviderSettings = Field(default_factory=ProviderSettings)
    inference: InferenceSettings = Field(default_factory=InferenceSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )


def load_settings(env_file: str | Path | None = None) -> Settings:
    """
    Load settings from file and environment.

    Args:
        env_file: Path to .env file (optional)

    Returns:
        Loaded settings instance
    """
    if env_file:
        return Settings(_env_file=env_file)
    return Settings()
