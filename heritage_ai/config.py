"""
Configuration module for the Heritage AI gateway.
Loads settings from environment variables or .env file.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file from project root (parent of heritage_ai/ directory)
_project_root = Path(__file__).parent.parent
_env_path = _project_root / ".env"
load_dotenv(_env_path)

SUPPORTED_PROVIDERS = ("openai", "anthropic", "google", "ollama")

# Accepted spellings for AI_PROVIDER
PROVIDER_ALIASES = {
    "gemini": "google",
}


def normalize_provider_name(name: str) -> str:
    """Lower-case a provider name and resolve aliases."""
    name = (name or "").strip().lower()
    return PROVIDER_ALIASES.get(name, name)


@dataclass(frozen=True)
class ProviderSettings:
    """Everything needed to build one text-generation provider."""
    provider: str
    model: str
    api_key: str = ""
    base_url: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = 1000


@dataclass(frozen=True)
class GatewaySettings:
    """Tunables for prompt assembly and conversation replay."""
    history_limit: int = 5
    reference_limit: int = 5
    description_budget: int = 200
    cultural_context_budget: int = 150
    title_length: int = 100
    debug_errors: bool = False


class Config:
    """Application configuration."""

    # Environment name; "development" exposes internal error details
    APP_ENV: str = os.getenv("APP_ENV", "production")

    # Database settings
    DATABASE_PATH: Path = Path(os.getenv("DATABASE_PATH", "./heritage_ai.db"))

    # PostgreSQL settings (selects the asyncpg store when present)
    POSTGRES_URL: str = os.getenv(
        "DATABASE_URL",
        os.getenv("POSTGRES_URL", "")
    )

    # API settings
    API_HOST: str = os.getenv("API_HOST", "127.0.0.1")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))
    SERVICE_API_KEY: str = os.getenv("SERVICE_API_KEY", "")
    CORS_ORIGINS: list = [
        origin.strip()
        for origin in os.getenv(
            "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
        ).split(",")
        if origin.strip()
    ]

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Provider selection
    # Supported providers: "openai", "anthropic", "google", "ollama"
    AI_PROVIDER: str = os.getenv("AI_PROVIDER", "openai")

    # OpenAI settings
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o")
    OPENAI_BASE_URL: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")

    # Anthropic settings
    ANTHROPIC_API_KEY: str = os.getenv("ANTHROPIC_API_KEY", "")
    ANTHROPIC_MODEL: str = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-20250514")

    # Google Gemini settings
    GOOGLE_AI_API_KEY: str = os.getenv(
        "GOOGLE_AI_API_KEY",
        os.getenv("GEMINI_API_KEY", "")
    )
    GOOGLE_MODEL: str = os.getenv("GOOGLE_MODEL", "gemini-1.5-pro")

    # Ollama settings (local models)
    OLLAMA_BASE_URL: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
    OLLAMA_MODEL: str = os.getenv("OLLAMA_MODEL", "llama3.2")

    # Common generation defaults
    AI_TEMPERATURE: float = float(os.getenv("AI_TEMPERATURE", "0.7"))
    AI_MAX_TOKENS: int = int(os.getenv("AI_MAX_TOKENS", "1000"))

    @classmethod
    def is_development(cls) -> bool:
        return cls.APP_ENV.lower() == "development"

    @classmethod
    def provider_name(cls) -> str:
        return normalize_provider_name(cls.AI_PROVIDER)

    @classmethod
    def get_provider_settings(cls) -> ProviderSettings:
        """Get settings for the active provider."""
        provider = cls.provider_name()

        base = {
            "provider": provider,
            "temperature": cls.AI_TEMPERATURE,
            "max_tokens": cls.AI_MAX_TOKENS,
        }

        if provider == "openai":
            return ProviderSettings(
                **base,
                api_key=cls.OPENAI_API_KEY,
                model=cls.OPENAI_MODEL,
                base_url=cls.OPENAI_BASE_URL,
            )
        elif provider == "anthropic":
            return ProviderSettings(
                **base,
                api_key=cls.ANTHROPIC_API_KEY,
                model=cls.ANTHROPIC_MODEL,
            )
        elif provider == "google":
            return ProviderSettings(
                **base,
                api_key=cls.GOOGLE_AI_API_KEY,
                model=cls.GOOGLE_MODEL,
            )
        elif provider == "ollama":
            return ProviderSettings(
                **base,
                model=cls.OLLAMA_MODEL,
                base_url=cls.OLLAMA_BASE_URL,
            )

        raise ValueError(f"Unknown AI provider: {provider}")

    @classmethod
    def get_gateway_settings(cls) -> GatewaySettings:
        return GatewaySettings(debug_errors=cls.is_development())


# Singleton config instance
config = Config()
