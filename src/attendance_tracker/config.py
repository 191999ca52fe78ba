"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str | None = "high"
    openai_store: bool = False
    credential_env_prefix: str = "OPENAI_API_KEY"
    store_backend: str = "file"
    data_path: str = "data/classes.json"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    supabase_document: str = "default"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="allow",
    )

    def dotenv_extras(self) -> dict[str, str]:
        """Return unrecognised entries from the env files, keyed in upper case.

        Only the env files contribute extras; unknown process environment
        variables are not collected by pydantic-settings.
        """
        return {
            key.upper(): value
            for key, value in (self.model_extra or {}).items()
            if isinstance(value, str)
        }


def parse_store_backend(raw: str | None) -> str:
    """Normalize the configured store backend name."""
    if raw is None:
        return "file"
    cleaned = raw.strip().lower()
    if cleaned in {"", "file", "json"}:
        return "file"
    if cleaned == "supabase":
        return "supabase"
    raise ValueError(f"Unknown store backend: {raw!r}")
