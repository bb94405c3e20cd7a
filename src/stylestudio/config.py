from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Loads keys from process env, and also from a local .env file for convenience.
    model_config = SettingsConfigDict(env_prefix="", extra="ignore", env_file=".env", env_file_encoding="utf-8")

    # Keys
    openai_api_key: str | None = None
    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("gemini_api_key", "GEMINI_API_KEY", "NANO_BANANA_API_KEY"),
    )
    # Presence of this token switches on blob persistence.
    blob_read_write_token: str | None = None

    # Providers
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_fast_model: str = "imagen-4.0-fast-generate-001"
    gemini_pro_model: str = "imagen-4.0-generate-001"
    openai_image_model: str = "dall-e-3"
    provider_timeout_seconds: float = 120.0

    # Storage
    blob_api_url: str = "https://blob.vercel-storage.com"
    project_storage: Literal["auto", "memory", "blob"] = "auto"
    max_upload_bytes: int = 10 * 1024 * 1024

    styles_path: str | None = None

    # Server
    server_host: str = "0.0.0.0"
    server_port: int = 8000
    log_level: str = "INFO"

    @property
    def persistence_enabled(self) -> bool:
        return bool(self.blob_read_write_token)

    def resolved_project_storage(self) -> Literal["memory", "blob"]:
        if self.project_storage == "auto":
            return "blob" if self.persistence_enabled else "memory"
        return self.project_storage


settings = Settings()
