from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache
from typing import Annotated, List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Process-wide configuration read from the environment and .env files."""

    api_prefix: str = "/api"
    app_name: str = "D-List Bouncer"
    log_level: str = "INFO"
    app_env: str = "production"
    cors_origins: Annotated[List[str], NoDecode] = Field(default_factory=lambda: ["*"])

    # Guest list
    guest_list_path: str = "data/guest-list.local.json"
    guest_list_url: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("guest_list_url", "blob_url")
    )
    guest_list_timeout_s: float = 10.0

    # Event window; naive timestamps are read as UTC
    event_cutoff_date: Optional[datetime] = None

    # LLM (OpenRouter / OpenAI compatible)
    llm_api_key: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("llm_api_key", "openrouter_api_key")
    )
    llm_base_url: str = "https://openrouter.ai/api/v1"
    llm_classifier_model: str = "openai/gpt-4o-mini"
    llm_roast_model: Optional[str] = None
    llm_fallback_model: Optional[str] = None
    llm_classifier_timeout_ms: int = 15000
    tone_deadline_ms: int = 4000

    # Host contact
    host_email: Optional[str] = None
    host_phone: Optional[str] = None

    # Twilio
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_phone_number: Optional[str] = None
    twilio_messaging_service_sid: Optional[str] = None

    # Resend
    resend_api_key: Optional[str] = None
    email_from: str = "D-List Bouncer <bouncer@example.com>"
    email_reply_to: Optional[str] = None

    notification_timeout_ms: int = 8000

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, value):
        if isinstance(value, str):
            items = [item.strip() for item in value.split(",") if item.strip()]
            return items or ["*"]
        if value is None:
            return ["*"]
        return value

    @field_validator("event_cutoff_date", mode="after")
    @classmethod
    def assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def is_development(self) -> bool:
        return self.app_env.lower() == "development"

    @property
    def roast_model(self) -> str:
        return self.llm_roast_model or self.llm_classifier_model


@lru_cache
def get_settings() -> Settings:
    return Settings()
