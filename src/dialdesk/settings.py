"""Application-wide configuration powered by pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from environment or .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    environment: Literal["development", "staging", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )
    provider_timeout_seconds: float = Field(default=12.0, alias="PROVIDER_TIMEOUT_SECONDS")
    # Prepended to bare 10-digit phone numbers.
    default_country_code: str = Field(default="+91", alias="DEFAULT_COUNTRY_CODE")

    # AI engine credentials (per-provider config takes precedence)
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4.1-mini", alias="OPENAI_MODEL")

    dialogflow_service_account_json: str | None = Field(
        default=None, alias="DIALOGFLOW_SERVICE_ACCOUNT_JSON"
    )
    dialogflow_service_account_base64: str | None = Field(
        default=None, alias="DIALOGFLOW_SERVICE_ACCOUNT_BASE64"
    )
    dialogflow_client_email: str | None = Field(default=None, alias="DIALOGFLOW_CLIENT_EMAIL")
    dialogflow_private_key: str | None = Field(default=None, alias="DIALOGFLOW_PRIVATE_KEY")
    dialogflow_project_id: str | None = Field(default=None, alias="DIALOGFLOW_PROJECT_ID")
    dialogflow_language_code: str = Field(default="en", alias="DIALOGFLOW_LANGUAGE_CODE")

    # Telephony credentials
    twilio_account_sid: str | None = Field(default=None, alias="TWILIO_ACCOUNT_SID")
    twilio_auth_token: str | None = Field(default=None, alias="TWILIO_AUTH_TOKEN")
    twilio_from_number: str | None = Field(default=None, alias="TWILIO_FROM_NUMBER")

    plivo_auth_id: str | None = Field(default=None, alias="PLIVO_AUTH_ID")
    plivo_auth_token: str | None = Field(default=None, alias="PLIVO_AUTH_TOKEN")
    plivo_from_number: str | None = Field(default=None, alias="PLIVO_FROM_NUMBER")

    vonage_application_id: str | None = Field(default=None, alias="VONAGE_APPLICATION_ID")
    vonage_private_key: str | None = Field(default=None, alias="VONAGE_PRIVATE_KEY")
    vonage_from_number: str | None = Field(default=None, alias="VONAGE_FROM_NUMBER")


@lru_cache(1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
