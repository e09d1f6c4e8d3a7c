import logging
from typing import Optional

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import DEFAULT_CURRENCY, DEFAULT_TIMEZONE, MAX_RECURRENCE_EXPANSION

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # Cancellation link signing
    cancel_token_secret: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("CANCEL_TOKEN_SECRET", "cancel_token_secret"),
        description="HMAC secret for booking/webinar cancellation links",
    )
    secret_key: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("SECRET_KEY", "secret_key"),
        description="Fallback secret when CANCEL_TOKEN_SECRET is unset",
    )

    # Tenant defaults
    default_timezone: str = Field(default=DEFAULT_TIMEZONE, description="Fallback IANA zone")
    default_currency: str = Field(default=DEFAULT_CURRENCY, description="Fallback ISO currency")
    public_base_url: str = Field(
        default="http://localhost:3000",
        description="Base URL used when rendering cancellation links",
    )

    # Slot reservation (atomic conditional write keyed by tenant/date/start)
    redis_url: str = Field(default="redis://localhost:6379/0")
    slot_reservation_ttl_seconds: int = Field(default=120, ge=1)
    slot_reservation_namespace: str = Field(default="scheduling-core")
    slot_reservation_fail_open: bool = Field(
        default=True,
        description="Proceed without a reservation when Redis errors (logged)",
    )

    # Recurrence
    max_recurrence_expansion: int = Field(
        default=MAX_RECURRENCE_EXPANSION,
        ge=1,
        description="Hard cap on occurrences produced for onDate-terminated rules",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("public_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


settings = Settings()
