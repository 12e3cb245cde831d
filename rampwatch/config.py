import os

from pathlib import Path
from typing import Any, Dict

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        env_prefix="RAMPWATCH_",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Pick up the legacy front-end variable for the API location."""

        super().model_post_init(__context)

        if "api_base_url" not in self.model_fields_set:
            fallback = os.getenv("VITE_API_URL")
            if fallback:
                object.__setattr__(self, "api_base_url", fallback)

    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="auto", description="auto (console at DEBUG), json or console")

    # Ramp API
    api_base_url: str = Field(
        default="https://aboki-api.onrender.com/api",
        description="Base URL of the ramp backend",
    )
    request_timeout_seconds: float = Field(default=20.0, description="HTTP request timeout")

    # Local persistence
    storage_path: Path = Field(
        default_factory=lambda: Path.home() / ".rampwatch" / "storage.json",
        description="JSON file backing the local key-value store",
    )

    # Polling
    poll_interval_seconds: float = Field(default=10.0, gt=0, description="Seconds between status checks")
    max_poll_duration_seconds: float = Field(
        default=35 * 60,
        gt=0,
        description="Stop polling after this long even if no terminal status arrived",
    )
    reauth_on_unauthorized: bool = Field(
        default=True,
        description="Exchange the wallet address for a fresh token once when a status call returns 401/403",
    )

    # Completion flow
    share_prompt_delay_seconds: float = Field(default=2.0, ge=0, description="Delay before the receipt prompt opens")
    redirect_initial_seconds: int = Field(default=15, ge=0, description="Countdown value shown before sharing resolves")
    redirect_base_seconds: int = Field(default=10, ge=0, description="Countdown value after the share prompt closes")
    countdown_tick_seconds: float = Field(default=1.0, gt=0, description="Length of one countdown step")
    redirect_destination: str = Field(default="/activity", description="Where the countdown navigates")
    dashboard_destination: str = Field(default="/", description="Where the not-found state navigates")

    # Normalization defaults
    default_source_currency: str = Field(default="NGN", description="Fiat code used when the response omits one")
    default_target_currency: str = Field(default="USDC", description="Asset code used when the response omits one")
    explorer_base_url: str = Field(default="https://basescan.org", description="Block explorer for tx links")

    support_contacts: Dict[str, str] = Field(
        default_factory=lambda: {
            "telegram": "@AbokiSupport",
            "whatsapp": "+2348012345678",
        },
        description="Support channels surfaced next to failures",
    )

    @property
    def telegram_url(self) -> str:
        handle = self.support_contacts.get("telegram", "")
        return f"https://t.me/{handle.lstrip('@')}" if handle else ""

    @property
    def whatsapp_url(self) -> str:
        number = self.support_contacts.get("whatsapp", "")
        return f"https://wa.me/{number.lstrip('+')}" if number else ""


# Global settings instance
settings = Settings()
