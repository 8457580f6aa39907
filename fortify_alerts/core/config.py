"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, SecretStr

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")


class AppConfig(BaseModel):
    """Application-level settings shared by notification links."""

    base_url: str = "http://localhost:3000"


class EscalationConfig(BaseModel):
    """Escalation scheduler and overdue sweep configuration."""

    tick_interval_secs: float = 60.0
    overdue_sweep_interval_secs: float = 300.0
    max_concurrent_alerts: int = Field(default=8, ge=1)
    cas_retries: int = Field(default=3, ge=1)
    default_action_due_hours: int = 24


class PushConfig(BaseModel):
    """Push gateway (FCM-style HTTP API) configuration."""

    enabled: bool = False
    gateway_url: str = "https://fcm.googleapis.com/fcm/send"
    server_key: SecretStr = SecretStr("")


class SmsConfig(BaseModel):
    """SMS gateway (Twilio-style REST API) configuration."""

    enabled: bool = False
    api_url: str = "https://api.twilio.com/2010-04-01"
    account_sid: str = ""
    auth_token: SecretStr = SecretStr("")
    from_number: str = ""


class EmailConfig(BaseModel):
    """Transactional e-mail (SendGrid-style HTTP API) configuration."""

    enabled: bool = False
    api_url: str = "https://api.sendgrid.com/v3/mail/send"
    api_key: SecretStr = SecretStr("")
    from_address: str = "noreply@fortifymis.com"
    from_name: str = "FortifyMIS"


class InAppConfig(BaseModel):
    """In-app notification configuration."""

    enabled: bool = True


class ChannelsConfig(BaseModel):
    """Container for all notification channel configurations."""

    send_timeout_secs: float = Field(default=10.0, gt=0)
    push: PushConfig = PushConfig()
    sms: SmsConfig = SmsConfig()
    email: EmailConfig = EmailConfig()
    in_app: InAppConfig = InAppConfig()


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"


class Settings(BaseModel):
    """Root settings container."""

    app: AppConfig = AppConfig()
    escalation: EscalationConfig = EscalationConfig()
    channels: ChannelsConfig = ChannelsConfig()
    logging: LoggingConfig = LoggingConfig()


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _settings = Settings(**data)
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
