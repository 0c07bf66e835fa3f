"""Configuration loading and validation package."""

from .loader import (
    load_app_config,
    load_secrets_config,
    load_tracker_settings,
    resolve_secrets_path,
)
from .models import (
    ApiCredentialsConfig,
    AppConfig,
    SpreadSettings,
    TelegramCredentials,
    TelemetryConfig,
    TrackerSettings,
    VenueCredentials,
    VenueCredentialsConfig,
)

__all__ = [
    "ApiCredentialsConfig",
    "AppConfig",
    "SpreadSettings",
    "TelegramCredentials",
    "TelemetryConfig",
    "TrackerSettings",
    "VenueCredentials",
    "VenueCredentialsConfig",
    "load_app_config",
    "load_secrets_config",
    "load_tracker_settings",
    "resolve_secrets_path",
]
