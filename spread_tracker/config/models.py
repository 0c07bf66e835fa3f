"""Typed configuration models for the spread tracker.

The config subsystem relies on pydantic to validate YAML files and to
provide strongly-typed objects to the rest of the runtime. ``settings.yml``
holds the tracker behaviour (polling interval, spread thresholds, enabled
venues); ``secrets.yaml`` holds the Telegram token and venue API keys.
"""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator

from spread_tracker.core.enums import CEX_VENUES, VenueId


class SpreadSettings(BaseModel):
    """Process-wide notification thresholds, in percent.

    ``min_change`` is the minimum move of the spread since the last sent
    notification; ``min_value`` is the floor below which ultra-mode updates
    are never sent regardless of the per-task threshold.
    """

    min_change: float = Field(1.0, ge=0)
    min_value: float = Field(1.0)


class TelemetryConfig(BaseModel):
    """Logging/journal switches."""

    log_level: str = Field("INFO")
    log_dir: str = Field("data/logs")
    spread_journal: bool = True


class TrackerSettings(BaseModel):
    """Top-level tracker behaviour loaded from ``settings.yml``."""

    update_interval_ms: PositiveInt = 10_000
    venue_timeout_sec: float = Field(5.0, gt=0)
    spread: SpreadSettings = Field(default_factory=SpreadSettings)
    enabled_venues: List[VenueId] = Field(default_factory=lambda: list(CEX_VENUES))
    check_aggregator_venue: bool = True
    notifications_enabled: bool = True
    default_min_spread_percent: float = Field(1.0, gt=0)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

    @field_validator("enabled_venues")
    @classmethod
    def _drop_aggregator(cls, venues: List[VenueId]) -> List[VenueId]:
        """DexScreener is toggled by ``check_aggregator_venue`` only."""

        unique: List[VenueId] = []
        for venue in venues:
            if venue.profile.is_aggregator or venue in unique:
                continue
            unique.append(venue)
        return unique

    @property
    def update_interval_sec(self) -> float:
        return self.update_interval_ms / 1000.0

    def active_venues(self) -> List[VenueId]:
        """Return enabled venues in query order (CEX first, aggregator last)."""

        venues = list(self.enabled_venues)
        if self.check_aggregator_venue:
            venues.append(VenueId.DEXSCREENER)
        return venues


class VenueCredentials(BaseModel):
    """API key material for one venue. Public market data works without it."""

    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    password: Optional[str] = None


class VenueCredentialsConfig(BaseModel):
    """Per-venue credentials (all optional)."""

    mexc: VenueCredentials = Field(default_factory=VenueCredentials)
    kucoin: VenueCredentials = Field(default_factory=VenueCredentials)
    gate: VenueCredentials = Field(default_factory=VenueCredentials)
    bitget: VenueCredentials = Field(default_factory=VenueCredentials)

    def for_venue(self, venue: VenueId) -> VenueCredentials:
        return getattr(self, venue.value, None) or VenueCredentials()


class TelegramCredentials(BaseModel):
    """Telegram bot token and optional admin chat for service messages."""

    bot_token: str = Field(..., min_length=10)
    admin_chat_id: Optional[int] = None


class ApiCredentialsConfig(BaseModel):
    """Secrets used by Telegram and venue integrations.

    Mirrors credentials.example.yml / secrets.yaml.
    """

    telegram: TelegramCredentials
    venues: VenueCredentialsConfig = Field(default_factory=VenueCredentialsConfig)

    model_config = ConfigDict(frozen=True)


class AppConfig(BaseModel):
    """Runtime config composed of tracker settings and secrets."""

    tracker: TrackerSettings
    credentials: ApiCredentialsConfig
