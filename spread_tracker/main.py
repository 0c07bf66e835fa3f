from __future__ import annotations

from pathlib import Path

from spread_tracker.config.loader import load_app_config, resolve_secrets_path
from spread_tracker.core.errors import ConfigurationError
from spread_tracker.interfaces.telegram_bot import TelegramBotInterface
from spread_tracker.market.aggregator import MarketAggregator
from spread_tracker.telemetry import configure_logging
from spread_tracker.telemetry.storage import default_storage
from spread_tracker.venues.registry import build_venues


def main() -> None:
    project_root = Path(__file__).resolve().parents[1]
    config_dir = project_root / "config"
    secrets_path = resolve_secrets_path(config_dir)
    try:
        config = load_app_config(settings_path=config_dir / "settings.yml", secrets_path=secrets_path)
    except (FileNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"Invalid configuration in {config_dir}: {exc}") from exc
    settings = config.tracker

    telemetry_root = (project_root / settings.telemetry.log_dir).resolve()
    logger = configure_logging(log_dir=telemetry_root, level=settings.telemetry.log_level)
    journal = default_storage(telemetry_root) if settings.telemetry.spread_journal else None
    logger.info(
        "Bootstrapping spread tracker",
        extra={
            "venues": [venue.value for venue in settings.active_venues()],
            "update_interval_ms": settings.update_interval_ms,
            "venue_timeout_sec": settings.venue_timeout_sec,
        },
    )

    aggregator = MarketAggregator(
        build_venues(settings, config.credentials.venues),
        call_timeout_sec=settings.venue_timeout_sec,
    )
    telegram_bot = TelegramBotInterface(
        token=config.credentials.telegram.bot_token,
        aggregator=aggregator,
        settings=settings,
        journal=journal,
        admin_chat_id=config.credentials.telegram.admin_chat_id,
        logger=logger.getChild("telegram"),
    )
    try:
        telegram_bot.run()
    except KeyboardInterrupt:  # pragma: no cover - manual exit
        logger.info("Interrupted by user")
    finally:
        telegram_bot.manager.shutdown()
        aggregator.close()
        logger.info("Shutdown complete")


if __name__ == "__main__":
    main()
