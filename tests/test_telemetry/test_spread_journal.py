from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from spread_tracker.core.enums import MarketKind, VenueId
from spread_tracker.market.models import SpreadData
from spread_tracker.market.price_analyzer import PriceAnalyzer
from spread_tracker.telemetry.events import TelemetryEvent, pair_spread_event, spread_notified_event
from spread_tracker.telemetry.logging_setup import JsonFormatter, configure_logging
from spread_tracker.telemetry.storage import TelemetryStorage, default_storage
from tests.fakes import make_quote


def test_telemetry_storage_should_append_daily_jsonl(tmp_path) -> None:
    storage = TelemetryStorage(journal_dir=tmp_path / "journal")
    event = TelemetryEvent(
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
        event_type="spread_notified",
        payload={"spread_percent": 1.5},
        context={"chat_id": 1},
    )

    first = storage.append_event(event)
    second = storage.append_event(event)

    assert first == second
    assert first.name == "spreads_20240101.jsonl"
    lines = first.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert json.loads(lines[0])["timestamp"] == "2024-01-01T00:00:00+00:00"


def test_default_storage_should_live_under_journal_dir(tmp_path) -> None:
    storage = default_storage(tmp_path)

    assert storage.journal_dir == tmp_path / "journal"
    assert storage.journal_dir.is_dir()


def test_spread_notified_event_should_describe_route() -> None:
    view = PriceAnalyzer.analyze(
        [
            make_quote(VenueId.MEXC, 100.0, 101.0),
            make_quote(VenueId.GATE, 102.0, 102.5, kind=MarketKind.FUTURES),
        ]
    )

    event = spread_notified_event(3, "BTC/USDT_spot_spot_ultra", view).to_dict()

    assert event["payload"]["buy_venue"] == "mexc"
    assert event["payload"]["sell_kind"] == "futures"
    assert event["payload"]["quotes"] == 2
    assert event["context"] == {"chat_id": 3, "tracking_key": "BTC/USDT_spot_spot_ultra"}


def test_pair_spread_event_should_carry_prices() -> None:
    spread = SpreadData("ETH/USDT", VenueId.GATE, VenueId.BITGET, MarketKind.SPOT, MarketKind.SPOT, 10.0, 10.5, 5.0)

    payload = pair_spread_event(1, "ETH/USDT_spot_spot", spread).to_dict()["payload"]

    assert payload == {
        "symbol": "ETH/USDT",
        "spread_percent": 5.0,
        "buy_venue": "gate",
        "buy_price": 10.0,
        "sell_venue": "bitget",
        "sell_price": 10.5,
    }


def test_json_formatter_should_include_extra_fields() -> None:
    record = logging.LogRecord("spread_tracker.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    record.chat_id = 42
    record.unserializable = object()

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "hello world"
    assert payload["level"] == "INFO"
    assert payload["chat_id"] == 42
    assert "unserializable" not in payload
    assert "args" not in payload


def test_configure_logging_should_write_json_lines(tmp_path) -> None:
    logger = configure_logging(log_dir=tmp_path, level="info", logger_name="spread_tracker_test_logging")
    try:
        logger.info("tracker started", extra={"tracking_key": "BTC/USDT_spot_spot"})
        for handler in logger.handlers:
            handler.flush()

        lines = (tmp_path / "tracker_current.jsonl").read_text(encoding="utf-8").splitlines()
        payload = json.loads(lines[-1])
        assert payload["message"] == "tracker started"
        assert payload["tracking_key"] == "BTC/USDT_spot_spot"
        assert logger.propagate is False
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
