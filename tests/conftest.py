from __future__ import annotations

from typing import Callable, Iterable, List

import pytest

from spread_tracker.config.models import SpreadSettings, TrackerSettings
from spread_tracker.market.aggregator import MarketAggregator
from spread_tracker.venues.base import VenueAdapter
from tests.fakes import FakeTransport


@pytest.fixture
def tracker_settings() -> TrackerSettings:
    # Long interval: tests drive cycles explicitly unless they shorten it.
    return TrackerSettings(
        update_interval_ms=60_000,
        venue_timeout_sec=2.0,
        spread=SpreadSettings(min_change=1.0, min_value=1.0),
        check_aggregator_venue=False,
    )


@pytest.fixture
def fast_settings() -> TrackerSettings:
    return TrackerSettings(
        update_interval_ms=20,
        venue_timeout_sec=2.0,
        spread=SpreadSettings(min_change=1.0, min_value=1.0),
        check_aggregator_venue=False,
    )


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def aggregator_factory() -> Iterable[Callable[..., MarketAggregator]]:
    created: List[MarketAggregator] = []

    def _factory(*venues: VenueAdapter, call_timeout_sec: float = 2.0) -> MarketAggregator:
        aggregator = MarketAggregator({venue.venue_id: venue for venue in venues}, call_timeout_sec=call_timeout_sec)
        created.append(aggregator)
        return aggregator

    yield _factory
    for aggregator in created:
        aggregator.close()
