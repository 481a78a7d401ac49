"""Tests for the calendar TTL policy and ErrorAggregator."""

from __future__ import annotations

from datetime import datetime

import pytest

from resolvarr.application.error_aggregator import ErrorAggregator
from resolvarr.application.ttl_policy import (
    SEARCH_TTL,
    TRENDING_TTL,
    episodes_ttl,
    is_weekend,
)
from resolvarr.domain.entities import ProviderErrorRecord


class TestEpisodesTtl:
    @pytest.mark.parametrize("day", [4, 5])  # Sat 2025-01-04, Sun 2025-01-05
    def test_weekend_two_hours(self, day: int) -> None:
        assert episodes_ttl(datetime(2025, 1, day, 23, 59)) == 7200

    @pytest.mark.parametrize("day", [6, 7, 8, 9, 10])  # Mon..Fri
    def test_weekday_thirty_minutes(self, day: int) -> None:
        assert episodes_ttl(datetime(2025, 1, day, 0, 0)) == 1800

    def test_weekdays_expire_sooner_than_weekends(self) -> None:
        friday = episodes_ttl(datetime(2025, 1, 3, 18, 0))
        saturday = episodes_ttl(datetime(2025, 1, 4, 18, 0))
        assert friday < saturday

    def test_is_weekend(self) -> None:
        assert is_weekend(datetime(2025, 1, 4)) is True
        assert is_weekend(datetime(2025, 1, 3)) is False

    def test_hourly_lookups(self) -> None:
        assert TRENDING_TTL == 3600
        assert SEARCH_TTL == 3600


class TestErrorAggregator:
    def test_empty(self) -> None:
        agg = ErrorAggregator()
        assert len(agg) == 0
        assert not agg
        assert agg.records == ()

    def test_keeps_order_and_duplicates(self) -> None:
        agg = ErrorAggregator()
        agg.add("zoro", "timeout")
        agg.add("gogoanime", "No playable sources")
        agg.add("zoro", "timeout")

        assert agg
        assert len(agg) == 3
        assert agg.providers == ("zoro", "gogoanime", "zoro")
        assert agg.records[1] == ProviderErrorRecord("gogoanime", "No playable sources")
