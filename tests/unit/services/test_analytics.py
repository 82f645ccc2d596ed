"""Unit tests for the statistics series and percentile helpers."""

from datetime import datetime, timedelta

import pytest

from support_service.services.analytics import (
    daily_series,
    hourly_series,
    hours_between,
    mean,
    percentile,
    stats_window,
)


class TestPercentile:
    def test_empty_sequence(self):
        assert percentile([], 50) == 0.0

    def test_low_rank_takes_first_value(self):
        assert percentile([5.0, 7.0, 9.0], 10) == 5.0

    def test_high_rank_takes_last_value(self):
        assert percentile([5.0, 7.0, 9.0], 100) == 9.0

    def test_interpolates_between_neighbours(self):
        values = [1.0, 2.0, 3.0, 4.0]

        assert percentile(values, 50) == 2.0
        assert percentile(values, 90) == pytest.approx(3.6)


def test_stats_window_covers_whole_days_up_to_tomorrow():
    start, end = stats_window(datetime(2025, 3, 10, 15, 30), days=7)

    assert start == datetime(2025, 3, 4)
    assert end == datetime(2025, 3, 11)


def test_mean_and_hours_between():
    assert mean([]) == 0.0
    assert mean([1.0, 2.0]) == 1.5
    assert hours_between(datetime(2025, 1, 1), datetime(2025, 1, 1, 6)) == 6.0
    assert hours_between(None, datetime(2025, 1, 1)) is None


def test_daily_series_fills_empty_days():
    start, end = datetime(2025, 3, 8), datetime(2025, 3, 11)
    created = [datetime(2025, 3, 8, 9), datetime(2025, 3, 10, 1), datetime(2025, 3, 10, 23)]

    points = daily_series(created, start, end, created=lambda c: c)

    assert [(p.label, p.value) for p in points] == [("Mar 08", 1), ("Mar 09", 0), ("Mar 10", 2)]
    assert points[1].day == (start + timedelta(days=1)).date()


def test_daily_series_custom_value():
    start, end = datetime(2025, 3, 8), datetime(2025, 3, 10)
    scored = [(datetime(2025, 3, 8, 9), 0.5), (datetime(2025, 3, 8, 10), -0.1)]

    points = daily_series(scored, start, end, created=lambda s: s[0], value=lambda day: mean([s[1] for s in day]))

    assert points[0].value == pytest.approx(0.2)
    assert points[1].value == 0.0


def test_hourly_series_has_every_hour():
    points = hourly_series([datetime(2025, 3, 8, 14, 5), datetime(2025, 3, 9, 14, 55)], created=lambda c: c)

    assert len(points) == 24
    assert points[0].label == "00:00"
    assert points[14].label == "14:00"
    assert points[14].value == 2
