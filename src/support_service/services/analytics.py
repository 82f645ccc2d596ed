"""Series and percentile helpers for the performance statistics."""

from datetime import date, datetime, timedelta
from typing import Callable, Iterable, Sequence, TypeVar

from support_service.api.schemas.analytics import ChartPoint

T = TypeVar("T")


def stats_window(now: datetime, days: int) -> tuple[datetime, datetime]:
    """``days`` whole days ending with today: from midnight ``days - 1`` days ago up to tomorrow's midnight."""
    end = datetime.combine(now.date() + timedelta(days=1), datetime.min.time())
    return end - timedelta(days=days), end


def mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def hours_between(start: datetime | None, end: datetime | None) -> float | None:
    if start is None or end is None:
        return None
    return (end - start).total_seconds() / 3600


def percentile(sorted_values: Sequence[float], p: int) -> float:
    """
    Percentile of an ascending sequence.

    The rank ``p * n / 100 - 1`` is clamped to the first and last values and
    interpolated linearly in between. An empty sequence yields 0.
    """
    if not sorted_values:
        return 0.0
    index = p * len(sorted_values) / 100 - 1
    if index < 0:
        return sorted_values[0]
    if index >= len(sorted_values) - 1:
        return sorted_values[-1]
    lower = int(index)
    fraction = index - lower
    return sorted_values[lower] + (sorted_values[lower + 1] - sorted_values[lower]) * fraction


def _days(start: datetime, end: datetime) -> Iterable[date]:
    day = start.date()
    while day < end.date():
        yield day
        day += timedelta(days=1)


def daily_series(
    items: Iterable[T],
    start: datetime,
    end: datetime,
    created: Callable[[T], datetime],
    value: Callable[[list[T]], float] = len,
) -> list[ChartPoint]:
    """One point per day in ``[start, end)`` labelled ``"Oct 19"``; days without items get ``value([])``."""
    by_day: dict[date, list[T]] = {}
    for item in items:
        by_day.setdefault(created(item).date(), []).append(item)
    return [
        ChartPoint(label=day.strftime("%b %d"), value=value(by_day.get(day, [])), day=day)
        for day in _days(start, end)
    ]


def hourly_series(items: Iterable[T], created: Callable[[T], datetime]) -> list[ChartPoint]:
    counts = [0] * 24
    for item in items:
        counts[created(item).hour] += 1
    return [ChartPoint(label=f"{hour:02d}:00", value=count) for hour, count in enumerate(counts)]
