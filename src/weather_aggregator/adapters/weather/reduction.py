from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable

from ...domain.models import DailyForecast
from .base import NoDataError

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class TemperatureSample:
    """One provider reading, daily or sub-daily, attributed to a calendar date."""

    day: date
    temp_min: float
    temp_max: float


@dataclass(slots=True)
class _DayRange:
    temp_min: float
    temp_max: float

    def absorb(self, sample: TemperatureSample) -> None:
        self.temp_min = min(self.temp_min, sample.temp_min)
        self.temp_max = max(self.temp_max, sample.temp_max)


def reduce_daily(
    samples: Iterable[TemperatureSample],
    *,
    days: int,
    provider: str,
    logger: logging.Logger | None = None,
) -> list[DailyForecast]:
    """Collapse samples into one forecast per calendar date.

    Each date keeps the lowest ``temp_min`` and the highest ``temp_max`` seen
    across its samples. Dates whose reduced maximum is below the minimum are
    dropped with a warning. The result is ordered by date and limited to the
    first ``days`` entries; an empty result raises ``NoDataError``.
    """
    log = logger or LOGGER
    ranges: dict[date, _DayRange] = {}
    for sample in samples:
        current = ranges.get(sample.day)
        if current is None:
            ranges[sample.day] = _DayRange(temp_min=sample.temp_min, temp_max=sample.temp_max)
        else:
            current.absorb(sample)

    forecasts: list[DailyForecast] = []
    for day in sorted(ranges):
        reduced = ranges[day]
        if reduced.temp_max < reduced.temp_min:
            log.warning(
                "Dropping malformed %s forecast for %s: temp_max %.2f < temp_min %.2f",
                provider,
                day.isoformat(),
                reduced.temp_max,
                reduced.temp_min,
            )
            continue
        forecasts.append(DailyForecast(date=day, temp_max=reduced.temp_max, temp_min=reduced.temp_min))

    if not forecasts:
        raise NoDataError("no forecast data available", provider=provider)
    return forecasts[:days]
