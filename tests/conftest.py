from __future__ import annotations

import threading
import time
from datetime import date, timedelta

import pytest

from weather_aggregator.adapters.weather import TransportError, WeatherAdapterError
from weather_aggregator.domain.models import Coordinate, DailyForecast, ProviderResult
from weather_aggregator.settings import load_settings


class FakeAdapter:
    """In-memory provider with an optional delay and failure."""

    def __init__(
        self,
        identity: str,
        *,
        days: int = 3,
        delay: float = 0.0,
        error: Exception | None = None,
        start: date = date(2025, 7, 25),
    ) -> None:
        self._identity = identity
        self._days = days
        self._delay = delay
        self._error = error
        self._start = start
        self.calls = 0

    @property
    def identity(self) -> str:
        return self._identity

    def fetch_forecast(
        self,
        coordinate: Coordinate,
        days: int,
        cancel: threading.Event | None = None,
    ) -> ProviderResult:
        self.calls += 1
        if cancel is not None and cancel.is_set():
            raise TransportError("request cancelled before sending", provider=self._identity, cancelled=True)
        if self._delay:
            if cancel is not None:
                if cancel.wait(self._delay):
                    raise TransportError("request cancelled", provider=self._identity, cancelled=True)
            else:
                time.sleep(self._delay)
        if self._error is not None:
            raise self._error

        forecasts = tuple(
            DailyForecast(
                date=self._start + timedelta(days=offset),
                temp_max=25.0 + offset,
                temp_min=15.0 + offset,
            )
            for offset in range(min(self._days, days))
        )
        return ProviderResult(
            provider=self._identity,
            coordinate=coordinate,
            forecast_window=days,
            days=forecasts,
        )


def failing(identity: str, message: str = "boom", **kwargs) -> FakeAdapter:
    return FakeAdapter(identity, error=WeatherAdapterError(message, provider=identity), **kwargs)


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    load_settings.cache_clear()
    yield
    load_settings.cache_clear()


@pytest.fixture
def coordinate() -> Coordinate:
    return Coordinate(latitude=40.7128, longitude=-74.006)


@pytest.fixture
def open_meteo_payload() -> dict:
    return {
        "latitude": 40.71,
        "longitude": -74.0,
        "daily_units": {"time": "iso8601", "temperature_2m_max": "°C", "temperature_2m_min": "°C"},
        "daily": {
            "time": ["2025-07-25", "2025-07-26", "2025-07-27", "2025-07-28", "2025-07-29"],
            "temperature_2m_max": [31.2, 29.8, 27.4, 28.1, 30.0],
            "temperature_2m_min": [22.1, 21.4, 20.9, 19.7, 21.0],
        },
    }


@pytest.fixture
def openweathermap_payload() -> dict:
    return {
        "cod": "200",
        "cnt": 6,
        "list": [
            {"dt": 1753455600, "dt_txt": "2025-07-25 15:00:00", "main": {"temp_min": 21.7, "temp_max": 22.52}},
            {"dt": 1753466400, "dt_txt": "2025-07-25 18:00:00", "main": {"temp_min": 21.77, "temp_max": 21.91}},
            {"dt": 1753477200, "dt_txt": "2025-07-25 21:00:00", "main": {"temp_min": 19.88, "temp_max": 20.49}},
            {"dt": 1753488000, "dt_txt": "2025-07-26 00:00:00", "main": {"temp_min": 18.2, "temp_max": 18.9}},
            {"dt": 1753498800, "dt_txt": "2025-07-26 03:00:00", "main": {"temp_min": 17.5, "temp_max": 17.8}},
            {"dt": 1753509600, "dt_txt": "2025-07-26 06:00:00", "main": {"temp_min": 18.0, "temp_max": 23.4}},
        ],
        "city": {"name": "New York", "timezone": -14400},
    }
