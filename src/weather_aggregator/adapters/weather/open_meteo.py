from __future__ import annotations

import logging
import threading
from datetime import date
from typing import Any

from ...domain.models import Coordinate, ProviderResult
from . import http
from .base import DecodeError, NoDataError
from .reduction import TemperatureSample, reduce_daily

LOGGER = logging.getLogger(__name__)

OPEN_METEO_FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
OPEN_METEO_IDENTITY = "open-meteo"


def _coerce_optional_float(value: Any, *, field_name: str) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise DecodeError(f"Invalid numeric value for {field_name}", provider=OPEN_METEO_IDENTITY) from exc


class OpenMeteoWeatherAdapter:
    def __init__(
        self,
        *,
        timezone_name: str = "auto",
        timeout_seconds: float = http.DEFAULT_TIMEOUT_SECONDS,
        user_agent: str = http.DEFAULT_USER_AGENT,
        base_url: str = OPEN_METEO_FORECAST_URL,
        logger: logging.Logger | None = None,
    ) -> None:
        self._timezone_name = timezone_name
        self._timeout_seconds = timeout_seconds
        self._user_agent = user_agent
        self._base_url = base_url
        self._logger = logger or LOGGER

    @property
    def identity(self) -> str:
        return OPEN_METEO_IDENTITY

    def fetch_forecast(
        self,
        coordinate: Coordinate,
        days: int,
        cancel: threading.Event | None = None,
    ) -> ProviderResult:
        params = {
            "latitude": f"{coordinate.latitude:.6f}",
            "longitude": f"{coordinate.longitude:.6f}",
            "daily": "temperature_2m_max,temperature_2m_min",
            "forecast_days": str(days),
            "timezone": self._timezone_name,
        }
        url = http.build_url(self._base_url, params)

        self._logger.info("Making open-meteo API request (%s days: %d)", coordinate.describe(), days)
        payload = http.fetch_json(
            url,
            provider=self.identity,
            cancel=cancel,
            timeout=self._timeout_seconds,
            user_agent=self._user_agent,
        )
        self._logger.info("Received open-meteo API response")

        if not isinstance(payload, dict) or not isinstance(payload.get("daily"), dict):
            raise DecodeError("Open-Meteo response did not include daily data", provider=self.identity)

        samples = self._parse_daily_samples(payload["daily"])
        self._logger.info("Parsed open-meteo response: %d days", len(samples))
        if not samples:
            raise NoDataError("no forecast data available", provider=self.identity)

        forecasts = reduce_daily(samples, days=days, provider=self.identity, logger=self._logger)
        return ProviderResult(
            provider=self.identity,
            coordinate=coordinate,
            forecast_window=days,
            days=tuple(forecasts),
        )

    @staticmethod
    def _parse_daily_samples(daily_data: dict[str, Any]) -> list[TemperatureSample]:
        dates = daily_data.get("time")
        max_temps = daily_data.get("temperature_2m_max")
        min_temps = daily_data.get("temperature_2m_min")

        if not all(isinstance(v, list) for v in (dates, max_temps, min_temps)):
            raise DecodeError("Open-Meteo daily forecast payload was incomplete", provider=OPEN_METEO_IDENTITY)

        samples: list[TemperatureSample] = []
        for raw_date, raw_max, raw_min in zip(dates, max_temps, min_temps):
            try:
                forecast_date = date.fromisoformat(str(raw_date))
            except ValueError as exc:
                raise DecodeError(
                    f"Open-Meteo daily forecast date was invalid: {raw_date}",
                    provider=OPEN_METEO_IDENTITY,
                ) from exc

            max_temp = _coerce_optional_float(raw_max, field_name="daily.temperature_2m_max")
            min_temp = _coerce_optional_float(raw_min, field_name="daily.temperature_2m_min")
            # Open-Meteo reports days beyond model coverage as null
            if max_temp is None or min_temp is None:
                continue
            samples.append(TemperatureSample(day=forecast_date, temp_min=min_temp, temp_max=max_temp))
        return samples
