from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any

from ...domain.models import Coordinate, ProviderResult
from . import http
from .base import DecodeError, NoDataError, RequestConstructionError
from .reduction import TemperatureSample, reduce_daily

LOGGER = logging.getLogger(__name__)

OPENWEATHERMAP_FORECAST_URL = "https://api.openweathermap.org/data/2.5/forecast"
OPENWEATHERMAP_IDENTITY = "weatherapi"


def _coerce_float(value: Any, *, field_name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise DecodeError(f"Invalid numeric value for {field_name}", provider=OPENWEATHERMAP_IDENTITY) from exc


def _parse_timestamp(raw: Any) -> datetime:
    # dt_txt looks like "2025-07-25 18:00:00" (UTC)
    try:
        return datetime.fromisoformat(str(raw))
    except ValueError as exc:
        raise DecodeError(
            f"failed to parse date from dt_txt {raw}",
            provider=OPENWEATHERMAP_IDENTITY,
        ) from exc


class OpenWeatherMapAdapter:
    """Five day forecast in three hour buckets, reduced to daily highs and lows."""

    def __init__(
        self,
        api_key: str,
        *,
        timeout_seconds: float = http.DEFAULT_TIMEOUT_SECONDS,
        user_agent: str = http.DEFAULT_USER_AGENT,
        base_url: str = OPENWEATHERMAP_FORECAST_URL,
        logger: logging.Logger | None = None,
    ) -> None:
        self._api_key = api_key or ""
        self._timeout_seconds = timeout_seconds
        self._user_agent = user_agent
        self._base_url = base_url
        self._logger = logger or LOGGER

    @property
    def identity(self) -> str:
        return OPENWEATHERMAP_IDENTITY

    def fetch_forecast(
        self,
        coordinate: Coordinate,
        days: int,
        cancel: threading.Event | None = None,
    ) -> ProviderResult:
        api_key = self._api_key.strip()
        if not api_key:
            raise RequestConstructionError("API key cannot be empty", provider=self.identity)

        params = {
            "lat": f"{coordinate.latitude:.6f}",
            "lon": f"{coordinate.longitude:.6f}",
            "units": "metric",
            "appid": api_key,
        }
        url = http.build_url(self._base_url, params)

        self._logger.info("Making weatherapi API request (%s days: %d)", coordinate.describe(), days)
        payload = http.fetch_json(
            url,
            provider=self.identity,
            cancel=cancel,
            timeout=self._timeout_seconds,
            user_agent=self._user_agent,
        )
        self._logger.info("Received weatherapi API response")

        if not isinstance(payload, dict) or not isinstance(payload.get("list"), list):
            raise DecodeError("OpenWeatherMap response did not include a forecast list", provider=self.identity)

        items = payload["list"]
        self._logger.info("Parsed weatherapi response: %d items", len(items))
        if not items:
            raise NoDataError("no forecast data available", provider=self.identity)

        samples = [self._parse_sample(item) for item in items]
        forecasts = reduce_daily(samples, days=days, provider=self.identity, logger=self._logger)
        return ProviderResult(
            provider=self.identity,
            coordinate=coordinate,
            forecast_window=days,
            days=tuple(forecasts),
        )

    @staticmethod
    def _parse_sample(item: Any) -> TemperatureSample:
        if not isinstance(item, dict) or not isinstance(item.get("main"), dict):
            raise DecodeError("OpenWeatherMap forecast item was incomplete", provider=OPENWEATHERMAP_IDENTITY)

        timestamp = _parse_timestamp(item.get("dt_txt"))
        main = item["main"]
        return TemperatureSample(
            day=timestamp.date(),
            temp_min=_coerce_float(main.get("temp_min"), field_name="list[].main.temp_min"),
            temp_max=_coerce_float(main.get("temp_max"), field_name="list[].main.temp_max"),
        )
