from __future__ import annotations

import logging
import math
import threading
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Mapping

from fastapi import FastAPI, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .adapters.weather import build_weather_adapters
from .domain.models import DailyForecast
from .logging_config import configure_logging
from .services.aggregator import ForecastAggregator, NoProvidersSucceededError
from .settings import AppSettings, load_settings

LOGGER = logging.getLogger(__name__)

MIN_LATITUDE = -90
MAX_LATITUDE = 90
MIN_LONGITUDE = -180
MAX_LONGITUDE = 180


class ParameterError(ValueError):
    """Raised when /weather query parameters are missing or out of range."""


class ErrorResponse(BaseModel):
    error: str = Field(examples=["missing required parameter: lat"])


class WeatherResponse(BaseModel):
    latitude: float = Field(examples=[40.7128])
    longitude: float = Field(examples=[-74.006])
    forecast_window: int = Field(examples=[5])
    forecasts: dict[str, list[DailyForecast]] = Field(
        description="Daily forecasts keyed by provider; a failed provider is empty or absent",
    )


def _parse_float(raw: str, *, label: str) -> float:
    try:
        value = float(raw)
    except ValueError as exc:
        raise ParameterError(f"invalid {label} format: {raw}") from exc
    if not math.isfinite(value):
        raise ParameterError(f"invalid {label} format: {raw}")
    return value


def validate_parameters(
    query: Mapping[str, str],
    *,
    default_days: int,
    max_days: int,
) -> tuple[float, float, int]:
    lat_raw = (query.get("lat") or "").strip()
    lon_raw = (query.get("lon") or "").strip()

    if not lat_raw:
        raise ParameterError("missing required parameter: lat")
    if not lon_raw:
        raise ParameterError("missing required parameter: lon")

    lat = _parse_float(lat_raw, label="latitude")
    lon = _parse_float(lon_raw, label="longitude")

    if lat < MIN_LATITUDE or lat > MAX_LATITUDE:
        raise ParameterError(f"latitude must be between {MIN_LATITUDE} and {MAX_LATITUDE}, got: {lat:f}")
    if lon < MIN_LONGITUDE or lon > MAX_LONGITUDE:
        raise ParameterError(f"longitude must be between {MIN_LONGITUDE} and {MAX_LONGITUDE}, got: {lon:f}")

    days_raw = (query.get("days") or "").strip()
    days = default_days
    if days_raw:
        try:
            days = int(days_raw)
        except ValueError as exc:
            raise ParameterError(f"invalid days parameter: {days_raw}") from exc
        if days < 1 or days > max_days:
            raise ParameterError(f"days must be between 1 and {max_days}")

    return lat, lon, days


def build_aggregator(settings: AppSettings) -> ForecastAggregator:
    adapters = build_weather_adapters(settings.yaml)
    return ForecastAggregator(adapters, failure_policy=settings.yaml.forecast.failure_policy)


def _get_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def _get_aggregator(request: Request) -> ForecastAggregator:
    return request.app.state.aggregator


@asynccontextmanager
async def lifespan(application: FastAPI):
    settings = load_settings()
    configure_logging(settings.env.weather_log_level)
    aggregator = build_aggregator(settings)

    application.state.settings = settings
    application.state.aggregator = aggregator
    application.state.started_at_utc = datetime.now(timezone.utc)
    LOGGER.info(
        "Weather aggregator started (env: %s providers: %s)",
        settings.env.weather_env,
        ", ".join(aggregator.providers),
    )

    try:
        yield
    finally:
        LOGGER.warning("Stopping weather aggregator")


app = FastAPI(title="Weather Aggregator", version="1.0.0", lifespan=lifespan)


@app.get(
    "/weather",
    response_class=JSONResponse,
    tags=["Weather"],
    summary="Get weather forecast",
    responses={
        200: {"model": WeatherResponse, "description": "Forecasts per provider"},
        400: {"model": ErrorResponse, "description": "Invalid query parameters"},
        500: {"model": ErrorResponse, "description": "No weather provider returned a forecast"},
    },
)
async def weather_forecast(
    request: Request,
    lat: str | None = Query(default=None, description="Latitude (-90 to 90)", examples=["40.7128"]),
    lon: str | None = Query(default=None, description="Longitude (-180 to 180)", examples=["-74.006"]),
    days: str | None = Query(
        default=None,
        description="Number of forecast days (1 to the configured maximum, default 5)",
        examples=["3"],
    ),
) -> JSONResponse:
    """Forecasts from every configured provider.

    A provider that failed is listed with an empty forecast under the
    ``placeholder`` failure policy and left out under ``omit``.
    """
    settings = _get_settings(request)
    forecast_settings = settings.yaml.forecast
    try:
        latitude, longitude, window = validate_parameters(
            {"lat": lat or "", "lon": lon or "", "days": days or ""},
            default_days=forecast_settings.default_days,
            max_days=forecast_settings.max_days,
        )
    except ParameterError as exc:
        LOGGER.warning("Rejected weather request %s: %s", dict(request.query_params), exc)
        return JSONResponse({"error": str(exc)}, status_code=400)

    aggregator = _get_aggregator(request)
    cancel = threading.Event()
    try:
        result = await run_in_threadpool(aggregator.fetch_forecasts, latitude, longitude, window, cancel)
    except NoProvidersSucceededError as exc:
        LOGGER.error(
            "Weather request failed (lat: %.4f lon: %.4f days: %d): %s",
            latitude,
            longitude,
            window,
            exc,
        )
        return JSONResponse({"error": "Failed to fetch weather data"}, status_code=500)
    finally:
        cancel.set()

    return JSONResponse(result.to_response())


@app.get("/health", response_class=JSONResponse)
async def health(request: Request) -> JSONResponse:
    settings = _get_settings(request)
    aggregator = _get_aggregator(request)
    return JSONResponse(
        {
            "status": "ok",
            "service": settings.yaml.app.name,
            "version": settings.yaml.app.version,
            "environment": settings.env.weather_env,
            "providers": aggregator.providers,
            "failure_policy": aggregator.failure_policy.value,
            "started_at_utc": request.app.state.started_at_utc.isoformat(),
            "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        }
    )
