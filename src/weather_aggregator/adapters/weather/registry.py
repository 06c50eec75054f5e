from __future__ import annotations

import logging

from ...settings import HttpClientSettings, ProviderSettings, WeatherYamlSettings
from .base import WeatherAdapter
from .open_meteo import OpenMeteoWeatherAdapter
from .openweathermap import OpenWeatherMapAdapter


def _build_weather_adapter(
    provider: ProviderSettings,
    http_settings: HttpClientSettings,
    logger: logging.Logger | None,
) -> WeatherAdapter:
    if provider.name == "open-meteo":
        return OpenMeteoWeatherAdapter(
            timezone_name=provider.timezone,
            timeout_seconds=http_settings.timeout_seconds,
            user_agent=http_settings.user_agent,
            logger=logger,
        )

    if provider.name == "weatherapi":
        if provider.api_key is None:
            raise ValueError("provider api_key was missing for 'weatherapi'")
        return OpenWeatherMapAdapter(
            provider.api_key,
            timeout_seconds=http_settings.timeout_seconds,
            user_agent=http_settings.user_agent,
            logger=logger,
        )

    raise ValueError(f"Unsupported weather provider: {provider.name}")


def build_weather_adapters(
    settings: WeatherYamlSettings,
    logger: logging.Logger | None = None,
) -> list[WeatherAdapter]:
    """Construct one adapter per configured provider, in configuration order."""
    return [_build_weather_adapter(provider, settings.http, logger) for provider in settings.providers]
