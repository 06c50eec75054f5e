from .base import (
    DecodeError,
    HTTPStatusError,
    NoDataError,
    RequestConstructionError,
    TransportError,
    WeatherAdapter,
    WeatherAdapterError,
)
from .open_meteo import OpenMeteoWeatherAdapter
from .openweathermap import OpenWeatherMapAdapter
from .registry import build_weather_adapters

__all__ = [
    "DecodeError",
    "HTTPStatusError",
    "NoDataError",
    "OpenMeteoWeatherAdapter",
    "OpenWeatherMapAdapter",
    "RequestConstructionError",
    "TransportError",
    "WeatherAdapter",
    "WeatherAdapterError",
    "build_weather_adapters",
]
