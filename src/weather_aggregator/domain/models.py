from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)

    def describe(self) -> str:
        return f"lat: {self.latitude:.4f} lon: {self.longitude:.4f}"


class DailyForecast(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    date: date
    temp_max: float
    temp_min: float

    @model_validator(mode="after")
    def validate_temperature_range(self) -> DailyForecast:
        if self.temp_max < self.temp_min:
            raise ValueError("daily forecast temp_max must be >= temp_min")
        return self


class ProviderResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider: str
    coordinate: Coordinate
    forecast_window: int = Field(ge=1)
    days: tuple[DailyForecast, ...] = ()

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("provider identity must not be empty")
        return text

    @field_validator("days")
    @classmethod
    def validate_days_order(cls, value: tuple[DailyForecast, ...]) -> tuple[DailyForecast, ...]:
        dates = [day.date for day in value]
        if dates != sorted(set(dates)):
            raise ValueError("days must be in ascending date order without duplicates")
        return value


class AggregateResult(BaseModel):
    """Per-provider forecasts for one request, keyed by provider identity."""

    model_config = ConfigDict(frozen=True)

    coordinate: Coordinate
    forecast_window: int
    forecasts: dict[str, ProviderResult] = Field(default_factory=dict)
    failures: dict[str, str] = Field(default_factory=dict)

    @property
    def succeeded(self) -> list[str]:
        return sorted(name for name in self.forecasts if name not in self.failures)

    def to_response(self) -> dict[str, Any]:
        return {
            "latitude": self.coordinate.latitude,
            "longitude": self.coordinate.longitude,
            "forecast_window": self.forecast_window,
            "forecasts": {
                name: [day.model_dump(mode="json") for day in result.days]
                for name, result in self.forecasts.items()
            },
        }
