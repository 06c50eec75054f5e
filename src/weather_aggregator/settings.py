from __future__ import annotations

import logging
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[2]

SUPPORTED_PROVIDERS = ("open-meteo", "weatherapi")
ABSOLUTE_MAX_FORECAST_DAYS = 14


class FailurePolicy(str, Enum):
    """How a failed provider is represented in the aggregate."""

    PLACEHOLDER = "placeholder"
    OMIT = "omit"


class AppInfoSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = "weather-aggregator"
    version: str = "1.0.0"

    @field_validator("name", "version")
    @classmethod
    def validate_non_empty_text(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("app.name and app.version must not be empty")
        return text


class ForecastSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    default_days: int = Field(default=5, ge=1, le=ABSOLUTE_MAX_FORECAST_DAYS)
    max_days: int = Field(default=5, ge=1, le=ABSOLUTE_MAX_FORECAST_DAYS)
    failure_policy: FailurePolicy = FailurePolicy.PLACEHOLDER

    @model_validator(mode="after")
    def validate_window(self) -> ForecastSettings:
        if self.default_days > self.max_days:
            raise ValueError("forecast.default_days must be <= forecast.max_days")
        return self


class HttpClientSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    timeout_seconds: float = Field(default=10, gt=0, le=120)
    user_agent: str = "weather-aggregator/1.0"

    @field_validator("user_agent")
    @classmethod
    def validate_user_agent(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("http.user_agent must not be empty")
        return text


class ProviderSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    api_key: str | None = None
    timezone: str = "auto"

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        text = value.strip().lower()
        if text not in SUPPORTED_PROVIDERS:
            raise ValueError(
                f"Unsupported weather provider: {value!r} (expected one of {', '.join(SUPPORTED_PROVIDERS)})"
            )
        return text

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, value: str | None) -> str | None:
        if value is None:
            return None
        text = value.strip()
        return text or None

    @model_validator(mode="after")
    def validate_credentials(self) -> ProviderSettings:
        if self.name == "weatherapi" and self.api_key is None:
            raise ValueError("providers[].api_key is required for 'weatherapi'")
        return self


def _default_providers() -> list[ProviderSettings]:
    return [ProviderSettings(name="open-meteo")]


class WeatherYamlSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    app: AppInfoSettings = Field(default_factory=AppInfoSettings)
    forecast: ForecastSettings = Field(default_factory=ForecastSettings)
    http: HttpClientSettings = Field(default_factory=HttpClientSettings)
    providers: list[ProviderSettings] = Field(default_factory=_default_providers)

    @field_validator("providers")
    @classmethod
    def validate_providers(cls, values: list[ProviderSettings]) -> list[ProviderSettings]:
        if not values:
            raise ValueError("providers must contain at least one provider")
        names = [provider.name for provider in values]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"providers contains duplicate names: {', '.join(duplicates)}")
        return values


class EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    weather_env: Literal["dev", "test", "prod"] = "dev"
    weather_config_path: Path = Path("config/weather.yaml")
    weather_log_level: str = "INFO"
    weather_host: str = "0.0.0.0"
    weather_port: int = Field(default=8080, ge=1, le=65535)

    @field_validator("weather_log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level


class AppSettings(BaseModel):
    env: EnvSettings
    yaml: WeatherYamlSettings
    project_root: Path
    config_path: Path


def _resolve_project_path(path: Path) -> Path:
    if path.is_absolute():
        return path
    return (PROJECT_ROOT / path).resolve()


def load_yaml_settings(path: Path) -> WeatherYamlSettings:
    if not path.exists():
        return WeatherYamlSettings()

    raw_config = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ValueError("Weather config must be a YAML mapping/object at the top level")
    return WeatherYamlSettings.model_validate(raw_config)


@lru_cache(maxsize=1)
def load_settings() -> AppSettings:
    env = EnvSettings()
    config_path = _resolve_project_path(env.weather_config_path)
    return AppSettings(
        env=env,
        yaml=load_yaml_settings(config_path),
        project_root=PROJECT_ROOT,
        config_path=config_path,
    )
