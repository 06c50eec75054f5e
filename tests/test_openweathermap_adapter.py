from __future__ import annotations

from datetime import date
from urllib.parse import parse_qs, urlparse

import pytest

from weather_aggregator.adapters.weather import (
    DecodeError,
    NoDataError,
    OpenWeatherMapAdapter,
    RequestConstructionError,
)
from weather_aggregator.adapters.weather import http


def _patch_fetch(monkeypatch: pytest.MonkeyPatch, payload) -> list[dict]:
    calls: list[dict] = []

    def fake_fetch_json(url, **kwargs):
        calls.append({"url": url, **kwargs})
        return payload

    monkeypatch.setattr(http, "fetch_json", fake_fetch_json)
    return calls


def test_three_hour_buckets_are_reduced_per_date(monkeypatch, coordinate, openweathermap_payload) -> None:
    calls = _patch_fetch(monkeypatch, openweathermap_payload)

    result = OpenWeatherMapAdapter("secret").fetch_forecast(coordinate, 5)

    assert result.provider == "weatherapi"
    assert [day.date for day in result.days] == [date(2025, 7, 25), date(2025, 7, 26)]
    assert (result.days[0].temp_min, result.days[0].temp_max) == (19.88, 22.52)
    assert (result.days[1].temp_min, result.days[1].temp_max) == (17.5, 23.4)

    query = parse_qs(urlparse(calls[0]["url"]).query)
    assert query["appid"] == ["secret"]
    assert query["units"] == ["metric"]
    assert query["lat"] == ["40.712800"]
    assert query["lon"] == ["-74.006000"]


def test_window_limits_reduced_days(monkeypatch, coordinate, openweathermap_payload) -> None:
    _patch_fetch(monkeypatch, openweathermap_payload)

    result = OpenWeatherMapAdapter("secret").fetch_forecast(coordinate, 1)

    assert [day.date for day in result.days] == [date(2025, 7, 25)]
    assert result.forecast_window == 1


def test_malformed_bucket_day_is_dropped(monkeypatch, coordinate, openweathermap_payload) -> None:
    openweathermap_payload["list"].append(
        {"dt": 1753531200, "dt_txt": "2025-07-27 12:00:00", "main": {"temp_min": 25.0, "temp_max": 20.0}}
    )
    _patch_fetch(monkeypatch, openweathermap_payload)

    result = OpenWeatherMapAdapter("secret").fetch_forecast(coordinate, 5)

    assert date(2025, 7, 27) not in [day.date for day in result.days]
    assert len(result.days) == 2


def test_blank_api_key_fails_before_request(monkeypatch, coordinate) -> None:
    calls = _patch_fetch(monkeypatch, {"list": []})

    with pytest.raises(RequestConstructionError):
        OpenWeatherMapAdapter("   ").fetch_forecast(coordinate, 5)

    assert calls == []


def test_empty_list_raises_no_data(monkeypatch, coordinate) -> None:
    _patch_fetch(monkeypatch, {"cod": "200", "list": []})

    with pytest.raises(NoDataError):
        OpenWeatherMapAdapter("secret").fetch_forecast(coordinate, 5)


@pytest.mark.parametrize(
    "payload",
    [
        "not-a-dict",
        {"cod": "200"},
        {"list": ["bucket"]},
        {"list": [{"dt_txt": "yesterday", "main": {"temp_min": 1.0, "temp_max": 2.0}}]},
        {"list": [{"dt_txt": "2025-07-25 18:00:00", "main": {"temp_min": None, "temp_max": 2.0}}]},
    ],
)
def test_unexpected_shapes_raise_decode_error(monkeypatch, coordinate, payload) -> None:
    _patch_fetch(monkeypatch, payload)

    with pytest.raises(DecodeError):
        OpenWeatherMapAdapter("secret").fetch_forecast(coordinate, 5)
