from __future__ import annotations

import threading
from typing import Protocol

from ...domain.models import Coordinate, ProviderResult


class WeatherAdapterError(RuntimeError):
    """Raised when a weather provider request cannot be completed."""

    def __init__(self, message: str, *, provider: str | None = None) -> None:
        super().__init__(message)
        self.provider = provider


class RequestConstructionError(WeatherAdapterError):
    """Raised when the outbound provider request cannot be built."""


class TransportError(WeatherAdapterError):
    """Raised on network failures, timeouts and cancellation."""

    def __init__(self, message: str, *, provider: str | None = None, cancelled: bool = False) -> None:
        super().__init__(message, provider=provider)
        self.cancelled = cancelled


class HTTPStatusError(WeatherAdapterError):
    """Raised when a provider answers with a non-200 status."""

    def __init__(
        self,
        status: int,
        *,
        reason: str = "",
        detail: str | None = None,
        provider: str | None = None,
    ) -> None:
        message = f"HTTP error (status {status})"
        if reason:
            message = f"{message}: {reason}"
        if detail:
            message = f"{message} - {detail}"
        super().__init__(message, provider=provider)
        self.status = status
        self.detail = detail


class DecodeError(WeatherAdapterError):
    """Raised when a provider response is not the expected JSON shape."""


class NoDataError(WeatherAdapterError):
    """Raised when a provider response yields no usable forecast days."""


class WeatherAdapter(Protocol):
    @property
    def identity(self) -> str:
        """Stable provider name used as the aggregate key."""

    def fetch_forecast(
        self,
        coordinate: Coordinate,
        days: int,
        cancel: threading.Event | None = None,
    ) -> ProviderResult:
        """Fetch normalized daily forecasts for the provided coordinates."""
