"""Concurrent fan-out of one forecast request to every configured provider."""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Iterable

from ..adapters.weather import WeatherAdapter, WeatherAdapterError
from ..domain.models import AggregateResult, Coordinate, ProviderResult
from ..settings import FailurePolicy

LOGGER = logging.getLogger(__name__)


class AggregatorError(RuntimeError):
    """Base class for request-level aggregation failures."""


class NoProvidersSucceededError(AggregatorError):
    """Raised when no configured provider produced a forecast."""

    def __init__(self, failures: dict[str, str] | None = None) -> None:
        self.failures = dict(failures or {})
        if self.failures:
            message = f"all {len(self.failures)} weather providers failed"
        else:
            message = "no weather providers configured"
        super().__init__(message)


class ForecastAggregator:
    """Gather forecasts from all providers and key them by provider identity.

    Every provider runs on its own worker thread. The calling thread is the
    only writer of the aggregate: it receives each outcome from
    ``as_completed`` and records it, so workers never share state. The call
    returns only after every provider has succeeded or failed.

    A failed provider is recorded in ``AggregateResult.failures`` and, under
    ``FailurePolicy.PLACEHOLDER``, also appears in ``forecasts`` with no days.
    With ``FailurePolicy.OMIT`` its key is left out of ``forecasts``.
    """

    def __init__(
        self,
        adapters: Iterable[WeatherAdapter],
        *,
        failure_policy: FailurePolicy = FailurePolicy.PLACEHOLDER,
        logger: logging.Logger | None = None,
    ) -> None:
        self._adapters: list[WeatherAdapter] = list(adapters)
        identities = [adapter.identity for adapter in self._adapters]
        if len(set(identities)) != len(identities):
            raise ValueError(f"weather provider identities must be unique: {identities}")
        self._failure_policy = failure_policy
        self._logger = logger or LOGGER

    @property
    def providers(self) -> list[str]:
        return [adapter.identity for adapter in self._adapters]

    @property
    def failure_policy(self) -> FailurePolicy:
        return self._failure_policy

    def fetch_forecasts(
        self,
        latitude: float,
        longitude: float,
        days: int,
        cancel: threading.Event | None = None,
    ) -> AggregateResult:
        coordinate = Coordinate(latitude=latitude, longitude=longitude)
        self._logger.info(
            "Starting forecast fetch (%s days: %d providers: %d)",
            coordinate.describe(),
            days,
            len(self._adapters),
        )

        if not self._adapters:
            self._logger.error("No weather providers configured")
            raise NoProvidersSucceededError()

        forecasts: dict[str, ProviderResult] = {}
        failures: dict[str, str] = {}

        with ThreadPoolExecutor(
            max_workers=len(self._adapters),
            thread_name_prefix="forecast",
        ) as executor:
            pending: dict[Future[ProviderResult], WeatherAdapter] = {}
            for adapter in self._adapters:
                self._logger.debug("Fetching forecast from %s", adapter.identity)
                future = executor.submit(adapter.fetch_forecast, coordinate, days, cancel)
                pending[future] = adapter

            for future in as_completed(pending):
                identity = pending[future].identity
                try:
                    result = future.result()
                except WeatherAdapterError as exc:
                    self._logger.warning("Failed to fetch forecast from %s: %s", identity, exc)
                    failures[identity] = str(exc)
                    continue
                except Exception as exc:
                    self._logger.exception("Weather provider %s raised unexpectedly", identity)
                    failures[identity] = f"unexpected error: {exc}"
                    continue

                forecasts[identity] = result
                self._logger.info("Fetched forecast from %s: %d days", identity, len(result.days))

        if not forecasts:
            self._logger.error(
                "All weather providers failed (%s days: %d): %s",
                coordinate.describe(),
                days,
                failures,
            )
            raise NoProvidersSucceededError(failures)

        if self._failure_policy is FailurePolicy.PLACEHOLDER:
            for identity in failures:
                forecasts[identity] = ProviderResult(
                    provider=identity,
                    coordinate=coordinate,
                    forecast_window=days,
                )

        aggregate = AggregateResult(
            coordinate=coordinate,
            forecast_window=days,
            forecasts=forecasts,
            failures=failures,
        )
        self._logger.info(
            "Completed forecast fetch (succeeded: %s failed: %s)",
            ", ".join(aggregate.succeeded),
            ", ".join(sorted(aggregate.failures)) or "none",
        )
        return aggregate
