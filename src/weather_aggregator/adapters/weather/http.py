from __future__ import annotations

import json
import threading
from http.client import HTTPException
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from .base import DecodeError, HTTPStatusError, RequestConstructionError, TransportError

DEFAULT_TIMEOUT_SECONDS = 10
DEFAULT_USER_AGENT = "weather-aggregator/1.0"

ERROR_DETAIL_KEYS = ("reason", "message", "error")


def build_url(base_url: str, params: dict[str, Any]) -> str:
    return f"{base_url}?{urlencode(params)}"


def raise_if_cancelled(cancel: threading.Event | None, *, provider: str, stage: str) -> None:
    if cancel is not None and cancel.is_set():
        raise TransportError(f"request cancelled {stage}", provider=provider, cancelled=True)


def _error_detail(body: bytes) -> str | None:
    try:
        payload = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        text = body.decode("utf-8", errors="replace").strip()
        return text[:200] or None

    if not isinstance(payload, dict):
        return None
    for key in ERROR_DETAIL_KEYS:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def fetch_json(
    url: str,
    *,
    provider: str,
    cancel: threading.Event | None = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    user_agent: str = DEFAULT_USER_AGENT,
) -> Any:
    """Issue one GET request and return the decoded JSON body.

    Every failure is raised as a ``WeatherAdapterError`` subclass: a request
    that cannot be built, a transport failure (cancellation included), a
    non-200 status and a body that is not JSON each map onto their own type.
    """
    raise_if_cancelled(cancel, provider=provider, stage="before sending")

    try:
        request = Request(url, headers={"User-Agent": user_agent, "Accept": "application/json"})
    except ValueError as exc:
        raise RequestConstructionError(f"failed to create request: {exc}", provider=provider) from exc

    try:
        with urlopen(request, timeout=timeout) as response:
            status = response.status
            reason = response.reason or ""
            body = response.read()
    except HTTPError as exc:
        body = exc.read() or b""
        raise HTTPStatusError(
            exc.code,
            reason=str(exc.reason or ""),
            detail=_error_detail(body),
            provider=provider,
        ) from exc
    except (URLError, TimeoutError, OSError, HTTPException) as exc:
        raise TransportError(f"failed to do request: {exc}", provider=provider) from exc

    if status != 200:
        raise HTTPStatusError(status, reason=reason, detail=_error_detail(body), provider=provider)

    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DecodeError("failed to parse JSON response", provider=provider) from exc
