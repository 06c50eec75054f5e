from __future__ import annotations

import argparse

import uvicorn

from .logging_config import configure_logging
from .settings import load_settings


def main(argv: list[str] | None = None) -> None:
    settings = load_settings()
    parser = argparse.ArgumentParser(description="Serve the multi-provider weather forecast API.")
    parser.add_argument("--host", default=settings.env.weather_host)
    parser.add_argument("--port", type=int, default=settings.env.weather_port)
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development only).")
    args = parser.parse_args(argv)

    configure_logging(settings.env.weather_log_level)
    uvicorn.run(
        "weather_aggregator.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.env.weather_log_level.lower(),
    )


if __name__ == "__main__":
    main()
