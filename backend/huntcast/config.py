from __future__ import annotations

import logging
import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    app_name: str = "HuntCast Conditions API"
    app_version: str = "1.0.0"
    open_meteo_base_url: str = "https://api.open-meteo.com/v1"
    open_meteo_geo_url: str = "https://geocoding-api.open-meteo.com/v1/search"
    default_timezone: str = "auto"
    forecast_days: int = 7
    api_cache_ttl_seconds: int = 600
    api_retry_attempts: int = 2
    request_timeout_seconds: float = 12.0
    log_level: str = "INFO"
    frontend_origins: tuple[str, ...] = ("http://localhost:5173", "http://127.0.0.1:5173")


def get_settings() -> Settings:
    origins_raw = os.getenv("FRONTEND_ORIGINS", "").strip()
    timezone_raw = os.getenv("DEFAULT_TIMEZONE", "").strip()
    forecast_days_raw = os.getenv("FORECAST_DAYS", "").strip()
    cache_ttl_raw = os.getenv("API_CACHE_TTL_SECONDS", "").strip()
    retry_attempts_raw = os.getenv("API_RETRY_ATTEMPTS", "").strip()
    timeout_raw = os.getenv("REQUEST_TIMEOUT_SECONDS", "").strip()
    log_level_raw = os.getenv("LOG_LEVEL", "").strip().upper()

    parsed_origins = tuple(item.strip() for item in origins_raw.split(",") if item.strip())

    try:
        forecast_days = int(forecast_days_raw) if forecast_days_raw else 7
    except ValueError:
        forecast_days = 7

    try:
        cache_ttl_seconds = int(cache_ttl_raw) if cache_ttl_raw else 600
    except ValueError:
        cache_ttl_seconds = 600

    try:
        retry_attempts = int(retry_attempts_raw) if retry_attempts_raw else 2
    except ValueError:
        retry_attempts = 2

    try:
        request_timeout_seconds = float(timeout_raw) if timeout_raw else 12.0
    except ValueError:
        request_timeout_seconds = 12.0

    if log_level_raw not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        log_level_raw = Settings.log_level

    return Settings(
        frontend_origins=parsed_origins or Settings.frontend_origins,
        default_timezone=timezone_raw or Settings.default_timezone,
        forecast_days=max(1, min(16, forecast_days)),
        api_cache_ttl_seconds=max(60, cache_ttl_seconds),
        api_retry_attempts=max(0, retry_attempts),
        request_timeout_seconds=max(1.0, request_timeout_seconds),
        log_level=log_level_raw,
    )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
