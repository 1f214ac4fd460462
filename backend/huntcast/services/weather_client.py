from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from time import monotonic
from typing import Any

import httpx

from huntcast.config import Settings
from huntcast.services.observations import (
    PRESSURE_TREND_LOOKBACK_SAMPLES,
    DailyObservation,
    Forecast,
    WeatherObservation,
    compute_pressure_trend,
)

logger = logging.getLogger(__name__)

WEATHER_CODE_LABELS = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Foggy",
    48: "Rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    56: "Light freezing drizzle",
    57: "Dense freezing drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    66: "Light freezing rain",
    67: "Heavy freezing rain",
    71: "Slight snow",
    73: "Moderate snow",
    75: "Heavy snow",
    77: "Snow grains",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}

RETRYABLE_HTTP_STATUS = {408, 429, 500, 502, 503, 504}

CURRENT_FIELDS = (
    "temperature_2m,relative_humidity_2m,apparent_temperature,precipitation,"
    "weather_code,surface_pressure,wind_speed_10m,wind_direction_10m"
)
HOURLY_FIELDS = (
    "temperature_2m,relative_humidity_2m,precipitation_probability,precipitation,"
    "weather_code,surface_pressure,wind_speed_10m,cloud_cover"
)
DAILY_FIELDS = (
    "weather_code,temperature_2m_max,temperature_2m_min,precipitation_sum,"
    "precipitation_probability_max,wind_speed_10m_max"
)


@dataclass
class WeatherClient:
    settings: Settings
    _cache: dict[str, tuple[float, Any]] = field(default_factory=dict, init=False)
    _client: httpx.AsyncClient = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._client = httpx.AsyncClient(timeout=self.settings.request_timeout_seconds)

    async def close(self) -> None:
        await self._client.aclose()

    async def geocode(self, query: str) -> list[dict]:
        query = query.strip()
        if not query:
            return []

        payload = await self._get_json(
            url=self.settings.open_meteo_geo_url,
            params={"name": query, "count": 5, "language": "en", "format": "json"},
            cache_key=f"geo:{query.lower()}",
            cache_ttl_seconds=3600,
        )
        results = payload.get("results") or []
        if not results:
            logger.info("No geocoding results for %r", query)
        return results

    async def fetch_forecast(self, latitude: float, longitude: float, timezone: str | None = None) -> dict:
        timezone = timezone or self.settings.default_timezone
        params: dict[str, Any] = {
            "latitude": latitude,
            "longitude": longitude,
            "timezone": timezone,
            "current": CURRENT_FIELDS,
            "hourly": HOURLY_FIELDS,
            "daily": DAILY_FIELDS,
            "temperature_unit": "fahrenheit",
            "wind_speed_unit": "mph",
            "precipitation_unit": "inch",
            "forecast_days": self.settings.forecast_days,
        }
        return await self._get_json(
            url=f"{self.settings.open_meteo_base_url}/forecast",
            params=params,
            cache_key=f"forecast:{round(latitude, 4)}:{round(longitude, 4)}:{timezone}",
            cache_ttl_seconds=self.settings.api_cache_ttl_seconds,
        )

    async def _get_json(
        self,
        *,
        url: str,
        params: dict[str, Any] | None = None,
        cache_key: str | None = None,
        cache_ttl_seconds: int = 0,
    ) -> Any:
        if cache_key and cache_ttl_seconds > 0:
            cached = self._cache_get(cache_key)
            if cached is not None:
                return cached

        attempts = self.settings.api_retry_attempts
        for attempt in range(attempts + 1):
            try:
                response = await self._client.get(url, params=params)
                response.raise_for_status()
                payload = response.json()
                if cache_key and cache_ttl_seconds > 0:
                    self._cache_set(cache_key, payload, ttl_seconds=cache_ttl_seconds)
                return payload
            except httpx.HTTPStatusError as exc:
                status_code = exc.response.status_code
                if status_code not in RETRYABLE_HTTP_STATUS or attempt >= attempts:
                    raise
                logger.warning("Upstream %s returned %s, retrying (%d/%d)", url, status_code, attempt + 1, attempts)
            except httpx.RequestError as exc:
                if attempt >= attempts:
                    raise
                logger.warning("Request to %s failed: %s, retrying (%d/%d)", url, exc, attempt + 1, attempts)
            await asyncio.sleep(0.35 * (attempt + 1))

        raise RuntimeError("Failed to fetch upstream JSON payload.")

    def _cache_get(self, key: str) -> Any | None:
        entry = self._cache.get(key)
        if entry is None:
            return None
        expires_at, payload = entry
        if monotonic() >= expires_at:
            self._cache.pop(key, None)
            return None
        return payload

    def _cache_set(self, key: str, payload: Any, *, ttl_seconds: int) -> None:
        self._cache[key] = (monotonic() + max(1, ttl_seconds), payload)


def weather_code_to_label(code: int | None) -> str:
    if code is None:
        return "Unknown"
    return WEATHER_CODE_LABELS.get(code, "Unknown")


def parse_forecast(payload: dict) -> Forecast:
    """Normalize an Open-Meteo forecast payload into observation records.

    Open-Meteo reports local wall-clock times without an offset, so every
    timestamp is tagged with the payload's ``utc_offset_seconds``.
    """
    offset_seconds = _as_int(payload.get("utc_offset_seconds")) or 0
    tz = timezone(timedelta(seconds=offset_seconds))

    current_block = payload.get("current", {})
    hourly_block = payload.get("hourly", {})
    daily_block = payload.get("daily", {})

    hourly = _parse_hourly(hourly_block, tz)
    current_time = _parse_local_stamp(current_block.get("time"), tz)
    pressure_by_hour = {entry.time: entry.pressure for entry in hourly if entry.time is not None}
    current_hour = current_time.replace(minute=0, second=0, microsecond=0) if current_time is not None else None
    same_hour = next((entry for entry in hourly if current_hour is not None and entry.time == current_hour), None)

    temperature = _as_float(current_block.get("temperature_2m"))
    pressure = _as_float(current_block.get("surface_pressure"))
    # A gap in the current block is filled from the forecast hour it falls in.
    if same_hour is not None:
        temperature = same_hour.temperature if temperature is None else temperature
        pressure = same_hour.pressure if pressure is None else pressure
    if temperature is None or pressure is None:
        raise ValueError("Forecast payload has no current temperature or pressure.")

    current = WeatherObservation(
        temperature=temperature,
        pressure=pressure,
        weather_code=_as_int(current_block.get("weather_code")),
        precipitation=_as_float(current_block.get("precipitation")) or 0.0,
        wind_speed=_as_float(current_block.get("wind_speed_10m")) or 0.0,
        time=current_time,
    )

    pressure_history: list[float | None] = []
    if current_hour is not None:
        # One slot per whole hour before the current reading, oldest first.
        pressure_history = [
            pressure_by_hour.get(current_hour - timedelta(hours=hours_back))
            for hours_back in range(PRESSURE_TREND_LOOKBACK_SAMPLES, 0, -1)
        ]
        pressure_history.append(current.pressure)

    return Forecast(
        current=current,
        pressure_trend=compute_pressure_trend(pressure_history),
        hourly=hourly,
        daily=_parse_daily(daily_block),
        timezone=str(payload.get("timezone") or "UTC"),
        utc_offset_seconds=offset_seconds,
    )


def _parse_hourly(hourly: dict, tz: timezone) -> list[WeatherObservation]:
    rows: list[WeatherObservation] = []
    for idx, stamp in enumerate(hourly.get("time", [])):
        pressure = _as_float(_value_at(hourly, "surface_pressure", idx))
        temperature = _as_float(_value_at(hourly, "temperature_2m", idx))
        if pressure is None or temperature is None:
            continue
        rows.append(
            WeatherObservation(
                temperature=temperature,
                pressure=pressure,
                weather_code=_as_int(_value_at(hourly, "weather_code", idx)),
                precipitation=_as_float(_value_at(hourly, "precipitation", idx)) or 0.0,
                wind_speed=_as_float(_value_at(hourly, "wind_speed_10m", idx)) or 0.0,
                time=_parse_local_stamp(stamp, tz),
            )
        )
    return rows


def _parse_daily(daily: dict) -> list[DailyObservation]:
    rows: list[DailyObservation] = []
    for idx, stamp in enumerate(daily.get("time", [])):
        try:
            day = date.fromisoformat(stamp)
        except (TypeError, ValueError):
            continue
        temp_max = _as_float(_value_at(daily, "temperature_2m_max", idx))
        temp_min = _as_float(_value_at(daily, "temperature_2m_min", idx))
        if temp_max is None or temp_min is None:
            continue
        rows.append(
            DailyObservation(
                date=day,
                weather_code=_as_int(_value_at(daily, "weather_code", idx)),
                temp_max=temp_max,
                temp_min=temp_min,
                precipitation_sum=_as_float(_value_at(daily, "precipitation_sum", idx)) or 0.0,
                wind_speed_max=_as_float(_value_at(daily, "wind_speed_10m_max", idx)) or 0.0,
                precipitation_probability=_as_float(_value_at(daily, "precipitation_probability_max", idx)),
            )
        )
    return rows


def _value_at(block: dict, key: str, idx: int) -> Any:
    series = block.get(key) or []
    if idx >= len(series):
        return None
    return series[idx]


def _parse_local_stamp(value: object, tz: timezone) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def _as_float(value: object) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_int(value: object) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
