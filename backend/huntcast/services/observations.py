from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Literal, Sequence

TrendDirection = Literal["rising", "falling", "steady"]

PRESSURE_TREND_THRESHOLD_HPA = 1.5
PRESSURE_TREND_LOOKBACK_SAMPLES = 3


@dataclass(frozen=True)
class WeatherObservation:
    """Single-point reading, either the current conditions or one forecast hour.

    Units: temperature in F, pressure in hPa, precipitation in inches,
    wind speed in mph, weather code per WMO 4677.
    """

    temperature: float
    pressure: float
    weather_code: int | None
    precipitation: float = 0.0
    wind_speed: float = 0.0
    time: datetime | None = None


@dataclass(frozen=True)
class DailyObservation:
    date: date
    weather_code: int | None
    temp_max: float
    temp_min: float
    precipitation_sum: float = 0.0
    wind_speed_max: float = 0.0
    precipitation_probability: float | None = None


@dataclass(frozen=True)
class PressureTrend:
    direction: TrendDirection = "steady"
    change_hpa_per_3h: float = 0.0


@dataclass(frozen=True)
class Forecast:
    current: WeatherObservation
    pressure_trend: PressureTrend
    hourly: list[WeatherObservation] = field(default_factory=list)
    daily: list[DailyObservation] = field(default_factory=list)
    timezone: str = "UTC"
    utc_offset_seconds: int = 0


def compute_pressure_trend(history: Sequence[float | None]) -> PressureTrend:
    """Trend over the last three hours from hourly samples, oldest first.

    Each position is one hour, with ``None`` for an hour that has no reading.
    The newest sample is compared against the one three hours earlier; if
    either is missing, or the history is shorter than four hours, the trend
    reads as steady.
    """
    samples = list(history)
    if len(samples) <= PRESSURE_TREND_LOOKBACK_SAMPLES:
        return PressureTrend()

    latest = samples[-1]
    earlier = samples[-1 - PRESSURE_TREND_LOOKBACK_SAMPLES]
    if latest is None or earlier is None:
        return PressureTrend()

    change = latest - earlier
    direction: TrendDirection = "steady"
    if change > PRESSURE_TREND_THRESHOLD_HPA:
        direction = "rising"
    elif change < -PRESSURE_TREND_THRESHOLD_HPA:
        direction = "falling"
    return PressureTrend(direction=direction, change_hpa_per_3h=round(change, 2))
