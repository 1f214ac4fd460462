from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from huntcast.schemas import Coordinates
from huntcast.services.observations import DailyObservation, Forecast, WeatherObservation
from huntcast.services.scoring import ConditionScorer, analyze_factors, describe_recommendation
from huntcast.services.weather_client import weather_code_to_label


def hours_for_day(hourly: list[WeatherObservation], day: date) -> list[WeatherObservation]:
    return [entry for entry in hourly if entry.time is not None and entry.time.date() == day]


def _slice_upcoming(hourly: list[WeatherObservation], reference_time: datetime, hours: int = 24) -> list[WeatherObservation]:
    # Keep the hour containing the reference time.
    window_start = reference_time.replace(minute=0, second=0, microsecond=0)
    upcoming = [entry for entry in hourly if entry.time is not None and entry.time >= window_start]
    return upcoming[:hours]


def _local_midnight(day: date, offset_seconds: int) -> datetime:
    return datetime.combine(day, time(), tzinfo=timezone(timedelta(seconds=offset_seconds)))


def _hour_row(scorer: ConditionScorer, entry: WeatherObservation, location: Coordinates) -> dict:
    result = scorer.score_hourly(entry, entry.time, location.latitude, location.longitude)
    return {
        "time": entry.time.isoformat(),
        "temperature_f": entry.temperature,
        "pressure_hpa": entry.pressure,
        "wind_mph": entry.wind_speed,
        "precipitation_in": entry.precipitation,
        "weather": weather_code_to_label(entry.weather_code),
        "weather_code": entry.weather_code,
        "score": result.as_dict(),
    }


def _day_row(
    scorer: ConditionScorer,
    entry: DailyObservation,
    location: Coordinates,
    offset_seconds: int,
) -> dict:
    midnight = _local_midnight(entry.date, offset_seconds)
    result = scorer.score_daily(entry, midnight, location.latitude, location.longitude)
    moon = scorer.solunar.compute_moon_phase(midnight)
    return {
        "date": entry.date.isoformat(),
        "weather": weather_code_to_label(entry.weather_code),
        "weather_code": entry.weather_code,
        "temp_max_f": entry.temp_max,
        "temp_min_f": entry.temp_min,
        "precipitation_sum_in": entry.precipitation_sum,
        "precipitation_probability_max": entry.precipitation_probability,
        "wind_max_mph": entry.wind_speed_max,
        "moon_phase": moon.phase_name,
        "score": result.as_dict(),
    }


def _pick_best_hour(hour_rows: list[dict]) -> dict | None:
    if not hour_rows:
        return None
    # max() keeps the first of equal totals, i.e. the earliest hour.
    best = max(hour_rows, key=lambda row: row["score"]["total_score"])
    return {
        "time": best["time"],
        "total_score": best["score"]["total_score"],
        "recommendation": best["score"]["recommendation"],
    }


def build_conditions_response(
    *,
    location: Coordinates,
    forecast: Forecast,
    scorer: ConditionScorer,
    now: datetime | None = None,
) -> dict:
    offset = timezone(timedelta(seconds=forecast.utc_offset_seconds))
    reference_time = now or forecast.current.time or datetime.now(tz=offset)

    current = forecast.current
    trend = forecast.pressure_trend
    current_result = scorer.score_current(
        current,
        trend.direction,
        reference_time,
        location.latitude,
        location.longitude,
    )

    upcoming = _slice_upcoming(forecast.hourly, reference_time, hours=24)
    upcoming_rows = [_hour_row(scorer, entry, location) for entry in upcoming]
    daily_rows = [_day_row(scorer, entry, location, forecast.utc_offset_seconds) for entry in forecast.daily]

    return {
        "location": {
            "name": location.name,
            "latitude": location.latitude,
            "longitude": location.longitude,
            "timezone": forecast.timezone,
        },
        "current": {
            "time": reference_time.isoformat(),
            "temperature_f": current.temperature,
            "pressure_hpa": current.pressure,
            "pressure_trend": {
                "direction": trend.direction,
                "change_hpa_per_3h": trend.change_hpa_per_3h,
            },
            "wind_mph": current.wind_speed,
            "precipitation_in": current.precipitation,
            "weather": weather_code_to_label(current.weather_code),
            "weather_code": current.weather_code,
        },
        "score": current_result.as_dict(),
        "recommendation": describe_recommendation(current_result.recommendation),
        "analysis": analyze_factors(current_result.factor_scores, trend.direction),
        "solunar": scorer.solunar.solunar_summary(reference_time, location.latitude, location.longitude),
        "hourly": upcoming_rows,
        "best_hour": _pick_best_hour(upcoming_rows),
        "daily": daily_rows,
    }


def build_day_breakdown(
    *,
    location: Coordinates,
    forecast: Forecast,
    scorer: ConditionScorer,
    day: date,
) -> list[dict]:
    return [_hour_row(scorer, entry, location) for entry in hours_for_day(forecast.hourly, day)]
