from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, time
from types import MappingProxyType
from typing import Literal, Mapping

from huntcast.services.observations import DailyObservation, TrendDirection, WeatherObservation
from huntcast.services.solunar import SolunarEngine

RecommendationTier = Literal["excellent", "good", "fair", "poor"]
Granularity = Literal["current", "hourly", "daily"]

CURRENT_WEIGHTS = {
    "temperature": 0.20,
    "pressure": 0.25,
    "weather": 0.20,
    "wind": 0.15,
    "solunar": 0.20,
}
HOURLY_WEIGHTS = CURRENT_WEIGHTS
DAILY_WEIGHTS = {
    "temperature": 0.25,
    "weather": 0.25,
    "wind": 0.20,
    "solunar": 0.30,
}

TEMPERATURE_TIERS = (
    (45, 65, 100),
    (35, 75, 85),
    (25, 85, 65),
    (15, 95, 40),
)
PRESSURE_TIERS = (
    (1020, 1030, 100),
    (1015, 1035, 85),
    (1010, 1040, 70),
    (1005, 1045, 50),
    (1000, 1050, 35),
)
# Evaluated in order; shared boundaries go to the earlier tier.
WIND_TIERS = (
    (5, 12, 100),
    (0, 5, 85),
    (12, 18, 70),
    (18, 25, 45),
    (25, 35, 25),
)

RECOMMENDATION_TEXT = {
    "excellent": (
        "Excellent Conditions",
        "Prime time for hunting and fishing. Multiple factors are aligned in your favor.",
    ),
    "good": (
        "Good Conditions",
        "Favorable conditions for outdoor activities. Expect decent animal activity.",
    ),
    "fair": (
        "Fair Conditions",
        "Conditions are mediocre. Activity may be reduced; patience will be key.",
    ),
    "poor": (
        "Poor Conditions",
        "Conditions are not favorable. Consider waiting for better conditions or adjusting your strategy.",
    ),
}


@dataclass(frozen=True)
class ScoreResult:
    total_score: int
    factor_scores: Mapping[str, int]
    recommendation: RecommendationTier
    granularity: Granularity

    def as_dict(self) -> dict:
        return {
            "total_score": self.total_score,
            "factor_scores": dict(self.factor_scores),
            "recommendation": self.recommendation,
            "granularity": self.granularity,
        }


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _tiered(value: float, tiers: tuple[tuple[float, float, int], ...], default: int) -> int:
    for lower, upper, score in tiers:
        if lower <= value <= upper:
            return score
    return default


def classify_recommendation(total_score: float) -> RecommendationTier:
    if total_score >= 85:
        return "excellent"
    if total_score >= 70:
        return "good"
    if total_score >= 50:
        return "fair"
    return "poor"


def describe_recommendation(tier: RecommendationTier) -> dict:
    title, description = RECOMMENDATION_TEXT[tier]
    return {"rating": tier, "title": title, "description": description}


def analyze_factors(factor_scores: Mapping[str, float], trend_direction: TrendDirection | None = None) -> list[str]:
    """Plain-text note per scored factor, in display order."""
    notes: list[str] = []

    temperature = factor_scores.get("temperature")
    if temperature is not None:
        if temperature >= 85:
            notes.append("Temperature is in the optimal range for wildlife activity.")
        elif temperature >= 65:
            notes.append("Temperature is good, though not ideal.")
        else:
            notes.append("Temperature may reduce animal activity.")

    pressure = factor_scores.get("pressure")
    if pressure is not None:
        trend = trend_direction or "steady"
        if pressure >= 85:
            notes.append(f"Excellent barometric pressure ({trend}). Animals should be active.")
        elif pressure >= 70:
            notes.append(f"Good pressure conditions ({trend}).")
        elif trend == "falling":
            notes.append("Falling pressure: animals may feed before the weather changes.")
        else:
            notes.append("Pressure conditions are less than ideal.")

    weather = factor_scores.get("weather")
    if weather is not None:
        if weather >= 85:
            notes.append("Weather conditions are favorable.")
        elif weather >= 60:
            notes.append("Weather is acceptable for outdoor activities.")
        else:
            notes.append("Weather may hinder activity and visibility.")

    wind = factor_scores.get("wind")
    if wind is not None:
        if wind >= 85:
            notes.append("Wind conditions are excellent for concealment.")
        elif wind >= 60:
            notes.append("Wind is manageable.")
        else:
            notes.append("High winds may make conditions difficult.")

    solunar = factor_scores.get("solunar")
    if solunar is not None:
        if solunar >= 80:
            notes.append("Peak solunar period. Moon position favors feeding activity.")
        elif solunar >= 60:
            notes.append("Good moon phase and position for activity.")
        else:
            notes.append("Moon influence is neutral or slightly negative.")

    return notes


@dataclass(frozen=True)
class ConditionScorer:
    """Weighted 0-100 favorability score from weather and solunar inputs.

    Sub-scores are combined at full precision; only the returned factor
    values and the total are rounded.
    """

    solunar: SolunarEngine = field(default_factory=SolunarEngine)

    @staticmethod
    def score_temperature(temp_f: float) -> int:
        return _tiered(temp_f, TEMPERATURE_TIERS, default=20)

    @staticmethod
    def score_pressure_value(pressure_hpa: float) -> int:
        return _tiered(pressure_hpa, PRESSURE_TIERS, default=20)

    def score_pressure_with_trend(self, pressure_hpa: float, trend_direction: TrendDirection) -> int:
        score = self.score_pressure_value(pressure_hpa)
        if trend_direction == "rising":
            score = min(100, score + 20)
        elif trend_direction == "falling" and pressure_hpa > 1015:
            score = min(100, score + 10)
        return score

    @staticmethod
    def score_weather_condition(weather_code: int | None, precipitation: float | None = None) -> int:
        # precipitation is part of the interface but not yet weighted.
        if weather_code is None:
            return 50
        if weather_code in (0, 1):
            return 95
        if weather_code == 2:
            return 100
        if weather_code == 3:
            return 85
        if 45 <= weather_code <= 48:
            return 60
        if 51 <= weather_code <= 55:
            return 70
        if weather_code == 61:
            return 60
        if weather_code in (63, 65):
            return 30
        if 71 <= weather_code <= 77:
            return 25
        if 80 <= weather_code <= 86:
            return 35
        if weather_code >= 95:
            return 10
        return 50

    @staticmethod
    def score_wind(wind_mph: float) -> int:
        return _tiered(wind_mph, WIND_TIERS, default=10)

    def score_current(
        self,
        observation: WeatherObservation,
        pressure_trend_direction: TrendDirection,
        timestamp: datetime,
        latitude: float,
        longitude: float,
    ) -> ScoreResult:
        factors = {
            "temperature": self.score_temperature(observation.temperature),
            "pressure": self.score_pressure_with_trend(observation.pressure, pressure_trend_direction),
            "weather": self.score_weather_condition(observation.weather_code, observation.precipitation),
            "wind": self.score_wind(observation.wind_speed),
            "solunar": self.solunar.compute_instant_solunar_score(timestamp, latitude, longitude),
        }
        return _combine(factors, CURRENT_WEIGHTS, "current")

    def score_hourly(
        self,
        observation: WeatherObservation,
        timestamp: datetime,
        latitude: float,
        longitude: float,
    ) -> ScoreResult:
        factors = {
            "temperature": self.score_temperature(observation.temperature),
            "pressure": self.score_pressure_value(observation.pressure),
            "weather": self.score_weather_condition(observation.weather_code, observation.precipitation),
            "wind": self.score_wind(observation.wind_speed),
            "solunar": self.solunar.compute_instant_solunar_score(timestamp, latitude, longitude),
        }
        return _combine(factors, HOURLY_WEIGHTS, "hourly")

    def score_daily(
        self,
        observation: DailyObservation,
        day: date | datetime,
        latitude: float,
        longitude: float,
    ) -> ScoreResult:
        timestamp = day if isinstance(day, datetime) else datetime.combine(day, time())
        average_temp = (observation.temp_max + observation.temp_min) / 2
        factors = {
            "temperature": self.score_temperature(average_temp),
            "weather": self.score_weather_condition(observation.weather_code, observation.precipitation_sum),
            "wind": self.score_wind(observation.wind_speed_max),
            "solunar": self.solunar.compute_daily_solunar_score(timestamp, latitude, longitude),
        }
        return _combine(factors, DAILY_WEIGHTS, "daily")


def _combine(factors: dict[str, float], weights: Mapping[str, float], granularity: Granularity) -> ScoreResult:
    weighted = sum(max(0.0, min(100.0, factors[name])) * weight for name, weight in weights.items())
    total = max(0, min(100, round_half_up(weighted)))
    return ScoreResult(
        total_score=total,
        factor_scores=MappingProxyType({name: round_half_up(value) for name, value in factors.items()}),
        recommendation=classify_recommendation(total),
        granularity=granularity,
    )
