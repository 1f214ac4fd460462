from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Literal

PeriodKind = Literal["major", "minor"]

SYNODIC_MONTH_DAYS = 29.530588853
REFERENCE_NEW_MOON = datetime(2000, 1, 6, 18, 14, tzinfo=timezone.utc)
J2000_EPOCH = datetime(2000, 1, 1, 12, 0, tzinfo=timezone.utc)

MEAN_LONGITUDE_BASE_DEG = 218.316
MEAN_LONGITUDE_RATE_DEG_PER_DAY = 13.176396
RISE_SET_OFFSET_HOURS = 0.83

MAJOR_HALF_WINDOW = timedelta(minutes=90)
MINOR_HALF_WINDOW = timedelta(minutes=45)

PHASE_NAMES = (
    (0.03, "New Moon"),
    (0.22, "Waxing Crescent"),
    (0.28, "First Quarter"),
    (0.47, "Waxing Gibbous"),
    (0.53, "Full Moon"),
    (0.72, "Waning Gibbous"),
    (0.78, "Last Quarter"),
)


@dataclass(frozen=True)
class MoonPhase:
    phase_fraction: float
    illumination: float
    phase_name: str


@dataclass(frozen=True)
class MoonTimes:
    transit: datetime
    antipodal_transit: datetime
    moonrise: datetime
    moonset: datetime


@dataclass(frozen=True)
class SolunarPeriod:
    start: datetime
    end: datetime
    kind: PeriodKind
    label: str

    @property
    def center(self) -> datetime:
        return self.start + (self.end - self.start) / 2


def _as_utc_aware(timestamp: datetime) -> datetime:
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp


def _days_between(start: datetime, timestamp: datetime) -> float:
    return (_as_utc_aware(timestamp) - start).total_seconds() / 86400.0


def _clamp_score(value: float) -> float:
    return max(0.0, min(100.0, value))


def _at_hour_of_day(timestamp: datetime, hour: float) -> datetime:
    # Minutes may round up to 60 and roll into the following hour.
    midnight = timestamp.replace(hour=0, minute=0, second=0, microsecond=0)
    whole_hours = math.floor(hour)
    minutes = round((hour - whole_hours) * 60)
    return midnight + timedelta(hours=whole_hours, minutes=minutes)


def illumination_for_phase(phase_fraction: float) -> float:
    if phase_fraction <= 0.5:
        return phase_fraction * 2
    return (1 - phase_fraction) * 2


def phase_name_for_fraction(phase_fraction: float) -> str:
    if phase_fraction > 0.97:
        return "New Moon"
    for upper_bound, name in PHASE_NAMES:
        if phase_fraction < upper_bound:
            return name
    return "Waning Crescent"


def _phase_proximity(phase_fraction: float) -> float:
    """0.5 at full moon, 0.25 at either quarter, 0.0 at new moon."""
    return 0.5 - abs(phase_fraction - 0.5)


@dataclass(frozen=True)
class SolunarEngine:
    """Approximate lunar position and solunar feeding windows.

    Every method is a pure function of its arguments. Naive timestamps are
    read as UTC; aware timestamps keep their offset, and moon times land on
    the timestamp's own calendar day.

    Latitude is accepted for interface stability but the mean-longitude
    approximation used here does not depend on it, and rise/set offsets are
    fixed at about fifty minutes either side of transit.
    """

    synodic_month_days: float = SYNODIC_MONTH_DAYS
    reference_new_moon: datetime = REFERENCE_NEW_MOON

    def compute_moon_phase(self, timestamp: datetime) -> MoonPhase:
        days = _days_between(self.reference_new_moon, timestamp)
        phase_fraction = (days % self.synodic_month_days) / self.synodic_month_days
        if phase_fraction >= 1.0:
            phase_fraction = 0.0
        return MoonPhase(
            phase_fraction=phase_fraction,
            illumination=illumination_for_phase(phase_fraction),
            phase_name=phase_name_for_fraction(phase_fraction),
        )

    def compute_moon_times(self, timestamp: datetime, latitude: float, longitude: float) -> MoonTimes:
        days = _days_between(J2000_EPOCH, timestamp)
        mean_longitude = (MEAN_LONGITUDE_BASE_DEG + MEAN_LONGITUDE_RATE_DEG_PER_DAY * days) % 360
        transit_hour = ((mean_longitude - longitude) / 15 + 12) % 24

        return MoonTimes(
            transit=_at_hour_of_day(timestamp, transit_hour),
            antipodal_transit=_at_hour_of_day(timestamp, (transit_hour + 12) % 24),
            moonrise=_at_hour_of_day(timestamp, (transit_hour - RISE_SET_OFFSET_HOURS) % 24),
            moonset=_at_hour_of_day(timestamp, (transit_hour + RISE_SET_OFFSET_HOURS) % 24),
        )

    def compute_solunar_periods(
        self, timestamp: datetime, latitude: float, longitude: float
    ) -> list[SolunarPeriod]:
        times = self.compute_moon_times(timestamp, latitude, longitude)
        return [
            _window(times.transit, MAJOR_HALF_WINDOW, "major", "major1"),
            _window(times.antipodal_transit, MAJOR_HALF_WINDOW, "major", "major2"),
            _window(times.moonrise, MINOR_HALF_WINDOW, "minor", "minor1"),
            _window(times.moonset, MINOR_HALF_WINDOW, "minor", "minor2"),
        ]

    @staticmethod
    def is_within_period(instant: datetime, period: SolunarPeriod) -> bool:
        return _as_utc_aware(period.start) <= _as_utc_aware(instant) <= _as_utc_aware(period.end)

    def compute_instant_solunar_score(self, timestamp: datetime, latitude: float, longitude: float) -> float:
        phase = self.compute_moon_phase(timestamp)
        rating = 50 + _phase_proximity(phase.phase_fraction) * 40

        periods = self.compute_solunar_periods(timestamp, latitude, longitude)
        active_kinds = {period.kind for period in periods if self.is_within_period(timestamp, period)}
        if "major" in active_kinds:
            rating += 30
        elif "minor" in active_kinds:
            rating += 15

        return _clamp_score(rating)

    def compute_daily_solunar_score(self, timestamp: datetime, latitude: float, longitude: float) -> float:
        phase = self.compute_moon_phase(timestamp)
        return _clamp_score(50 + _phase_proximity(phase.phase_fraction) * 50)

    def solunar_summary(self, timestamp: datetime, latitude: float, longitude: float) -> dict:
        phase = self.compute_moon_phase(timestamp)
        times = self.compute_moon_times(timestamp, latitude, longitude)
        periods = sorted(self.compute_solunar_periods(timestamp, latitude, longitude), key=lambda item: item.start)
        return {
            "moon_phase": {
                "phase_fraction": round(phase.phase_fraction, 4),
                "illumination_percent": round(phase.illumination * 100),
                "phase_name": phase.phase_name,
            },
            "moon_times": {
                "transit": times.transit.isoformat(),
                "antipodal_transit": times.antipodal_transit.isoformat(),
                "moonrise": times.moonrise.isoformat(),
                "moonset": times.moonset.isoformat(),
            },
            "periods": [
                {
                    "label": period.label,
                    "kind": period.kind,
                    "start": period.start.isoformat(),
                    "end": period.end.isoformat(),
                    "active": self.is_within_period(timestamp, period),
                }
                for period in periods
            ],
        }


def _window(center: datetime, half_width: timedelta, kind: PeriodKind, label: str) -> SolunarPeriod:
    return SolunarPeriod(start=center - half_width, end=center + half_width, kind=kind, label=label)
