import asyncio
from datetime import date, datetime, timedelta, timezone

import httpx
import pytest

from huntcast.config import Settings
from huntcast.services.observations import PressureTrend, compute_pressure_trend
from huntcast.services.scoring import ConditionScorer
from huntcast.services.weather_client import WeatherClient, parse_forecast, weather_code_to_label


def _forecast_payload() -> dict:
    return {
        "timezone": "America/New_York",
        "utc_offset_seconds": -14400,
        "current": {
            "time": "2026-10-16T09:00",
            "temperature_2m": 54.3,
            "precipitation": 0.0,
            "weather_code": 2,
            "surface_pressure": 1020.0,
            "wind_speed_10m": 7.2,
        },
        "hourly": {
            "time": [f"2026-10-16T{hour:02d}:00" for hour in range(5, 13)],
            "temperature_2m": [48.0, 49.0, 50.0, 52.0, 54.0, 57.0, 60.0, 62.0],
            "precipitation": [0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.01, 0.0],
            "weather_code": [0, 0, 1, 2, 2, 2, 61, 3],
            "surface_pressure": [1014.0, 1015.0, 1016.0, 1017.0, 1018.0, 1019.0, None, 1020.0],
            "wind_speed_10m": [3.0, 4.0, 5.0, 6.0, 7.0, 9.0, 11.0, 14.0],
        },
        "daily": {
            "time": ["2026-10-16", "2026-10-17"],
            "weather_code": [2, 63],
            "temperature_2m_max": [64.0, 58.0],
            "temperature_2m_min": [45.0, 44.0],
            "precipitation_sum": [0.01, 0.42],
            "precipitation_probability_max": [10, 80],
            "wind_speed_10m_max": [14.0, 21.0],
        },
    }


def test_compute_pressure_trend_classifies_direction() -> None:
    assert compute_pressure_trend([1010.0, 1011.0, 1012.0, 1013.0]) == PressureTrend("rising", 3.0)
    assert compute_pressure_trend([1015.0, 1014.0, 1013.0, 1013.4]) == PressureTrend("falling", -1.6)
    assert compute_pressure_trend([1012.0, 1012.0, 1013.0, 1013.5]) == PressureTrend("steady", 1.5)


def test_compute_pressure_trend_needs_four_samples() -> None:
    assert compute_pressure_trend([1010.0, 1020.0, 1030.0]) == PressureTrend()
    assert compute_pressure_trend([None, 1020.0, 1030.0, 1040.0]) == PressureTrend()
    assert compute_pressure_trend([1010.0, 1020.0, 1030.0, None]) == PressureTrend()
    assert compute_pressure_trend([]) == PressureTrend("steady", 0.0)


def test_compute_pressure_trend_tolerates_gaps_between_endpoints() -> None:
    assert compute_pressure_trend([1010.0, None, None, 1013.0]) == PressureTrend("rising", 3.0)


def test_compute_pressure_trend_compares_against_three_samples_back() -> None:
    trend = compute_pressure_trend([990.0, 1000.0, 1001.0, 1002.0, 1002.5])

    assert trend.direction == "rising"
    assert trend.change_hpa_per_3h == 2.5


def test_parse_forecast_builds_aware_observations() -> None:
    forecast = parse_forecast(_forecast_payload())
    eastern = timezone(timedelta(hours=-4))

    assert forecast.timezone == "America/New_York"
    assert forecast.utc_offset_seconds == -14400
    assert forecast.current.time == datetime(2026, 10, 16, 9, 0, tzinfo=eastern)
    assert forecast.current.pressure == 1020.0
    assert forecast.current.weather_code == 2
    # The 11:00 row has no pressure and is dropped.
    assert len(forecast.hourly) == 7
    assert forecast.hourly[0].time.utcoffset() == timedelta(hours=-4)
    assert [day.date for day in forecast.daily] == [date(2026, 10, 16), date(2026, 10, 17)]
    assert forecast.daily[1].precipitation_sum == 0.42
    assert forecast.daily[1].precipitation_probability == 80.0


def test_parse_forecast_derives_three_hour_pressure_trend() -> None:
    forecast = parse_forecast(_forecast_payload())

    # 09:00 reading of 1020 against the 06:00 reading of 1015.
    assert forecast.pressure_trend == PressureTrend("rising", 5.0)


def test_parse_forecast_without_history_is_steady() -> None:
    payload = _forecast_payload()
    payload["hourly"] = {"time": []}

    forecast = parse_forecast(payload)

    assert forecast.pressure_trend == PressureTrend()
    assert forecast.hourly == []


def test_parse_forecast_keeps_missing_weather_code_neutral() -> None:
    payload = _forecast_payload()
    payload["current"]["weather_code"] = None
    payload["daily"]["weather_code"] = [None, 63]

    forecast = parse_forecast(payload)

    assert forecast.current.weather_code is None
    assert weather_code_to_label(forecast.current.weather_code) == "Unknown"
    assert ConditionScorer.score_weather_condition(forecast.current.weather_code) == 50
    assert forecast.daily[0].weather_code is None
    assert forecast.daily[1].weather_code == 63


def test_parse_forecast_fills_current_gaps_from_the_same_hour() -> None:
    payload = _forecast_payload()
    payload["current"]["time"] = "2026-10-16T09:15"
    payload["current"]["surface_pressure"] = None
    payload["current"]["temperature_2m"] = None

    forecast = parse_forecast(payload)

    # Values from the 09:00 forecast row.
    assert forecast.current.pressure == 1018.0
    assert forecast.current.temperature == 54.0


def test_parse_forecast_rejects_payload_without_current_pressure() -> None:
    payload = _forecast_payload()
    payload["current"]["surface_pressure"] = None
    payload["hourly"] = {"time": []}

    with pytest.raises(ValueError):
        parse_forecast(payload)


def test_parse_forecast_trend_does_not_reach_past_a_missing_hour() -> None:
    payload = _forecast_payload()
    # Without the 06:00 reading, 05:00 must not stand in for "three hours ago".
    payload["hourly"]["surface_pressure"][1] = None

    forecast = parse_forecast(payload)

    assert forecast.pressure_trend == PressureTrend()


def test_weather_code_to_label() -> None:
    assert weather_code_to_label(2) == "Partly cloudy"
    assert weather_code_to_label(99) == "Thunderstorm with heavy hail"
    assert weather_code_to_label(42) == "Unknown"
    assert weather_code_to_label(None) == "Unknown"


def _client_with_transport(handler, **settings_overrides) -> WeatherClient:  # noqa: ANN001
    client = WeatherClient(settings=Settings(**settings_overrides))
    client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return client


def test_get_json_retries_retryable_status() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        if len(calls) == 1:
            return httpx.Response(503, json={"reason": "busy"})
        return _json_response(_forecast_payload())

    client = _client_with_transport(handler, api_retry_attempts=2)
    payload = asyncio.run(client.fetch_forecast(latitude=39.1, longitude=-84.5, timezone="America/New_York"))

    assert len(calls) == 2
    assert payload["current"]["surface_pressure"] == 1020.0
    assert "temperature_unit=fahrenheit" in calls[0]
    assert "wind_speed_unit=mph" in calls[0]


def test_get_json_does_not_retry_client_errors() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        return httpx.Response(400, json={"reason": "bad request"})

    client = _client_with_transport(handler, api_retry_attempts=2)

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(client.fetch_forecast(latitude=39.1, longitude=-84.5))
    assert len(calls) == 1


def test_fetch_forecast_is_cached() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        return _json_response(_forecast_payload())

    client = _client_with_transport(handler)

    async def fetch_twice() -> None:
        await client.fetch_forecast(latitude=39.1, longitude=-84.5, timezone="auto")
        await client.fetch_forecast(latitude=39.1, longitude=-84.5, timezone="auto")

    asyncio.run(fetch_twice())
    assert len(calls) == 1


def test_geocode_returns_open_meteo_results() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        return _json_response(
            {"results": [{"name": "Cincinnati", "admin1": "Ohio", "latitude": 39.1031, "longitude": -84.512}]}
        )

    client = _client_with_transport(handler)
    results = asyncio.run(client.geocode("  Cincinnati "))

    assert len(calls) == 1
    assert "name=Cincinnati" in calls[0]
    assert results[0]["admin1"] == "Ohio"


def test_geocode_without_results_is_empty() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        return _json_response({"generationtime_ms": 0.2})

    client = _client_with_transport(handler)

    assert asyncio.run(client.geocode("Atlantis")) == []
    assert asyncio.run(client.geocode("   ")) == []
    assert len(calls) == 1


def _json_response(payload: object) -> httpx.Response:
    return httpx.Response(200, json=payload)
