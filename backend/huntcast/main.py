from __future__ import annotations

import logging
from datetime import datetime, timezone

import httpx
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from huntcast.config import configure_logging, get_settings
from huntcast.schemas import ConditionsRequest, Coordinates
from huntcast.services.conditions import build_conditions_response, build_day_breakdown
from huntcast.services.scoring import ConditionScorer
from huntcast.services.solunar import SolunarEngine
from huntcast.services.weather_client import WeatherClient, parse_forecast


settings = get_settings()
configure_logging(settings)
logger = logging.getLogger(__name__)

weather_client = WeatherClient(settings=settings)
solunar_engine = SolunarEngine()
scorer = ConditionScorer(solunar=solunar_engine)

app = FastAPI(title=settings.app_name, version=settings.app_version)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.frontend_origins),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("shutdown")
async def shutdown_event() -> None:
    await weather_client.close()


@app.get("/api/health")
async def health() -> dict:
    return {
        "status": "ok",
        "service": settings.app_name,
        "timestamp_utc": datetime.now(tz=timezone.utc).isoformat(),
    }


@app.get("/api/geocode")
async def geocode(query: str = Query(min_length=2, max_length=80)) -> dict:
    try:
        results = await weather_client.geocode(query=query)
    except httpx.HTTPError as exc:
        logger.error("Geocoding failed for %r: %s", query, exc)
        raise HTTPException(status_code=502, detail=f"Geocoding provider error: {exc}") from exc

    mapped = [
        {
            "name": item.get("name"),
            "country": item.get("country"),
            "admin1": item.get("admin1"),
            "latitude": item.get("latitude"),
            "longitude": item.get("longitude"),
            "timezone": item.get("timezone", "auto"),
        }
        for item in results
    ]
    return {"results": mapped}


@app.post("/api/conditions")
async def conditions(payload: ConditionsRequest) -> dict:
    location = await _resolve_location(payload.location, payload.location_query)

    try:
        forecast_payload = await weather_client.fetch_forecast(
            latitude=location.latitude,
            longitude=location.longitude,
            timezone=location.timezone,
        )
    except httpx.HTTPError as exc:
        logger.error("Forecast fetch failed for %s,%s: %s", location.latitude, location.longitude, exc)
        raise HTTPException(status_code=502, detail=f"Weather provider error: {exc}") from exc

    try:
        forecast = parse_forecast(forecast_payload)
    except ValueError as exc:
        logger.error("Unusable forecast for %s,%s: %s", location.latitude, location.longitude, exc)
        raise HTTPException(status_code=502, detail=f"Weather provider error: {exc}") from exc

    response = build_conditions_response(location=location, forecast=forecast, scorer=scorer)
    if payload.day is not None:
        response["day_breakdown"] = {
            "date": payload.day.isoformat(),
            "hours": build_day_breakdown(location=location, forecast=forecast, scorer=scorer, day=payload.day),
        }
    return response


@app.get("/api/solunar")
async def solunar(
    latitude: float = Query(ge=-90, le=90),
    longitude: float = Query(ge=-180, le=180),
    timestamp: datetime | None = Query(default=None, description="Defaults to now (UTC)."),
) -> dict:
    instant = timestamp or datetime.now(tz=timezone.utc)
    summary = solunar_engine.solunar_summary(instant, latitude, longitude)
    summary["timestamp"] = instant.isoformat()
    summary["instant_score"] = round(solunar_engine.compute_instant_solunar_score(instant, latitude, longitude), 1)
    summary["daily_score"] = round(solunar_engine.compute_daily_solunar_score(instant, latitude, longitude), 1)
    return summary


async def _resolve_location(location: Coordinates | None, location_query: str | None) -> Coordinates:
    if location is not None:
        return location

    try:
        geo_results = await weather_client.geocode(location_query or "")
    except httpx.HTTPError as exc:
        logger.error("Geocoding failed for %r: %s", location_query, exc)
        raise HTTPException(status_code=502, detail=f"Geocoding provider error: {exc}") from exc

    if not geo_results:
        raise HTTPException(status_code=404, detail="Location not found.")

    first = geo_results[0]
    return Coordinates(
        name=first.get("name"),
        latitude=first.get("latitude"),
        longitude=first.get("longitude"),
        timezone=first.get("timezone", "auto"),
    )
