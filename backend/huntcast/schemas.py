from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Coordinates(BaseModel):
    name: str | None = Field(default=None, description="City or place name.")
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    timezone: str = Field(default="auto")


class ConditionsRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    location_query: str | None = Field(
        default=None,
        description="City or region text to geocode if coordinates are not provided.",
    )
    location: Coordinates | None = None
    day: date | None = Field(
        default=None,
        description="Optional forecast day to include an hour-by-hour breakdown for.",
    )

    @model_validator(mode="after")
    def validate_location_inputs(self) -> "ConditionsRequest":
        if self.location is None and (self.location_query is None or not self.location_query.strip()):
            raise ValueError("Provide either location_query or location coordinates.")
        return self
