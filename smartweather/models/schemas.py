# smartweather/models/schemas.py

from typing import Optional, List, Literal
from pydantic import BaseModel, Field, model_validator


class Coordinates(BaseModel):
    lat: float
    lng: float


class LocationDescriptor(BaseModel):
    """
    Where to fetch weather for: a coordinate pair (device geolocation)
    or a free-text place name (search box). Exactly one is set.
    """

    coordinates: Optional[Coordinates] = None
    place_name: Optional[str] = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "LocationDescriptor":
        if self.place_name is not None:
            self.place_name = self.place_name.strip()
            if not self.place_name:
                raise ValueError("place_name must not be blank")
        if (self.coordinates is None) == (self.place_name is None):
            raise ValueError("exactly one of coordinates or place_name is required")
        return self

    @classmethod
    def from_coordinates(cls, lat: float, lng: float) -> "LocationDescriptor":
        return cls(coordinates=Coordinates(lat=lat, lng=lng))

    @classmethod
    def from_place(cls, name: str) -> "LocationDescriptor":
        return cls(place_name=name)

    def describe(self) -> str:
        if self.coordinates is not None:
            return f"coordinates: {self.coordinates.lat}, {self.coordinates.lng}"
        return self.place_name


class CurrentWeather(BaseModel):
    temp: float
    condition: str
    humidity: float
    windSpeed: float
    feelsLike: float
    uvIndex: float


class DailyForecast(BaseModel):
    date: str
    high: float
    low: float
    condition: str


class Source(BaseModel):
    title: str
    uri: str


class WeatherReport(BaseModel):
    """The part of the snapshot the oracle is asked to produce."""

    locationName: str
    current: CurrentWeather
    forecast: List[DailyForecast]
    aiInsight: str
    clothingAdvice: str
    activityAdvice: str


class WeatherSnapshot(WeatherReport):
    lastUpdated: str
    isRealtime: bool = False
    sources: List[Source] = Field(default_factory=list)


class ErrorDetail(BaseModel):
    type: Literal[
        "credential_missing",
        "quota",
        "auth",
        "not_found",
        "invalid_response",
        "general",
    ]
    message: str
    detail: Optional[str] = None
    code: Optional[int] = None
    cooldownSeconds: Optional[int] = None


class OracleStatus(BaseModel):
    ok: bool


# JSON schema sent to Gemini as responseSchema (OpenAPI subset, upper-case types)
WEATHER_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "locationName": {"type": "STRING"},
        "current": {
            "type": "OBJECT",
            "properties": {
                "temp": {"type": "NUMBER"},
                "condition": {"type": "STRING"},
                "humidity": {"type": "NUMBER"},
                "windSpeed": {"type": "NUMBER"},
                "feelsLike": {"type": "NUMBER"},
                "uvIndex": {"type": "NUMBER"},
            },
            "required": ["temp", "condition", "humidity", "windSpeed", "feelsLike", "uvIndex"],
        },
        "forecast": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "date": {"type": "STRING"},
                    "high": {"type": "NUMBER"},
                    "low": {"type": "NUMBER"},
                    "condition": {"type": "STRING"},
                },
                "required": ["date", "high", "low", "condition"],
            },
        },
        "aiInsight": {"type": "STRING"},
        "clothingAdvice": {"type": "STRING"},
        "activityAdvice": {"type": "STRING"},
    },
    "required": [
        "locationName",
        "current",
        "forecast",
        "aiInsight",
        "clothingAdvice",
        "activityAdvice",
    ],
}
