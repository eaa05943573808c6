"""Weather client for geocoding and hourly forecasts.

Backed by Open-Meteo, which needs no API key:
- Geocoding: place name to coordinates
- Forecast: hourly samples in °F and mph for a given day
"""

import logging
from datetime import date, datetime, time

from pydantic import BaseModel

from juno.core.config import settings
from juno.domains.itinerary.tools.base import BaseAsyncAPIClient

logger = logging.getLogger(__name__)


# WMO weather interpretation codes
WEATHER_CODE_DESCRIPTIONS: dict[int, str] = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Depositing rime fog",
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
    71: "Slight snow fall",
    73: "Moderate snow fall",
    75: "Heavy snow fall",
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

HOURLY_FIELDS = (
    "temperature_2m",
    "relative_humidity_2m",
    "precipitation_probability",
    "wind_speed_10m",
    "weather_code",
)


def describe_weather_code(code: int | None) -> str:
    if code is None:
        return "Unknown"
    return WEATHER_CODE_DESCRIPTIONS.get(code, "Unknown")


# ============ Output Schemas ============


class GeoLocation(BaseModel):
    name: str
    latitude: float
    longitude: float
    country: str | None = None
    timezone: str | None = None


class HourlySample(BaseModel):
    """One hourly forecast sample."""

    time: datetime
    temperature: float  # °F
    humidity: float | None = None  # %
    precipitation_probability: float = 0  # %
    wind_speed: float = 0  # mph
    weather_code: int | None = None
    description: str


def pick_sample(payload: dict, day: date) -> HourlySample | None:
    """First hourly sample at or after midnight of ``day``."""
    hourly = payload.get("hourly") or {}
    times = hourly.get("time") or []
    midnight = datetime.combine(day, time.min)

    for index, raw_time in enumerate(times):
        sample_time = datetime.fromisoformat(raw_time)
        if sample_time < midnight:
            continue
        temperature = _value_at(hourly, "temperature_2m", index)
        if temperature is None:
            return None
        code = _value_at(hourly, "weather_code", index)
        return HourlySample(
            time=sample_time,
            temperature=temperature,
            humidity=_value_at(hourly, "relative_humidity_2m", index),
            precipitation_probability=_value_at(hourly, "precipitation_probability", index) or 0,
            wind_speed=_value_at(hourly, "wind_speed_10m", index) or 0,
            weather_code=int(code) if code is not None else None,
            description=describe_weather_code(int(code) if code is not None else None),
        )
    return None


def _value_at(hourly: dict, field: str, index: int) -> float | None:
    values = hourly.get(field) or []
    if index >= len(values):
        return None
    return values[index]


# ============ Weather API Client ============


class WeatherClient(BaseAsyncAPIClient):
    """Async client for the Open-Meteo geocoding and forecast APIs."""

    def __init__(
        self,
        geocoding_url: str | None = None,
        forecast_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
    ):
        self.geocoding_url = geocoding_url or settings.WEATHER_GEOCODING_URL
        self.forecast_url = forecast_url or settings.WEATHER_FORECAST_URL
        super().__init__(
            timeout=timeout or settings.WEATHER_TIMEOUT_SECONDS,
            max_retries=max_retries or settings.WEATHER_MAX_RETRIES,
        )

    async def _get_headers(self) -> dict[str, str]:
        return {"Accept": "application/json"}

    async def geocode(self, location: str) -> GeoLocation | None:
        """Resolve a place name to coordinates, None when unknown."""
        # "Kyoto, Japan" -> "Kyoto"; the search endpoint matches on name only
        name = location.split(",")[0].strip()
        data = await self.get(
            self.geocoding_url,
            params={"name": name, "count": 1, "language": "en", "format": "json"},
        )
        results = data.get("results") or []
        if not results:
            logger.info(f"No geocoding match for '{location}'")
            return None
        top = results[0]
        return GeoLocation(
            name=top.get("name", name),
            latitude=top["latitude"],
            longitude=top["longitude"],
            country=top.get("country"),
            timezone=top.get("timezone"),
        )

    async def get_day_sample(self, location: GeoLocation, day: date) -> HourlySample | None:
        """Fetch the hourly forecast covering ``day`` and pick its first sample."""
        data = await self.get(
            self.forecast_url,
            params={
                "latitude": location.latitude,
                "longitude": location.longitude,
                "hourly": ",".join(HOURLY_FIELDS),
                "temperature_unit": "fahrenheit",
                "wind_speed_unit": "mph",
                "timezone": "auto",
                "start_date": day.isoformat(),
                "end_date": day.isoformat(),
            },
        )
        return pick_sample(data, day)
