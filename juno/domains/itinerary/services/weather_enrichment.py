"""Attach forecasts and indoor alternatives to itinerary days."""

import asyncio
import logging
from collections.abc import Callable
from datetime import date

from juno.domains.itinerary.schemas import Itinerary, TripDay, WeatherContext
from juno.domains.itinerary.tools.base import ToolError
from juno.domains.itinerary.tools.weather import GeoLocation, HourlySample, WeatherClient

logger = logging.getLogger(__name__)


# ============ Thresholds ============

MIN_OUTDOOR_TEMP_F = 40
MAX_OUTDOOR_TEMP_F = 95
MAX_OUTDOOR_WIND_MPH = 20
RAIN_LIKELY_PERCENT = 50

SEVERE_CONDITIONS = ("thunderstorm", "heavy rain", "snow", "heavy snow")
OUTDOOR_KEYWORDS = ("outdoor", "park", "garden", "walk", "hike", "hiking", "beach", "trail")

GENERIC_INDOOR_ALTERNATIVES = (
    "Visit a local museum",
    "Explore an indoor market",
    "Take a cooking class",
    "Visit an art gallery",
    "Check out local cafes",
)
HEAT_ALTERNATIVES = (
    "Visit an indoor ice rink",
    "Explore air-conditioned shopping centers",
    "Visit an aquarium",
    "Indoor spa day",
)
PRECIPITATION_ALTERNATIVES = (
    "Watch a local theater performance",
    "Visit indoor attractions",
    "Try local restaurants",
    "Visit indoor entertainment centers",
)


def is_suitable_for_outdoor(
    temperature: float,
    wind_speed: float,
    precipitation_probability: float,
    description: str,
) -> bool:
    condition = description.lower()
    return (
        MIN_OUTDOOR_TEMP_F <= temperature <= MAX_OUTDOOR_TEMP_F
        and wind_speed <= MAX_OUTDOOR_WIND_MPH
        and precipitation_probability < RAIN_LIKELY_PERCENT
        and not any(severe in condition for severe in SEVERE_CONDITIONS)
    )


def weather_warning(weather: WeatherContext) -> str | None:
    if weather.is_suitable_for_outdoor:
        return None
    reasons = []
    if weather.temperature > MAX_OUTDOOR_TEMP_F:
        reasons.append(f"high temperatures ({weather.temperature:.0f}°F)")
    elif weather.temperature < MIN_OUTDOOR_TEMP_F:
        reasons.append(f"low temperatures ({weather.temperature:.0f}°F)")
    if weather.precipitation_probability >= RAIN_LIKELY_PERCENT:
        reasons.append(f"a {weather.precipitation_probability:.0f}% chance of rain")
    if weather.wind_speed > MAX_OUTDOOR_WIND_MPH:
        reasons.append(f"strong winds ({weather.wind_speed:.0f} mph)")
    if not reasons:
        reasons.append(weather.description.lower())
    return "Outdoor activities may be affected by " + " and ".join(reasons) + "."


def build_weather_context(sample: HourlySample) -> WeatherContext:
    weather = WeatherContext(
        description=sample.description,
        temperature=sample.temperature,
        humidity=sample.humidity,
        wind_speed=sample.wind_speed,
        precipitation_probability=sample.precipitation_probability,
        is_suitable_for_outdoor=is_suitable_for_outdoor(
            sample.temperature,
            sample.wind_speed,
            sample.precipitation_probability,
            sample.description,
        ),
    )
    return weather.model_copy(update={"warning": weather_warning(weather)})


def suggest_alternatives(day: TripDay, weather: WeatherContext) -> list[str]:
    """Indoor swaps for outdoor activities on a day unfit for them.

    Each outdoor activity contributes the generic pool plus the pools for
    the conditions that apply; the result keeps first-seen order.
    """
    if weather.is_suitable_for_outdoor:
        return []

    pools: list[tuple[str, ...]] = [GENERIC_INDOOR_ALTERNATIVES]
    if weather.temperature > MAX_OUTDOOR_TEMP_F:
        pools.append(HEAT_ALTERNATIVES)
    if weather.precipitation_probability >= RAIN_LIKELY_PERCENT:
        pools.append(PRECIPITATION_ALTERNATIVES)

    suggestions: dict[str, None] = {}
    for slot in day.time_slots:
        name = slot.activity.lower()
        if not any(keyword in name for keyword in OUTDOOR_KEYWORDS):
            continue
        for pool in pools:
            for suggestion in pool:
                suggestions.setdefault(suggestion, None)
    return list(suggestions)


class WeatherEnrichment:
    """Enrichment pass over a whole itinerary.

    The destination is geocoded once; per-day forecasts are fetched
    concurrently and a failing day never affects the others.
    """

    def __init__(self, client_factory: Callable[[], WeatherClient] = WeatherClient) -> None:
        self._client_factory = client_factory

    async def enrich(self, itinerary: Itinerary, destination: str) -> Itinerary:
        if not itinerary.days:
            return itinerary

        async with self._client_factory() as client:
            location = await self._geocode(client, destination)
            if location is None:
                days = [_without_weather(day) for day in itinerary.days]
            else:
                days = await asyncio.gather(
                    *(self._enrich_day(client, location, day) for day in itinerary.days)
                )
        return itinerary.model_copy(update={"days": list(days)})

    async def forecast(self, destination: str, day: date) -> WeatherContext | None:
        """Single-day forecast for a destination, None when unavailable."""
        async with self._client_factory() as client:
            location = await self._geocode(client, destination)
            if location is None:
                return None
            return await self._lookup(client, location, day)

    async def _geocode(self, client: WeatherClient, destination: str) -> GeoLocation | None:
        try:
            return await client.geocode(destination)
        except (ToolError, ValueError, KeyError) as e:
            logger.warning(f"Geocoding failed for '{destination}': {e}")
            return None

    async def _lookup(
        self, client: WeatherClient, location: GeoLocation, day: date
    ) -> WeatherContext | None:
        try:
            sample = await client.get_day_sample(location, day)
        except (ToolError, ValueError, KeyError) as e:
            logger.warning(f"Weather lookup failed for {location.name} on {day}: {e}")
            return None
        if sample is None:
            logger.info(f"No forecast sample for {location.name} on {day}")
            return None
        return build_weather_context(sample)

    async def _enrich_day(
        self, client: WeatherClient, location: GeoLocation, day: TripDay
    ) -> TripDay:
        weather = await self._lookup(client, location, day.date)
        if weather is None:
            return _without_weather(day)
        return day.model_copy(
            update={
                "weather_context": weather,
                "alternative_activities": suggest_alternatives(day, weather),
            }
        )


def _without_weather(day: TripDay) -> TripDay:
    return day.model_copy(update={"weather_context": None, "alternative_activities": []})


async def enrich_with_weather(itinerary: Itinerary, destination: str) -> Itinerary:
    """Attach forecasts and indoor alternatives to every day of ``itinerary``."""
    return await WeatherEnrichment().enrich(itinerary, destination)
