"""Weather lookup endpoint."""

from datetime import date

from fastapi import APIRouter, Depends, Query

from juno.core.exceptions import NotFoundError
from juno.domains.itinerary.schemas import WeatherContext
from juno.domains.itinerary.services.weather_enrichment import WeatherEnrichment

router = APIRouter()


def get_weather_enrichment() -> WeatherEnrichment:
    """Dependency for getting WeatherEnrichment."""
    return WeatherEnrichment()


@router.get(
    "",
    response_model=WeatherContext,
    summary="Forecast for one destination and day",
)
async def get_forecast(
    location: str = Query(..., min_length=1, max_length=255, description="City or place name"),
    day: date = Query(..., alias="date", description="Day to forecast (YYYY-MM-DD)"),
    weather: WeatherEnrichment = Depends(get_weather_enrichment),
) -> WeatherContext:
    """Forecast with outdoor suitability; 404 when no forecast is available."""
    forecast = await weather.forecast(location, day)
    if forecast is None:
        raise NotFoundError(f"No forecast available for {location} on {day.isoformat()}")
    return forecast
