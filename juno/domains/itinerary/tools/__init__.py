"""Async HTTP clients for external services.

- WeatherClient: Open-Meteo geocoding and hourly forecasts
"""

from juno.domains.itinerary.tools.base import (
    APIClientError,
    RateLimitError,
    ToolError,
)
from juno.domains.itinerary.tools.weather import WeatherClient
