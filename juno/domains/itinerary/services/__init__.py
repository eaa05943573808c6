"""
Juno - Itinerary Services
Generation, weather enrichment and reconciliation of itineraries
"""

from juno.domains.itinerary.services.generator import (
    GenerationFailure,
    ItineraryGenerationError,
    ItineraryGenerator,
)
from juno.domains.itinerary.services.reconciliation import (
    ReconciliationError,
    reconcile,
)
from juno.domains.itinerary.services.weather_enrichment import (
    WeatherEnrichment,
    enrich_with_weather,
)

__all__ = [
    "GenerationFailure",
    "ItineraryGenerationError",
    "ItineraryGenerator",
    "ReconciliationError",
    "WeatherEnrichment",
    "enrich_with_weather",
    "reconcile",
]
