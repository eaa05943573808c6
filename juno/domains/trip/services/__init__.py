from juno.domains.trip.services.trip_service import (
    PersistenceError,
    TripLimitReachedError,
    TripNotFoundError,
    TripService,
)

__all__ = [
    "PersistenceError",
    "TripLimitReachedError",
    "TripNotFoundError",
    "TripService",
]
