"""API v1 main router - aggregates all domain routers."""

from fastapi import APIRouter

from juno.api.v1.endpoints import health, planner, subscriptions, trips, weather

api_router = APIRouter()

# Include health check endpoint
api_router.include_router(
    health.router,
    tags=["Health"],
)

# Include planning conversation endpoints
api_router.include_router(
    planner.router,
    prefix="/planner",
    tags=["Planner"],
)

# Include saved trip endpoints
api_router.include_router(
    trips.router,
    prefix="/trips",
    tags=["Trips"],
)

# Include weather endpoints
api_router.include_router(
    weather.router,
    prefix="/weather",
    tags=["Weather"],
)

# Include subscription endpoints
api_router.include_router(
    subscriptions.router,
    prefix="/subscriptions",
    tags=["Subscriptions"],
)
