"""Domain modules - Business logic organized by bounded contexts.

Import them directly where needed:

    from juno.domains.planner.services import PlannerService
    from juno.domains.trip.repository import TripRepository
"""
