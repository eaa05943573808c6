from juno.domains.planner.services.planner_service import AuthRequiredError, PlannerService

__all__ = ["AuthRequiredError", "PlannerService"]
