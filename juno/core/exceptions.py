"""HTTP exceptions raised by the API layer.

Domain services raise plain exceptions; endpoints translate them into
the classes below.
"""

from fastapi import HTTPException, status


class AuthenticationError(HTTPException):
    """Base exception for authentication errors."""

    def __init__(
        self,
        detail: str = "Could not validate credentials",
        headers: dict[str, str] | None = None,
    ) -> None:
        if headers is None:
            headers = {"WWW-Authenticate": "Bearer"}
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers=headers,
        )


class InvalidTokenError(AuthenticationError):
    """Raised when the JWT token is invalid or expired."""

    def __init__(self, detail: str = "Invalid or expired token") -> None:
        super().__init__(detail=detail)


class LoginRequiredError(AuthenticationError):
    """Raised when an anonymous planner tries to save a trip."""

    def __init__(self) -> None:
        super().__init__(detail="Login required to save your trip")


class FeatureNotAvailable(HTTPException):
    """Raised when the user's plan does not include a feature."""

    def __init__(self, feature: str) -> None:
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Your plan does not include '{feature}'. Upgrade to unlock it.",
        )


class NotFoundError(HTTPException):
    """Raised when a resource is not found."""

    def __init__(self, detail: str = "Resource not found") -> None:
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
        )


class ConflictError(HTTPException):
    """Raised when the resource is busy or in the wrong state."""

    def __init__(self, detail: str = "Conflict") -> None:
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
        )


class UnprocessableError(HTTPException):
    """Raised when a well-formed request cannot be applied."""

    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
        )


class ServiceUnavailableError(HTTPException):
    """Raised when a backing store could not complete the request."""

    def __init__(self, detail: str = "Service temporarily unavailable") -> None:
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
        )
