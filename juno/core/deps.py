"""FastAPI dependencies for authentication.

Planning conversations may be anonymous, so both a strict and an
optional user dependency are provided.
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from juno.core.auth import token_service
from juno.core.exceptions import InvalidTokenError

# OAuth2 scheme for token extraction from Authorization header
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="/api/v1/auth/login",
    auto_error=True,
)

# Optional OAuth2 scheme (doesn't raise error if token missing)
oauth2_scheme_optional = OAuth2PasswordBearer(
    tokenUrl="/api/v1/auth/login",
    auto_error=False,
)


async def get_current_user_id(
    token: Annotated[str, Depends(oauth2_scheme)],
) -> UUID:
    """Get the authenticated user ID from the bearer token.

    Raises:
        InvalidTokenError: If token is invalid or user ID malformed
    """
    user_id = token_service.get_user_id_from_token(token)
    if user_id is None:
        raise InvalidTokenError()
    return user_id


async def get_optional_user_id(
    token: Annotated[str | None, Depends(oauth2_scheme_optional)],
) -> UUID | None:
    """Get the user ID if a valid token was sent, None otherwise."""
    if token is None:
        return None
    return token_service.get_user_id_from_token(token)


CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]
OptionalUserId = Annotated[UUID | None, Depends(get_optional_user_id)]
