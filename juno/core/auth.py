"""JWT access token handling.

Users sign in through the account service, which issues HS256 tokens whose
subject is the user's UUID. This service only validates them; token
creation is kept for tooling and tests.
"""

from datetime import UTC, datetime, timedelta
from uuid import UUID

from jose import JWTError, jwt
from pydantic import BaseModel

from juno.core.config import settings

ALGORITHM = "HS256"


class TokenPayload(BaseModel):
    sub: str  # user id
    exp: datetime
    iat: datetime


class TokenService:
    """Encode and validate access tokens with the shared secret."""

    def __init__(
        self,
        secret_key: str = settings.SECRET_KEY,
        algorithm: str = ALGORITHM,
    ) -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm

    def create_access_token(
        self,
        user_id: UUID | str,
        expires_delta: timedelta | None = None,
    ) -> str:
        now = datetime.now(UTC)
        expires = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
        payload = {"sub": str(user_id), "exp": expires, "iat": now}
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def decode_token(self, token: str) -> TokenPayload | None:
        """Decoded payload, or None for a malformed, forged or expired token."""
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
            return TokenPayload(
                sub=payload["sub"],
                exp=datetime.fromtimestamp(payload["exp"], tz=UTC),
                iat=datetime.fromtimestamp(payload["iat"], tz=UTC),
            )
        except (JWTError, KeyError):
            return None

    def get_user_id_from_token(self, token: str) -> UUID | None:
        payload = self.decode_token(token)
        if payload is None:
            return None
        try:
            return UUID(payload.sub)
        except ValueError:
            return None


token_service = TokenService()
