"""Core module - Settings, authentication and HTTP errors.

Dependencies (deps.py) and auth modules are imported directly where needed:

    from juno.core.deps import CurrentUserId, OptionalUserId
    from juno.core.exceptions import NotFoundError
"""

from juno.core.config import settings

__all__ = [
    "settings",
]
