"""Infrastructure: the SQL database for trips and Redis for conversations."""

from juno.infra.database import Base, close_db, db_manager, get_db, init_db
from juno.infra.redis import close_redis, get_redis, init_redis, redis_manager

__all__ = [
    "Base",
    "db_manager",
    "get_db",
    "init_db",
    "close_db",
    "redis_manager",
    "get_redis",
    "init_redis",
    "close_redis",
]
