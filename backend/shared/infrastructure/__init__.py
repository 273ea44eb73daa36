"""
Infrastructure module: Database and Redis.

Provides:
- Database sessions and transactions (db.py)
- Redis pool for the real-time event relay (redis_pool.py)
"""

from shared.infrastructure.db import (
    engine,
    SessionLocal,
    get_db,
    get_db_context,
    safe_commit,
)
from shared.infrastructure.redis_pool import (
    get_redis_pool,
    close_redis_pool,
)

__all__ = [
    # db
    "engine",
    "SessionLocal",
    "get_db",
    "get_db_context",
    "safe_commit",
    # redis
    "get_redis_pool",
    "close_redis_pool",
]
