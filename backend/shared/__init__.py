"""
Shared module for common utilities across the REST API and the WS Gateway.

STRUCTURE:
- shared.security: Authentication, authorization, rate limiting
  - auth.py: JWT verification, demo tokens, current_user_context, require_roles
  - password.py: Bcrypt hashing
  - rate_limit.py: Login rate limiting (slowapi)

- shared.infrastructure: Database and messaging
  - db.py: SQLAlchemy sessions, safe_commit()
  - redis_pool.py: redis.asyncio pool for the event relay

- shared.config: Configuration
  - settings.py: Environment config (pydantic-settings)
  - logging.py: Structured logging and audit helpers
  - constants.py: Roles, statuses, rooms, socket events

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging
  - response.py: {success, data, message} envelope
  - schemas.py: Pydantic request/response schemas

IMPORT EXAMPLES:
    from shared.security.auth import verify_jwt, current_user_context
    from shared.infrastructure.db import get_db, safe_commit
    from shared.config.settings import settings
    from shared.config.constants import Roles, OrderStatus
    from shared.utils.exceptions import NotFoundError, ForbiddenError
"""
