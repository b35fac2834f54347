"""
API routes - combined router from all domain modules.

Shared infrastructure (limiter, error translation) lives here; every
sub-router imports what it needs from this package.
"""

import logging
import os

from fastapi import APIRouter, HTTPException
from slowapi import Limiter
from slowapi.util import get_remote_address

from daps.services.errors import DapsError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Shared rate limiter
# ---------------------------------------------------------------------------
IS_TEST_ENV = os.getenv("ENV", "").lower() == "test"
if IS_TEST_ENV:
    limiter = Limiter(key_func=get_remote_address)

    def no_op_limit(*args, **kwargs):
        """No-op decorator for test mode - doesn't apply any rate limiting."""
        def decorator(func):
            return func
        return decorator

    limiter.limit = lambda *args, **kwargs: no_op_limit()
else:
    limiter = Limiter(key_func=get_remote_address)

AUTH_RATE_LIMIT = os.getenv("AUTH_RATE_LIMIT", "10/minute")


# ---------------------------------------------------------------------------
# Shared error translation
# ---------------------------------------------------------------------------
def to_http_exception(error: Exception, action: str) -> HTTPException:
    """
    Map a service error to an HTTPException.

    DapsError subclasses carry their own status code and message; anything
    else is logged in full and reported as an opaque 500.
    """
    if isinstance(error, DapsError):
        return HTTPException(status_code=error.status_code, detail=error.message)
    logger.error(f"Error {action}: {error}", exc_info=error)
    return HTTPException(status_code=500, detail="Internal Server Error")


# ---------------------------------------------------------------------------
# Import sub-routers and combine
# ---------------------------------------------------------------------------
from daps.api.routes.users import router as users_router  # noqa: E402
from daps.api.routes.athletes import router as athletes_router  # noqa: E402
from daps.api.routes.games import router as games_router  # noqa: E402
from daps.api.routes.offers import router as offers_router  # noqa: E402
from daps.api.routes.messages import router as messages_router  # noqa: E402
from daps.api.routes.players import router as players_router  # noqa: E402
from daps.api.routes.system import router as system_router  # noqa: E402

router = APIRouter()
router.include_router(users_router)
router.include_router(athletes_router)
router.include_router(games_router)
router.include_router(offers_router)
router.include_router(messages_router)
router.include_router(players_router)
router.include_router(system_router)
