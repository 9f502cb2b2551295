"""Per-client request rate limiting for the public and login endpoints.

The limiter is process-wide. ``configure_limiter`` is called by create_app,
and the limit callables are evaluated on every request, so the settings of
the most recently created app apply.
"""
from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from confdrop.config import Settings, settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

_limits = {
    "login": settings.LOGIN_RATE_LIMIT,
    "public": settings.PUBLIC_RATE_LIMIT,
}


def configure_limiter(cfg: Settings) -> None:
    limiter.enabled = cfg.RATE_LIMIT_ENABLED
    _limits["login"] = cfg.LOGIN_RATE_LIMIT
    _limits["public"] = cfg.PUBLIC_RATE_LIMIT


def login_limit() -> str:
    return _limits["login"]


def public_limit() -> str:
    return _limits["public"]


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={"success": False, "message": "Too many requests. Please try again later."},
    )
