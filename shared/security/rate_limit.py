"""
Rate limiting for employee login using slowapi.

Login codes are short numeric strings, so brute forcing a PIN is cheap
without a limit per client address.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from shared.config.logging import get_logger

logger = get_logger(__name__)

# Limiter instance using client IP as key
limiter = Limiter(key_func=get_remote_address)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Custom handler for rate limit exceeded errors.
    Returns a JSON response with the limit that was hit.
    """
    logger.warning("Login rate limit exceeded", client=get_remote_address(request), limit=str(exc.detail))
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Muitas tentativas de login. Tente novamente mais tarde.",
            "code": "RATE_LIMITED",
            "limit": str(exc.detail),
        },
    )
