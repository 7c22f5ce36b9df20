"""
Signed workstation scope tokens.

A workstation scope (one tab, one kiosk, one terminal) is the key its
employee session is stored under. The server mints the scope id at login and
hands it out inside a signed JWT, so a client can only present a scope it was
issued: a copied scope id or a guessed one is rejected before the store is
read.
"""

from __future__ import annotations

import hashlib
import secrets
import time
import uuid
from typing import Any

import jwt

from shared.config.constants import Routes
from shared.config.logging import get_logger
from shared.config.settings import JWT_AUDIENCE, JWT_ISSUER, JWT_SECRET, settings
from shared.utils.exceptions import SessionRequiredError

logger = get_logger(__name__)

SCOPE_TOKEN_TYPE = "scope"


def _hash_jti(jti: str) -> str:
    """First 8 characters of the SHA256 of a token id, for logging."""
    return hashlib.sha256(jti.encode()).hexdigest()[:8]


def new_scope_id() -> str:
    return secrets.token_urlsafe(24)


def sign_scope_token(
    scope_id: str,
    restaurant_id: str,
    role: str,
    ttl_seconds: int | None = None,
) -> str:
    """
    Sign a scope token.

    Args:
        scope_id: Server-minted scope id, the ``sub`` claim.
        restaurant_id: Restaurant the employee logged in to.
        role: Role of the logged-in employee.
        ttl_seconds: Token lifetime. Defaults to ``scope_token_expire_minutes``.
    """
    if ttl_seconds is None:
        ttl_seconds = settings.scope_token_expire_minutes * 60

    now = int(time.time())
    data = {
        "sub": scope_id,
        "restaurant_id": restaurant_id,
        "role": role,
        "iss": JWT_ISSUER,
        "aud": JWT_AUDIENCE,
        "iat": now,
        "exp": now + ttl_seconds,
        "type": SCOPE_TOKEN_TYPE,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(data, JWT_SECRET, algorithm="HS256")


def verify_scope_token(token: str | None, restaurant_id: str | None = None) -> dict[str, Any]:
    """
    Verify and decode a scope token.

    Raises SessionRequiredError (redirecting to the restaurant login page) when
    the token is missing, unsigned, expired or malformed.
    """
    redirect_to = Routes.login_for(restaurant_id)
    if not token:
        raise SessionRequiredError(redirect_to, restaurant_id=restaurant_id, reason="missing scope token")

    try:
        payload = jwt.decode(
            token,
            JWT_SECRET,
            algorithms=["HS256"],
            audience=JWT_AUDIENCE,
            issuer=JWT_ISSUER,
        )
    except jwt.ExpiredSignatureError:
        raise SessionRequiredError(redirect_to, restaurant_id=restaurant_id, reason="scope token expired")
    except jwt.InvalidTokenError as e:
        # Actual reason only goes to the log
        logger.warning("Scope token validation failed", error=str(e))
        raise SessionRequiredError(redirect_to, restaurant_id=restaurant_id, reason="invalid scope token")

    if payload.get("type") != SCOPE_TOKEN_TYPE:
        raise SessionRequiredError(redirect_to, restaurant_id=restaurant_id, reason="invalid token type")

    for claim in ("sub", "restaurant_id", "role"):
        if not isinstance(payload.get(claim), str) or not payload[claim]:
            raise SessionRequiredError(redirect_to, restaurant_id=restaurant_id, reason=f"missing {claim} claim")

    logger.debug("Scope token verified", jti=_hash_jti(str(payload.get("jti", ""))))
    return payload
