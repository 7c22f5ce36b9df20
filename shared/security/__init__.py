"""
Security module: PIN hashing, signed scope tokens and login rate limiting.
"""

from shared.security.password import hash_pin, verify_pin, needs_rehash
from shared.security.auth import new_scope_id, sign_scope_token, verify_scope_token
from shared.security.rate_limit import limiter, rate_limit_exceeded_handler

__all__ = [
    # password
    "hash_pin",
    "verify_pin",
    "needs_rehash",
    # auth
    "new_scope_id",
    "sign_scope_token",
    "verify_scope_token",
    # rate_limit
    "limiter",
    "rate_limit_exceeded_handler",
]
