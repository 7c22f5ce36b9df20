"""
Employee PIN hashing and verification using bcrypt.

Rosters may store either a bcrypt hash of the PIN or, as older rosters do,
the raw numeric PIN. Both are accepted; raw PINs are compared in constant time.
"""

import hmac

import bcrypt

from shared.config.logging import get_logger

logger = get_logger(__name__)

BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def hash_pin(pin: str) -> str:
    """
    Hash a PIN using bcrypt.

    Example:
        hashed = hash_pin("5678")
        # Returns something like: $2b$12$...
    """
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(pin.encode("utf-8"), salt).decode("utf-8")


def is_hashed(stored: str) -> bool:
    return stored.startswith(BCRYPT_PREFIXES)


def verify_pin(plain_pin: str, stored: str) -> bool:
    """
    Verify a PIN against the roster value.

    Returns True if the PIN matches, False otherwise.
    """
    if is_hashed(stored):
        try:
            return bcrypt.checkpw(plain_pin.encode("utf-8"), stored.encode("utf-8"))
        except ValueError:
            logger.warning("Roster PIN hash is malformed")
            return False

    return hmac.compare_digest(plain_pin.encode("utf-8"), stored.encode("utf-8"))


def needs_rehash(stored: str) -> bool:
    """True when the roster still holds a raw PIN that should be migrated to bcrypt."""
    return not is_hashed(stored)
