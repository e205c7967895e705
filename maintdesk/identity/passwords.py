from __future__ import annotations

import logging

import bcrypt

from maintdesk.errors import ValidationFailedError

logger = logging.getLogger(__name__)

# bcrypt only reads the first 72 bytes of its input.
MAX_PASSWORD_BYTES = 72


def fits_bcrypt(password: str) -> bool:
    return len(password.encode("utf-8")) <= MAX_PASSWORD_BYTES


def hash_password(password: str) -> str:
    if not fits_bcrypt(password):
        raise ValidationFailedError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str | None) -> bool:
    """Check ``password`` against a stored bcrypt hash; unusable hashes never match."""
    if not hashed or not fits_bcrypt(password):
        # Nothing longer than the limit can have been enrolled.
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        logger.warning("Stored credential hash is not a valid bcrypt hash")
        return False
