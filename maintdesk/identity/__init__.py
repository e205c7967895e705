"""Identity claims, signed credentials and the user directory."""

from .claims import IdentityClaim, Role
from .tokens import TokenCodec, resolve_role

__all__ = ["IdentityClaim", "Role", "TokenCodec", "resolve_role"]
