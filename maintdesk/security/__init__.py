"""Authorization guard and location scoping."""

from .guard import GLOBAL_SCOPE, AuthorizationGuard, LocationScope

__all__ = ["AuthorizationGuard", "GLOBAL_SCOPE", "LocationScope"]
