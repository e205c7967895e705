from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from maintdesk.identity.claims import IdentityClaim, Role
from maintdesk.identity.tokens import TokenCodec
from maintdesk.security.guard import AuthorizationGuard

bearer_scheme = HTTPBearer(auto_error=False)


def get_token_codec(request: Request) -> TokenCodec:
    codec = getattr(request.app.state, "token_codec", None)
    if codec is None:
        raise HTTPException(status_code=503, detail="Token codec is not configured")
    return codec


def get_guard(request: Request) -> AuthorizationGuard:
    guard = getattr(request.app.state, "guard", None)
    if guard is None:
        raise HTTPException(status_code=503, detail="Authorization guard is not configured")
    return guard


def extract_credential(request: Request, credentials: HTTPAuthorizationCredentials | None) -> str | None:
    """Return the bearer token, preferring the Authorization header over the cookie."""

    if credentials is not None and credentials.credentials:
        return credentials.credentials
    cookie_name = getattr(request.app.state, "auth_cookie_name", "token")
    return request.cookies.get(cookie_name) or None


async def get_current_claim(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    codec: Annotated[TokenCodec, Depends(get_token_codec)],
) -> IdentityClaim:
    """Decode the caller's credential; failures propagate as domain errors."""

    cached = getattr(request.state, "claim", None)
    if isinstance(cached, IdentityClaim):
        return cached

    claim = codec.verify(extract_credential(request, credentials))
    request.state.claim = claim
    return claim


def role_required(*roles: Role) -> Callable[..., Awaitable[IdentityClaim]]:
    """Dependency factory ensuring the current claim holds one of ``roles``."""

    allowed = frozenset(roles)

    async def dependency(
        claim: Annotated[IdentityClaim, Depends(get_current_claim)],
        guard: Annotated[AuthorizationGuard, Depends(get_guard)],
    ) -> IdentityClaim:
        return guard.authorize(claim, allowed)

    return dependency


CurrentClaim = Annotated[IdentityClaim, Depends(get_current_claim)]
Guard = Annotated[AuthorizationGuard, Depends(get_guard)]
