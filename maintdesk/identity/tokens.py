"""Signed bearer credentials carrying an identity claim."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, Mapping

from jose import JWTError, jwt

from maintdesk.errors import InvalidCredentialError, MissingCredentialError

from .claims import IdentityClaim, Role

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL = timedelta(days=7)

# Older user rows store the role under ``department`` and with free-form values.
_ROLE_ALIASES: dict[str, Role] = {
    "user": Role.NORMAL_USER,
    "normal": Role.NORMAL_USER,
    "normal user": Role.NORMAL_USER,
    "normal-user": Role.NORMAL_USER,
    "tech": Role.TECHNICIAN,
    "administrator": Role.ADMIN,
}


def resolve_role(value: Any) -> Role:
    """Map a stored or legacy role value onto :class:`Role`.

    Raises ``ValueError`` for anything that is not a known role or alias.
    """

    if isinstance(value, Role):
        return value
    text = str(value or "").strip().lower()
    try:
        return Role(text)
    except ValueError:
        pass
    if text in _ROLE_ALIASES:
        return _ROLE_ALIASES[text]
    raise ValueError(f"Unknown role: {value!r}")


def stored_role_values(roles: Iterable[Role]) -> list[str]:
    """Lower-cased spellings, canonical and legacy, that resolve to any of ``roles``."""

    wanted = list(roles)
    values = [role.value for role in wanted]
    values.extend(alias for alias, role in _ROLE_ALIASES.items() if role in wanted)
    return values


class TokenCodec:
    """Issue and verify HMAC-signed JWTs for the identity claim."""

    def __init__(
        self,
        secret_key: str,
        *,
        algorithm: str = "HS256",
        ttl: timedelta = DEFAULT_TOKEN_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._ttl = ttl
        self._clock = clock

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def issue(self, subject_id: str, display_name: str, role: Role | str, location: str) -> str:
        now = int(self._clock())
        payload = {
            "sub": str(subject_id),
            "name": display_name or "",
            "role": resolve_role(role).value,
            "location": location,
            "iat": now,
            "exp": now + int(self._ttl.total_seconds()),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def verify(self, credential: str | None) -> IdentityClaim:
        if not credential:
            raise MissingCredentialError("No credential provided")

        try:
            jwt.get_unverified_header(credential)
        except JWTError as exc:
            raise MissingCredentialError("Credential is not a token") from exc

        try:
            payload = jwt.decode(
                credential,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            logger.info("Rejected credential: %s", exc)
            raise InvalidCredentialError("Invalid or expired token") from exc

        self._check_expiry(payload)
        return self._to_claim(payload)

    def _check_expiry(self, payload: Mapping[str, Any]) -> None:
        # Expiry is checked against the injected clock rather than wall time.
        try:
            exp = int(payload["exp"])
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidCredentialError("Invalid or expired token") from exc
        if self._clock() >= exp:
            logger.info("Rejected expired credential for subject %s", payload.get("sub"))
            raise InvalidCredentialError("Invalid or expired token")

    @staticmethod
    def _to_claim(payload: Mapping[str, Any]) -> IdentityClaim:
        subject = payload.get("sub")
        location = payload.get("location")
        if not subject or not location:
            raise InvalidCredentialError("Token is missing identity fields")
        try:
            role = resolve_role(payload.get("role") or payload.get("department"))
        except ValueError as exc:
            raise InvalidCredentialError("Token carries an unknown role") from exc

        issued_at = payload.get("iat", payload["exp"])
        return IdentityClaim(
            subject_id=str(subject),
            display_name=str(payload.get("name") or ""),
            role=role,
            location=str(location),
            issued_at=datetime.fromtimestamp(int(issued_at), tz=timezone.utc),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
        )
