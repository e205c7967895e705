"""Render domain errors as HTTP responses."""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

from maintdesk.errors import InvalidCredentialError, MaintDeskError, UnauthenticatedError

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"


def wants_json(request: Request) -> bool:
    """Whether the caller is a programmatic client rather than a browser navigation."""

    accept = request.headers.get("accept", "").lower()
    content_type = request.headers.get("content-type", "").lower()
    requested_with = request.headers.get("x-requested-with", "").lower()
    return (
        "application/json" in accept
        or "application/json" in content_type
        or requested_with == "xmlhttprequest"
        or "authorization" in request.headers
    )


async def handle_domain_error(request: Request, exc: MaintDeskError) -> Response:
    if isinstance(exc, (UnauthenticatedError, InvalidCredentialError)):
        if not wants_json(request):
            return RedirectResponse(url=LOGIN_PATH, status_code=303)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": str(exc), "code": exc.code},
            headers={"WWW-Authenticate": "Bearer"},
        )

    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc), "code": exc.code})


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MaintDeskError, handle_domain_error)
