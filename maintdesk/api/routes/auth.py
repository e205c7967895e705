from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, Field, field_validator

from maintdesk.dependencies.auth import get_token_codec
from maintdesk.dependencies.services import UserDirectoryDep
from maintdesk.errors import ConflictError
from maintdesk.identity.claims import Role
from maintdesk.identity.passwords import MAX_PASSWORD_BYTES, fits_bcrypt, hash_password, verify_password
from maintdesk.identity.tokens import TokenCodec, resolve_role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

DASHBOARD_PATHS: dict[Role, str] = {
    Role.ADMIN: "/dashboard/admin",
    Role.TECHNICIAN: "/dashboard/technician",
    Role.PLANNER: "/dashboard/planner",
    Role.NORMAL_USER: "/dashboard/user",
}


class LoginRequest(BaseModel):
    subject_id: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1, max_length=256)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: Role
    location: str
    redirect_to: str


class RegistrationCheckRequest(BaseModel):
    subject_id: str = Field(..., min_length=1, max_length=100)


class RegistrationCheckResponse(BaseModel):
    subject_id: str
    display_name: str
    location: str
    registered: bool


class RegistrationCompleteRequest(BaseModel):
    subject_id: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=8, max_length=72)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if not fits_bcrypt(value):
            raise ValueError(f"must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded")
        return value


CodecDep = Annotated[TokenCodec, Depends(get_token_codec)]


def _cookie_name(request: Request) -> str:
    return getattr(request.app.state, "auth_cookie_name", "token")


@router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    users: UserDirectoryDep,
    codec: CodecDep,
) -> LoginResponse:
    subject_id = payload.subject_id.strip()
    user = await users.get_user(subject_id)
    if user is None or not user.is_registered:
        raise HTTPException(status_code=401, detail="Invalid Global ID or unregistered user")
    if not verify_password(payload.password, user.credential_hash):
        raise HTTPException(status_code=401, detail="Incorrect password")

    try:
        role = resolve_role(user.role)
    except ValueError as exc:
        logger.error("User %s has unknown role %r", user.subject_id, user.role)
        raise HTTPException(status_code=403, detail="Account has no usable role") from exc

    token = codec.issue(user.subject_id, user.display_name, role, user.location)
    response.set_cookie(
        _cookie_name(request),
        token,
        httponly=True,
        secure=bool(getattr(request.app.state, "auth_cookie_secure", False)),
        samesite="lax",
        max_age=int(codec.ttl.total_seconds()),
    )
    logger.info("Issued credential for %s", user.subject_id)
    return LoginResponse(
        access_token=token,
        role=role,
        location=user.location,
        redirect_to=DASHBOARD_PATHS[role],
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(request: Request, response: Response) -> None:
    response.delete_cookie(_cookie_name(request))


@router.post("/register/check", response_model=RegistrationCheckResponse)
async def check_registration(payload: RegistrationCheckRequest, users: UserDirectoryDep) -> RegistrationCheckResponse:
    user = await users.get_user(payload.subject_id.strip())
    if user is None:
        raise HTTPException(status_code=404, detail="Global ID not found. Contact admin.")
    return RegistrationCheckResponse(
        subject_id=user.subject_id,
        display_name=user.display_name,
        location=user.location,
        registered=user.is_registered,
    )


@router.post("/register/complete", status_code=status.HTTP_204_NO_CONTENT)
async def complete_registration(payload: RegistrationCompleteRequest, users: UserDirectoryDep) -> None:
    subject_id = payload.subject_id.strip()
    user = await users.get_user(subject_id)
    if user is None:
        raise HTTPException(status_code=404, detail="Global ID not found. Contact admin.")
    if user.is_registered or not await users.set_credential(subject_id, hash_password(payload.password)):
        raise ConflictError("Already registered. Please login.")
    logger.info("Registration completed for %s", subject_id)
