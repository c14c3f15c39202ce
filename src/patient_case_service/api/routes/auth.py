"""Authentication routes for the fixed clinician identity."""

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from patient_case_service.api.dependencies import TOKEN_COOKIE, get_authenticator, read_token
from patient_case_service.config import settings
from patient_case_service.core.exceptions import UnauthorizedException
from patient_case_service.infrastructure.auth import Authenticator
from patient_case_service.models import (
    AuthStatusResponse,
    AuthUser,
    LoginRequest,
    LoginResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"model": LoginResponse, "description": "Invalid credentials"}},
)
async def login(
    credentials: LoginRequest,
    response: Response,
    authenticator: Authenticator = Depends(get_authenticator),
):
    """Exchange credentials for a session token cookie."""
    token = authenticator.login(credentials.email, credentials.password)
    if token is None:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content=LoginResponse(ok=False, message="Invalid credentials").model_dump(),
        )

    response.set_cookie(
        TOKEN_COOKIE,
        token,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        max_age=settings.token_ttl_minutes * 60,
    )
    logger.info(f"User {credentials.email} logged in")
    return LoginResponse(ok=True, message="Logged in")


@router.post("/logout", response_model=LoginResponse)
async def logout(response: Response):
    """Clear the session token cookie."""
    response.delete_cookie(TOKEN_COOKIE, httponly=True, samesite="lax")
    return LoginResponse(ok=True, message="Logged out")


@router.get("/me", response_model=AuthStatusResponse)
async def me(
    request: Request,
    authenticator: Authenticator = Depends(get_authenticator),
):
    """Report whether the caller holds a valid session token."""
    try:
        email = authenticator.verify(read_token(request))
    except UnauthorizedException:
        return AuthStatusResponse(authenticated=False)
    return AuthStatusResponse(authenticated=True, user=AuthUser(email=email))
