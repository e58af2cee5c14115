"""Sign-up, sign-in, sign-out and profile routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response, status

from taskboard.api.deps import get_authenticated_session, get_session_provider
from taskboard.api.schemas.auth import (
    ProfileUpdateRequest,
    SessionResponse,
    SignInRequest,
    SignUpRequest,
    UserResponse,
)
from taskboard.core.errors import UnauthenticatedError
from taskboard.services.session.sql import SqlSessionProvider

router = APIRouter(prefix="/auth", tags=["auth"])


def _session_response(provider: SqlSessionProvider, http_request: Request) -> SessionResponse:
    return SessionResponse(
        user=UserResponse.model_validate(provider.user),
        access_token=provider.access_token or "",
        expires_at=provider.expires_at,
        request_id=getattr(http_request.state, "request_id", None) or "",
    )


@router.post("/signup", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def sign_up(
    payload: SignUpRequest,
    http_request: Request,
    provider: SqlSessionProvider = Depends(get_session_provider),
) -> SessionResponse:
    """Register a user and open a session for them."""
    await provider.sign_up(payload.email, payload.password, payload.name)
    return _session_response(provider, http_request)


@router.post("/signin", response_model=SessionResponse)
async def sign_in(
    payload: SignInRequest,
    http_request: Request,
    provider: SqlSessionProvider = Depends(get_session_provider),
) -> SessionResponse:
    await provider.sign_in(payload.email, payload.password)
    return _session_response(provider, http_request)


@router.post("/signout", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(provider: SqlSessionProvider = Depends(get_authenticated_session)) -> Response:
    """Revoke the caller's token."""
    await provider.sign_out()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=UserResponse)
async def read_profile(provider: SqlSessionProvider = Depends(get_authenticated_session)) -> UserResponse:
    profile = await provider.get_profile()
    if profile is None:
        raise UnauthenticatedError("Session expired")
    return UserResponse.model_validate(profile)


@router.patch("/me", response_model=UserResponse)
async def update_profile(
    payload: ProfileUpdateRequest,
    provider: SqlSessionProvider = Depends(get_authenticated_session),
) -> UserResponse:
    """Change the caller's display name and/or email."""
    profile = await provider.update_profile(name=payload.name, email=payload.email)
    return UserResponse.model_validate(profile)
