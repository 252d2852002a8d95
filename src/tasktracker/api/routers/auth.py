"""Authentication and profile routes backed by the identity provider."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...deps import (
    AccessTokenDependency,
    CurrentIdentityDependency,
    DatabaseSessionDependency,
    IdentityProviderDependency,
)
from ...schemas.auth import (
    AuthPayload,
    LoginRequest,
    ProfileRead,
    ProfileUpdate,
    RefreshRequest,
    RegisterRequest,
)
from ...schemas.envelope import ApiResponse, MessageResponse
from ...services import AuthService, ProfileService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=ApiResponse[AuthPayload],
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def register(
    payload: RegisterRequest,
    provider: IdentityProviderDependency,
    session: DatabaseSessionDependency,
) -> ApiResponse[AuthPayload]:
    result = await AuthService(provider, session).register(
        email=payload.email,
        password=payload.password,
        full_name=payload.full_name,
    )
    return ApiResponse(
        data=AuthPayload.from_session(result.session, full_name=result.full_name),
        message=result.message,
    )


@router.post(
    "/login",
    response_model=ApiResponse[AuthPayload],
    response_model_exclude_none=True,
    summary="Sign in with email and password",
)
async def login(
    payload: LoginRequest,
    provider: IdentityProviderDependency,
    session: DatabaseSessionDependency,
) -> ApiResponse[AuthPayload]:
    identity_session = await AuthService(provider, session).login(
        email=payload.email,
        password=payload.password,
    )
    return ApiResponse(data=AuthPayload.from_session(identity_session))


@router.post("/logout", response_model=MessageResponse, summary="Sign out the current session")
async def logout(
    _: CurrentIdentityDependency,
    token: AccessTokenDependency,
    provider: IdentityProviderDependency,
    session: DatabaseSessionDependency,
) -> MessageResponse:
    await AuthService(provider, session).logout(token)
    return MessageResponse(message="Logged out successfully")


@router.get(
    "/profile",
    response_model=ApiResponse[ProfileRead],
    summary="Return the caller's profile, creating it on first access",
)
async def read_profile(
    identity: CurrentIdentityDependency,
    session: DatabaseSessionDependency,
) -> ApiResponse[ProfileRead]:
    profile = await ProfileService(session).get_or_create(identity)
    return ApiResponse(data=ProfileRead.model_validate(profile))


@router.put(
    "/profile",
    response_model=ApiResponse[ProfileRead],
    summary="Update the caller's profile",
)
async def update_profile(
    payload: ProfileUpdate,
    identity: CurrentIdentityDependency,
    session: DatabaseSessionDependency,
) -> ApiResponse[ProfileRead]:
    changes = payload.model_dump(exclude_unset=True)
    profile = await ProfileService(session).update_profile(
        identity,
        full_name=changes.get("full_name"),
        avatar_url=changes.get("avatar_url"),
        clear_avatar="avatar_url" in changes and changes["avatar_url"] is None,
    )
    return ApiResponse(data=ProfileRead.model_validate(profile), message="Profile updated successfully")


@router.post(
    "/refresh",
    response_model=ApiResponse[AuthPayload],
    response_model_exclude_none=True,
    summary="Exchange a refresh token for a new session",
)
async def refresh(
    provider: IdentityProviderDependency,
    session: DatabaseSessionDependency,
    payload: RefreshRequest | None = None,
) -> ApiResponse[AuthPayload]:
    identity_session = await AuthService(provider, session).refresh(
        payload.refresh_token if payload else None
    )
    return ApiResponse(data=AuthPayload.from_session(identity_session))
