"""Routes handling session-based authentication for API clients."""

from __future__ import annotations

from fastapi import APIRouter, Request, Response, status

from ...core.session import login_user, logout_user
from ...deps import ApiUserDependency, DatabaseSessionDependency
from ...schemas import LoginRequest, SignupRequest, UserPublic
from ...services import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/signup",
    response_model=UserPublic,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user account",
)
async def signup(payload: SignupRequest, session: DatabaseSessionDependency) -> UserPublic:
    service = AuthService(session)
    return await service.signup(payload)


@router.post(
    "/login",
    response_model=UserPublic,
    status_code=status.HTTP_200_OK,
    summary="Authenticate using email and password and start a session",
)
async def login(
    payload: LoginRequest,
    request: Request,
    session: DatabaseSessionDependency,
) -> UserPublic:
    service = AuthService(session)
    user = await service.login(payload.email, payload.password)
    login_user(request.session, user.id)
    return user


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="End the current session",
)
async def logout(request: Request) -> Response:
    logout_user(request.session)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=UserPublic, summary="Return the current user's profile")
async def me(current_user: ApiUserDependency) -> UserPublic:
    return current_user
