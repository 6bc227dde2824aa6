"""
Authentication API endpoints.

Signup, login and logout. The session token travels in an HttpOnly cookie.
"""

import logging

from fastapi import APIRouter, Request, Response, status
from pydantic import BaseModel

from manatomb.api.dependencies import AuthenticatedUser, Identity
from manatomb.config import settings
from manatomb.models.account import Session, User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class UserResponse(BaseModel):
    """Public view of a user. Never includes credentials."""

    id: int
    email: str
    display_name: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(id=user.id, email=user.email, display_name=user.display_name)


class SignupRequest(BaseModel):
    email: str = ""
    display_name: str = ""
    password: str = ""


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class AuthResponse(BaseModel):
    """Response model for signup and login."""

    user: UserResponse
    message: str


class LogoutResponse(BaseModel):
    logged_out: bool = True


def set_session_cookie(response: Response, session: Session) -> None:
    max_age = int((session.expires_at - session.created_at).total_seconds())
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session.token,
        max_age=max(max_age, 0),
        path="/",
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(body: SignupRequest, response: Response, identity: Identity) -> AuthResponse:
    """
    Create an account and log it in.

    Returns 409 if the email is already registered.
    """
    logger.info("Signup attempt for %s", body.email.strip().lower())

    user = await identity.create_user(body.email, body.display_name, body.password)
    session = await identity.create_session(user)
    set_session_cookie(response, session)

    return AuthResponse(
        user=UserResponse.from_user(user),
        message="Account created. Welcome to Mana Tomb!",
    )


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, response: Response, identity: Identity) -> AuthResponse:
    """
    Log in with email and password.

    Returns 401 with the same message for an unknown email or a wrong password.
    """
    user = await identity.authenticate(body.email, body.password)
    session = await identity.create_session(user)
    set_session_cookie(response, session)

    return AuthResponse(user=UserResponse.from_user(user), message="Welcome back!")


@router.post("/logout", response_model=LogoutResponse)
async def logout(request: Request, response: Response, identity: Identity) -> LogoutResponse:
    """End the current session. Safe to call when not logged in."""
    await identity.delete_session(request.cookies.get(settings.session_cookie_name))
    clear_session_cookie(response)
    return LogoutResponse()


@router.get("/me", response_model=UserResponse)
async def me(user: AuthenticatedUser) -> UserResponse:
    """The logged-in user."""
    return UserResponse.from_user(user)
