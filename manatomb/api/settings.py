"""
Account settings API endpoints.

Profile updates, password changes and account deletion.
"""

from fastapi import APIRouter, Response
from pydantic import BaseModel

from manatomb.api.auth import UserResponse, clear_session_cookie
from manatomb.api.dependencies import AuthenticatedUser, Identity
from manatomb.models.failure import ValidationError

router = APIRouter(prefix="/settings", tags=["settings"])


class ProfileUpdateRequest(BaseModel):
    display_name: str = ""


class PasswordChangeRequest(BaseModel):
    current_password: str = ""
    new_password: str = ""
    confirm_password: str = ""


class MessageResponse(BaseModel):
    message: str


@router.get("", response_model=UserResponse)
@router.get("/profile", response_model=UserResponse)
async def show_settings(user: AuthenticatedUser) -> UserResponse:
    return UserResponse.from_user(user)


@router.post("/profile", response_model=UserResponse)
async def update_profile(
    body: ProfileUpdateRequest,
    user: AuthenticatedUser,
    identity: Identity,
) -> UserResponse:
    updated = await identity.update_profile(user, body.display_name)
    return UserResponse.from_user(updated)


@router.post("/password", response_model=MessageResponse)
async def change_password(
    body: PasswordChangeRequest,
    user: AuthenticatedUser,
    identity: Identity,
) -> MessageResponse:
    """
    Change the password.

    The new password must be entered twice; returns 400 when the current
    password does not verify.
    """
    if not body.new_password or not body.confirm_password:
        raise ValidationError(
            "New password and confirmation are required.", field="new_password"
        )
    if body.new_password != body.confirm_password:
        raise ValidationError(
            "New password and confirmation do not match.", field="confirm_password"
        )

    await identity.change_password(user, body.current_password, body.new_password)
    return MessageResponse(message="Password changed.")


@router.delete("/account", response_model=MessageResponse)
async def delete_account(
    response: Response,
    user: AuthenticatedUser,
    identity: Identity,
) -> MessageResponse:
    """Delete the account with all its decks, then log out."""
    await identity.delete_account(user)
    clear_session_cookie(response)
    return MessageResponse(message="Account deleted.")
