"""
Home endpoint.

Anonymous callers get an empty landing payload; logged-in callers get their
most recently updated decks.
"""

from fastapi import APIRouter
from pydantic import BaseModel, Field

from manatomb.api.auth import UserResponse
from manatomb.api.decks import DeckResponse
from manatomb.api.dependencies import CurrentUser, Ledger

router = APIRouter(tags=["home"])


class HomeResponse(BaseModel):
    user: UserResponse | None = None
    recent_decks: list[DeckResponse] = Field(default_factory=list)


@router.get("/home", response_model=HomeResponse)
async def home(user: CurrentUser, ledger: Ledger) -> HomeResponse:
    if user is None:
        return HomeResponse()

    decks = await ledger.recent_decks(user)
    return HomeResponse(
        user=UserResponse.from_user(user),
        recent_decks=[DeckResponse.from_deck(d) for d in decks],
    )
