"""
Card search API endpoints.

Catalog search with color identity and type filters, commander search, and
adding a search result to one of the caller's decks.
"""

from typing import Annotated

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from manatomb.api.decks import CardResponse, DeckResponse, LineChangeResponse
from manatomb.api.dependencies import AuthenticatedUser, CurrentUser, Ledger, Resolver
from manatomb.services.catalog_resolver import build_search_query

router = APIRouter(prefix="/cards", tags=["cards"])
commanders_router = APIRouter(prefix="/commanders", tags=["cards"])


class CardSearchResponse(BaseModel):
    """Search results plus the caller's decks as add-to-deck targets."""

    query: str
    has_searched: bool
    results: list[CardResponse] = Field(default_factory=list)
    count: int = 0
    decks: list[DeckResponse] = Field(default_factory=list)


class CommanderSearchResponse(BaseModel):
    query: str
    results: list[CardResponse] = Field(default_factory=list)
    count: int = 0


class AddToDeckRequest(BaseModel):
    deck_id: int
    card_name: str = ""


@router.get("/search", response_model=CardSearchResponse)
async def search_cards(
    user: CurrentUser,
    ledger: Ledger,
    resolver: Resolver,
    q: str = "",
    color: Annotated[list[str] | None, Query()] = None,
    type_filter: Annotated[str, Query(alias="type")] = "",
) -> CardSearchResponse:
    """
    Search the catalog.

    A filter-only search (no q) is allowed. Anonymous callers can search;
    logged-in callers also get their decks back.
    """
    colors = color or []
    has_searched = build_search_query(q, colors, type_filter) is not None

    results = await resolver.search(q, colors, type_filter) if has_searched else []

    decks: list[DeckResponse] = []
    if user is not None:
        decks = [DeckResponse.from_deck(d) for d in await ledger.list_decks(user)]

    return CardSearchResponse(
        query=q.strip(),
        has_searched=has_searched,
        results=[CardResponse.from_card(c) for c in results],
        count=len(results),
        decks=decks,
    )


@router.post("/add-to-deck", response_model=LineChangeResponse)
async def add_to_deck(
    body: AddToDeckRequest,
    user: AuthenticatedUser,
    ledger: Ledger,
    resolver: Resolver,
) -> LineChangeResponse:
    """Add one copy of a searched card to one of the caller's decks."""
    line = await ledger.add_card_by_name(user, body.deck_id, body.card_name, resolver)
    return LineChangeResponse(
        deck_id=body.deck_id,
        card_id=line.card_id,
        card_name=line.card_name,
        quantity=line.quantity,
    )


@commanders_router.get("/search", response_model=CommanderSearchResponse)
async def search_commanders(resolver: Resolver, q: str = "") -> CommanderSearchResponse:
    results = await resolver.search_commanders(q)
    return CommanderSearchResponse(
        query=q.strip(),
        results=[CardResponse.from_card(c) for c in results],
        count=len(results),
    )
