"""
Deck API endpoints.

Deck CRUD and card quantity changes for the logged-in user. Decks owned by
someone else answer 404, exactly like decks that do not exist.
"""

from datetime import datetime

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from manatomb.api.dependencies import AuthenticatedUser, Ledger, Resolver
from manatomb.models.card import Card
from manatomb.models.deck import Deck, DeckLine, total_cards

router = APIRouter(prefix="/decks", tags=["decks"])


class DeckResponse(BaseModel):
    """Response model for a single deck."""

    id: int
    name: str
    description: str = ""
    format: str
    commander_name: str = ""
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_deck(cls, deck: Deck) -> "DeckResponse":
        return cls(
            id=deck.id,
            name=deck.name,
            description=deck.description,
            format=deck.format,
            commander_name=deck.commander_name,
            created_at=deck.created_at,
            updated_at=deck.updated_at,
        )


class DeckListResponse(BaseModel):
    """Response model for a list of decks."""

    decks: list[DeckResponse]
    count: int


class DeckLineResponse(BaseModel):
    card_id: int
    card_name: str
    quantity: int

    @classmethod
    def from_line(cls, line: DeckLine) -> "DeckLineResponse":
        return cls(card_id=line.card_id, card_name=line.card_name, quantity=line.quantity)


class CardResponse(BaseModel):
    """A catalog card."""

    name: str
    mana_cost: str | None = None
    type_line: str | None = None
    oracle_text: str | None = None
    image_uri: str | None = None

    @classmethod
    def from_card(cls, card: Card) -> "CardResponse":
        return cls(
            name=card.name,
            mana_cost=card.mana_cost,
            type_line=card.type_line,
            oracle_text=card.oracle_text,
            image_uri=card.image_uri,
        )


class DeckDetailResponse(BaseModel):
    """A deck with its cards and, when set, commander details."""

    deck: DeckResponse
    cards: list[DeckLineResponse] = Field(default_factory=list)
    total_cards: int = 0
    commander: CardResponse | None = None


class DeckCreateRequest(BaseModel):
    name: str = ""
    description: str = ""
    commander_name: str = ""


class DeckUpdateRequest(BaseModel):
    name: str = ""
    description: str = ""
    commander_name: str = ""


class AddCardRequest(BaseModel):
    card_name: str = Field(default="", examples=["Sol Ring"])


class LineChangeResponse(BaseModel):
    """Result of a quantity change. quantity 0 means the line was removed."""

    deck_id: int
    card_id: int
    card_name: str | None = None
    quantity: int


class DeleteResponse(BaseModel):
    deck_id: int
    deleted: bool
    message: str = ""


@router.get("", response_model=DeckListResponse)
async def list_decks(user: AuthenticatedUser, ledger: Ledger) -> DeckListResponse:
    """The caller's decks, most recently updated first."""
    decks = [DeckResponse.from_deck(d) for d in await ledger.list_decks(user)]
    return DeckListResponse(decks=decks, count=len(decks))


@router.post("", response_model=DeckResponse, status_code=status.HTTP_201_CREATED)
async def create_deck(
    body: DeckCreateRequest,
    user: AuthenticatedUser,
    ledger: Ledger,
) -> DeckResponse:
    """Create a deck. Returns 400 when the name is missing."""
    deck = await ledger.create_deck(
        user,
        name=body.name,
        description=body.description,
        commander_name=body.commander_name,
    )
    return DeckResponse.from_deck(deck)


@router.get("/{deck_id}", response_model=DeckDetailResponse)
async def show_deck(
    deck_id: int,
    user: AuthenticatedUser,
    ledger: Ledger,
    resolver: Resolver,
) -> DeckDetailResponse:
    """
    A deck with its card list.

    Commander details are best effort; a catalog outage leaves them empty.
    """
    deck = await ledger.get_deck(user, deck_id)
    lines = await ledger.list_lines(user, deck_id)

    commander = None
    if deck.commander_name:
        card = await resolver.lookup_commander(deck.commander_name)
        commander = CardResponse.from_card(card) if card else None

    return DeckDetailResponse(
        deck=DeckResponse.from_deck(deck),
        cards=[DeckLineResponse.from_line(line) for line in lines],
        total_cards=total_cards(lines),
        commander=commander,
    )


@router.put("/{deck_id}", response_model=DeckResponse)
async def update_deck(
    deck_id: int,
    body: DeckUpdateRequest,
    user: AuthenticatedUser,
    ledger: Ledger,
) -> DeckResponse:
    deck = await ledger.update_deck(
        user,
        deck_id,
        name=body.name,
        description=body.description,
        commander_name=body.commander_name,
    )
    return DeckResponse.from_deck(deck)


@router.delete("/{deck_id}", response_model=DeleteResponse)
async def delete_deck(deck_id: int, user: AuthenticatedUser, ledger: Ledger) -> DeleteResponse:
    await ledger.delete_deck(user, deck_id)
    return DeleteResponse(deck_id=deck_id, deleted=True, message="Deck deleted.")


@router.post("/{deck_id}/cards", response_model=LineChangeResponse)
async def add_card(
    deck_id: int,
    body: AddCardRequest,
    user: AuthenticatedUser,
    ledger: Ledger,
    resolver: Resolver,
) -> LineChangeResponse:
    """
    Add one copy of a card by name.

    Returns 404 when no card has that exact name and 503 when the catalog
    cannot be reached.
    """
    line = await ledger.add_card_by_name(user, deck_id, body.card_name, resolver)
    return LineChangeResponse(
        deck_id=deck_id,
        card_id=line.card_id,
        card_name=line.card_name,
        quantity=line.quantity,
    )


@router.post("/{deck_id}/cards/{card_id}/decrement", response_model=LineChangeResponse)
async def decrement_card(
    deck_id: int,
    card_id: int,
    user: AuthenticatedUser,
    ledger: Ledger,
) -> LineChangeResponse:
    """Remove one copy; the line disappears when its quantity reaches zero."""
    quantity = await ledger.apply_delta(user, deck_id, card_id, -1)
    return LineChangeResponse(deck_id=deck_id, card_id=card_id, quantity=quantity)
