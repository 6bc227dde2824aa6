from dataclasses import dataclass
from datetime import datetime

DEFAULT_FORMAT = "commander"


@dataclass
class Deck:
    """
    A user's deck.

    Attributes:
        id: Store id
        user_id: Owning user
        name: Deck name (required)
        description: Free text
        format: Format tag, "commander" unless set otherwise
        commander_name: Commander card name, empty when unset
    """

    id: int
    user_id: int
    name: str
    description: str
    format: str
    commander_name: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True, slots=True)
class DeckLine:
    """One card in a deck. Existence implies quantity >= 1."""

    card_id: int
    card_name: str
    quantity: int


def total_cards(lines: list[DeckLine]) -> int:
    """Total copies across all lines."""
    return sum(line.quantity for line in lines)
