from manatomb.models.account import Session, User
from manatomb.models.card import Card
from manatomb.models.deck import DEFAULT_FORMAT, Deck, DeckLine, total_cards
from manatomb.models.failure import (
    ApiResponse,
    DuplicateEmailError,
    FailureDetail,
    FailureKind,
    InvalidCredentialsError,
    InvalidPasswordError,
    KnownError,
    LookupUnavailableError,
    NotAuthenticatedError,
    NotFoundError,
    OutcomeType,
    UnexpectedError,
    ValidationError,
)

__all__ = [
    "ApiResponse",
    "Card",
    "DEFAULT_FORMAT",
    "Deck",
    "DeckLine",
    "DuplicateEmailError",
    "FailureDetail",
    "FailureKind",
    "InvalidCredentialsError",
    "InvalidPasswordError",
    "KnownError",
    "LookupUnavailableError",
    "NotAuthenticatedError",
    "NotFoundError",
    "OutcomeType",
    "Session",
    "UnexpectedError",
    "User",
    "ValidationError",
    "total_cards",
]
