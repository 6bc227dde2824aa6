"""
Mana Tomb services.

Catalog resolution, deck ledger and identity/session management.
"""

from manatomb.services.catalog_resolver import (
    COLOR_LETTERS,
    CardNotFoundError,
    CatalogResolver,
    build_search_query,
)
from manatomb.services.deck_ledger import DeckLedger, DeckNotFoundError
from manatomb.services.identity_store import IdentityStore, pwd_context
from manatomb.services.scryfall import ScryfallClient, exact_name_query, parse_card

__all__ = [
    "COLOR_LETTERS",
    "CardNotFoundError",
    "CatalogResolver",
    "DeckLedger",
    "DeckNotFoundError",
    "IdentityStore",
    "ScryfallClient",
    "build_search_query",
    "exact_name_query",
    "parse_card",
    "pwd_context",
]
