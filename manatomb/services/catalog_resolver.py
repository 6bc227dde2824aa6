"""
Catalog Resolver.

Resolves card names to local card records, consulting Scryfall only when the
local store does not know the name yet.

INVARIANTS:
1. The local store is authoritative once a name is stored; it is never refreshed
2. Resolution uses an EXACT-name catalog query, never a fuzzy one
3. A name the catalog does not know is never written locally (no negative caching)
4. Search is read-only and keeps the catalog's ordering
"""

import logging
from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from manatomb.db.database import transaction
from manatomb.models.card import Card
from manatomb.models.db import CardDB
from manatomb.models.failure import LookupUnavailableError, NotFoundError, UnexpectedError
from manatomb.services.scryfall import ScryfallClient, exact_name_query

logger = logging.getLogger(__name__)

# Color identity letters accepted by the search filter, in WUBRG order
COLOR_LETTERS = ("W", "U", "B", "R", "G")


class CardNotFoundError(NotFoundError):
    """No local record and no exact catalog match for a card name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            message=f"No card found named “{name}”.",
            suggestion="Please check the spelling.",
        )


def card_from_row(row: CardDB) -> Card:
    """Convert a database card to a domain model."""
    return Card(
        id=row.id,
        name=row.name,
        mana_cost=row.mana_cost,
        type_line=row.type_line,
        oracle_text=row.oracle_text,
        image_uri=row.image_uri,
    )


def build_search_query(
    query: str,
    colors: Sequence[str] = (),
    type_filter: str = "",
) -> str | None:
    """
    Assemble a Scryfall search expression from form inputs.

    A filter-only search (no name) matches everything with "*".
    Unknown color letters are dropped.

    Returns:
        The expression, or None when nothing was asked for
    """
    query = query.strip()
    type_filter = type_filter.strip()

    letters: list[str] = []
    for color in colors:
        upper = color.strip().upper()
        if upper in COLOR_LETTERS and upper not in letters:
            letters.append(upper)

    has_filters = bool(colors) or bool(type_filter)
    if not query and not has_filters:
        return None

    expression = query or "*"
    if letters:
        expression += " id>=" + "".join(letters)
    if type_filter:
        expression += " t:" + type_filter
    return expression


class CatalogResolver:
    """
    Resolves card names against the local store, then the catalog.

    Dependencies are injected so tests can supply an isolated store and a
    mocked catalog.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        catalog: ScryfallClient,
    ) -> None:
        self._session_factory = session_factory
        self._catalog = catalog

    async def get_local(self, name: str) -> Card | None:
        """
        Look up a card by name in the local store, ignoring case.

        The catalog matches exact names case-insensitively, so "sol ring" must
        find the stored "Sol Ring" instead of asking the catalog again.
        """
        async with transaction(self._session_factory) as session:
            result = await session.execute(
                select(CardDB).where(func.lower(CardDB.name) == name.lower())
            )
            row = result.scalar_one_or_none()
            return card_from_row(row) if row else None

    async def resolve(self, name: str) -> Card:
        """
        Resolve a card name to a stored card.

        Args:
            name: Card name as typed by the user

        Returns:
            The stored card

        Raises:
            CardNotFoundError: Empty name, or no exact catalog match
            LookupUnavailableError: The catalog could not answer
        """
        name = name.strip()
        if not name:
            raise CardNotFoundError(name)

        existing = await self.get_local(name)
        if existing is not None:
            return existing

        logger.info("Card %r not stored locally, asking the catalog", name)
        results = await self._catalog.search(exact_name_query(name))
        if not results:
            logger.info("Catalog has no card named %r", name)
            raise CardNotFoundError(name)

        return await self._store(results[0])

    async def _store(self, card: Card) -> Card:
        """
        Insert a catalog card.

        A concurrent resolver may insert the same name first; the unique
        constraint rejects our insert and the stored row is returned instead.
        """
        try:
            async with transaction(self._session_factory, raise_conflicts=True) as session:
                row = CardDB(
                    name=card.name,
                    mana_cost=card.mana_cost,
                    type_line=card.type_line,
                    oracle_text=card.oracle_text,
                    image_uri=card.image_uri,
                )
                session.add(row)
                await session.flush()
                stored = card_from_row(row)
        except IntegrityError:
            logger.info("Card %r was stored concurrently, re-reading", card.name)
            existing = await self.get_local(card.name)
            if existing is None:
                raise UnexpectedError() from None
            return existing

        logger.info("Stored card %r as id %d", stored.name, stored.id)
        return stored

    async def search(
        self,
        query: str,
        colors: Sequence[str] = (),
        type_filter: str = "",
    ) -> list[Card]:
        """
        Search the catalog. Never writes to the local store.

        Returns:
            Matches in catalog order; empty when nothing was asked or matched

        Raises:
            LookupUnavailableError: The catalog could not answer
        """
        expression = build_search_query(query, colors, type_filter)
        if expression is None:
            return []
        return await self._catalog.search(expression)

    async def search_commanders(self, query: str) -> list[Card]:
        """Search restricted to cards that can be a commander."""
        query = query.strip()
        if not query:
            return []
        return await self._catalog.search(f"{query} is:commander")

    async def lookup_commander(self, name: str) -> Card | None:
        """
        Best-effort commander details for a deck page.

        A catalog failure is logged and yields None rather than failing the page.
        """
        name = name.strip()
        if not name:
            return None
        try:
            results = await self._catalog.search(f"{name} is:commander")
        except LookupUnavailableError as e:
            logger.warning("Commander lookup for %r failed: %s", name, e.detail)
            return None
        return results[0] if results else None
