"""
Deck Ledger.

Owns deck metadata and the deck-to-card quantity relation.

INVARIANTS:
1. A deck is visible to and mutable by its owner only; anyone else gets NotFound
2. A line exists if and only if its quantity is >= 1; zero is never stored
3. Each quantity change is a single read-modify-write transaction
"""

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from manatomb.config import RECENT_DECKS_LIMIT
from manatomb.db.database import as_utc, transaction, utcnow
from manatomb.models.account import User
from manatomb.models.db import CardDB, DeckCardDB, DeckDB
from manatomb.models.deck import DEFAULT_FORMAT, Deck, DeckLine
from manatomb.models.failure import NotFoundError, UnexpectedError, ValidationError
from manatomb.services.catalog_resolver import CatalogResolver
from manatomb.services.validation import validate_deck_name

logger = logging.getLogger(__name__)


class DeckNotFoundError(NotFoundError):
    """Deck does not exist or belongs to someone else."""

    def __init__(self) -> None:
        super().__init__(message="Deck not found.")


def deck_from_row(row: DeckDB) -> Deck:
    """Convert a database deck to a domain model."""
    return Deck(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        description=row.description or "",
        format=row.format or DEFAULT_FORMAT,
        commander_name=row.commander_name or "",
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


async def _owned_deck(session: AsyncSession, owner: User, deck_id: int) -> DeckDB:
    """Load a deck by (id, owner). A foreign deck is reported as missing."""
    result = await session.execute(
        select(DeckDB).where(DeckDB.id == deck_id, DeckDB.user_id == owner.id)
    )
    deck = result.scalar_one_or_none()
    if deck is None:
        raise DeckNotFoundError()
    return deck


async def _locked_line(session: AsyncSession, deck_id: int, card_id: int) -> DeckCardDB | None:
    """The line for (deck, card), locked for the rest of the transaction."""
    result = await session.execute(
        select(DeckCardDB)
        .where(DeckCardDB.deck_id == deck_id, DeckCardDB.card_id == card_id)
        .with_for_update()
    )
    return result.scalar_one_or_none()


class DeckLedger:
    """Deck CRUD and card quantity changes for an authenticated owner."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    # --- Deck metadata ---

    async def create_deck(
        self,
        owner: User,
        name: str,
        description: str = "",
        commander_name: str = "",
        format_name: str = DEFAULT_FORMAT,
    ) -> Deck:
        name = validate_deck_name(name)
        now = self._clock()

        async with transaction(self._session_factory) as session:
            row = DeckDB(
                user_id=owner.id,
                name=name,
                description=description.strip(),
                format=format_name.strip() or DEFAULT_FORMAT,
                commander_name=commander_name.strip(),
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            await session.flush()
            deck = deck_from_row(row)

        logger.info("User %d created deck %d (%s)", owner.id, deck.id, deck.name)
        return deck

    async def list_decks(self, owner: User, limit: int | None = None) -> list[Deck]:
        """Owner's decks, most recently updated first."""
        stmt = (
            select(DeckDB)
            .where(DeckDB.user_id == owner.id)
            .order_by(DeckDB.updated_at.desc(), DeckDB.id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        async with transaction(self._session_factory) as session:
            result = await session.execute(stmt)
            return [deck_from_row(row) for row in result.scalars().all()]

    async def recent_decks(self, owner: User, limit: int = RECENT_DECKS_LIMIT) -> list[Deck]:
        return await self.list_decks(owner, limit=limit)

    async def get_deck(self, owner: User, deck_id: int) -> Deck:
        """
        Get a deck by id for its owner.

        Raises:
            DeckNotFoundError: Missing, or owned by another user
        """
        async with transaction(self._session_factory) as session:
            return deck_from_row(await _owned_deck(session, owner, deck_id))

    async def update_deck(
        self,
        owner: User,
        deck_id: int,
        name: str,
        description: str = "",
        commander_name: str = "",
    ) -> Deck:
        name = validate_deck_name(name)

        async with transaction(self._session_factory) as session:
            row = await _owned_deck(session, owner, deck_id)
            row.name = name
            row.description = description.strip()
            row.commander_name = commander_name.strip()
            row.updated_at = self._clock()
            await session.flush()
            return deck_from_row(row)

    async def delete_deck(self, owner: User, deck_id: int) -> None:
        """Delete a deck and all its lines."""
        async with transaction(self._session_factory) as session:
            row = await _owned_deck(session, owner, deck_id)
            await session.execute(delete(DeckCardDB).where(DeckCardDB.deck_id == row.id))
            await session.execute(delete(DeckDB).where(DeckDB.id == row.id))

        logger.info("User %d deleted deck %d", owner.id, deck_id)

    # --- Card lines ---

    async def apply_delta(self, owner: User, deck_id: int, card_id: int, delta: int) -> int:
        """
        Adjust a card's quantity in a deck.

        The line is removed once the quantity would drop to zero or below,
        and removing an absent line is not an error. When a concurrent first
        insert of the same line wins, the change is re-applied once on top
        of the committed row.

        Returns:
            The quantity after the change, 0 when no line remains

        Raises:
            ValidationError: delta is zero
            DeckNotFoundError: Deck missing or not owned by owner
            NotFoundError: Adding a card that is not stored locally
            UnexpectedError: The line kept conflicting
        """
        if delta == 0:
            raise ValidationError("Quantity change must not be zero.", field="delta")

        for _ in range(2):
            try:
                return await self._apply_delta_once(owner, deck_id, card_id, delta)
            except IntegrityError:
                logger.info(
                    "Deck %d card %d was inserted concurrently, retrying", deck_id, card_id
                )

        raise UnexpectedError()

    async def _apply_delta_once(self, owner: User, deck_id: int, card_id: int, delta: int) -> int:
        async with transaction(self._session_factory, raise_conflicts=True) as session:
            deck = await _owned_deck(session, owner, deck_id)

            line = await _locked_line(session, deck_id, card_id)
            current = line.quantity if line else 0
            new_quantity = current + delta

            if new_quantity <= 0:
                if line is not None:
                    await session.delete(line)
                new_quantity = 0
            elif line is None:
                if await session.get(CardDB, card_id) is None:
                    raise NotFoundError(message="Card not found.")
                session.add(DeckCardDB(deck_id=deck_id, card_id=card_id, quantity=new_quantity))
            else:
                line.quantity = new_quantity

            deck.updated_at = self._clock()

        logger.debug(
            "Deck %d card %d: %d -> %d (delta %+d)",
            deck_id,
            card_id,
            current,
            new_quantity,
            delta,
        )
        return new_quantity

    async def list_lines(self, owner: User, deck_id: int) -> list[DeckLine]:
        """Cards in a deck, sorted by card name."""
        async with transaction(self._session_factory) as session:
            await _owned_deck(session, owner, deck_id)
            result = await session.execute(
                select(DeckCardDB.card_id, CardDB.name, DeckCardDB.quantity)
                .join(CardDB, CardDB.id == DeckCardDB.card_id)
                .where(DeckCardDB.deck_id == deck_id)
                .order_by(CardDB.name.asc(), DeckCardDB.card_id.asc())
            )
            return [
                DeckLine(card_id=card_id, card_name=name, quantity=quantity)
                for card_id, name, quantity in result.all()
            ]

    async def add_card_by_name(
        self,
        owner: User,
        deck_id: int,
        card_name: str,
        resolver: CatalogResolver,
    ) -> DeckLine:
        """
        Resolve a card name and add one copy to the deck.

        Ownership is checked before any catalog traffic, so a foreign deck
        never triggers a lookup.

        Returns:
            The line after the change

        Raises:
            DeckNotFoundError: Deck missing or not owned by owner
            CardNotFoundError: No card with that exact name
            LookupUnavailableError: The catalog could not answer
        """
        await self.get_deck(owner, deck_id)
        card = await resolver.resolve(card_name)
        if card.id is None:
            raise NotFoundError(message="Card not found.")
        quantity = await self.apply_delta(owner, deck_id, card.id, 1)
        return DeckLine(card_id=card.id, card_name=card.name, quantity=quantity)
