"""
SQLAlchemy ORM models for persistent storage.

Rows here are converted to the dataclass models before they leave a service.
"""

from datetime import datetime

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class UserDB(Base):
    """A registered account. Owns its sessions and decks."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    display_name: Mapped[str] = mapped_column(String(64))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    sessions: Mapped[list["SessionDB"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    decks: Mapped[list["DeckDB"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<UserDB(id={self.id}, email={self.email})>"


class SessionDB(Base):
    """
    A login session.

    Expired rows are rejected on lookup and never swept.
    """

    __tablename__ = "sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    token: Mapped[str] = mapped_column(String(128), unique=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    user: Mapped["UserDB"] = relationship(back_populates="sessions")

    def __repr__(self) -> str:
        return f"<SessionDB(id={self.id}, user_id={self.user_id})>"


class CardDB(Base):
    """
    Local copy of a catalog card.

    Written once on first resolution and never refreshed.
    """

    __tablename__ = "cards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    mana_cost: Mapped[str | None] = mapped_column(String(100), nullable=True)
    type_line: Mapped[str | None] = mapped_column(String(255), nullable=True)
    oracle_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_uri: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<CardDB(id={self.id}, name={self.name})>"


# Catalog names are matched case-insensitively; one row per name in any casing
Index("uq_cards_name_lower", func.lower(CardDB.name), unique=True)


class DeckDB(Base):
    """A user's deck."""

    __tablename__ = "decks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, default="")
    format: Mapped[str] = mapped_column(String(50), default="commander")
    commander_name: Mapped[str] = mapped_column(String(255), default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    user: Mapped["UserDB"] = relationship(back_populates="decks")
    lines: Mapped[list["DeckCardDB"]] = relationship(
        back_populates="deck", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<DeckDB(id={self.id}, name={self.name})>"


class DeckCardDB(Base):
    """
    Quantity of one card in one deck.

    A row exists only while quantity >= 1.
    """

    __tablename__ = "deck_cards"
    __table_args__ = (UniqueConstraint("deck_id", "card_id", name="uq_deck_card"),)

    deck_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("decks.id", ondelete="CASCADE"), primary_key=True
    )
    card_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("cards.id", ondelete="CASCADE"), primary_key=True
    )
    quantity: Mapped[int] = mapped_column(Integer)

    deck: Mapped["DeckDB"] = relationship(back_populates="lines")
    card: Mapped["CardDB"] = relationship()

    def __repr__(self) -> str:
        return f"<DeckCardDB(deck={self.deck_id}, card={self.card_id}, qty={self.quantity})>"
