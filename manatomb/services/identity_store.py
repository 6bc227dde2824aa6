"""
Identity and Session Store.

Creates and authenticates users and issues opaque, expiring session tokens.

INVARIANTS:
1. Passwords are stored only as one-way hashes and are never logged
2. Authentication failure looks the same for unknown email and wrong password
3. A session is valid strictly before its expiry; expired rows are rejected, not swept
4. Account deletion removes lines, decks, sessions and the user in one transaction
"""

import asyncio
import logging
import re
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta

from passlib.context import CryptContext
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from manatomb.config import settings
from manatomb.db.database import as_utc, transaction, utcnow
from manatomb.models.account import Session, User
from manatomb.models.db import DeckCardDB, DeckDB, SessionDB, UserDB
from manatomb.models.failure import (
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidPasswordError,
    NotFoundError,
    UnexpectedError,
)
from manatomb.services.validation import (
    normalize_email,
    validate_display_name,
    validate_password,
)

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# secrets.token_urlsafe alphabet; anything else is malformed
TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,128}$")

TOKEN_BYTES = 32


def new_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def user_from_row(row: UserDB) -> User:
    """Convert a database user to a domain model."""
    return User(id=row.id, email=row.email, display_name=row.display_name)


class IdentityStore:
    """
    Users, credentials and sessions.

    Args:
        session_factory: Store session factory; one transaction per call
        clock: Returns the current aware datetime (UTC)
        session_ttl: Default lifetime of new sessions
        password_context: passlib context used for hashing and verification
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = utcnow,
        session_ttl: timedelta | None = None,
        password_context: CryptContext | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock
        self._session_ttl = session_ttl or timedelta(hours=settings.session_ttl_hours)
        self._pwd = password_context or pwd_context

    # --- Password hashing ---

    async def _hash(self, password: str) -> str:
        return await asyncio.to_thread(self._pwd.hash, password)

    async def _verify(self, password: str, password_hash: str) -> bool:
        return await asyncio.to_thread(self._pwd.verify, password, password_hash)

    # --- Users ---

    async def create_user(self, email: str, display_name: str, password: str) -> User:
        """
        Register a new user.

        Raises:
            ValidationError: Missing or malformed input
            DuplicateEmailError: Email already registered
        """
        email = normalize_email(email)
        display_name = validate_display_name(display_name)
        validate_password(password)

        password_hash = await self._hash(password)

        try:
            async with transaction(self._session_factory, raise_conflicts=True) as session:
                existing = await session.execute(select(UserDB.id).where(UserDB.email == email))
                if existing.scalar_one_or_none() is not None:
                    raise DuplicateEmailError()

                row = UserDB(email=email, display_name=display_name, password_hash=password_hash)
                session.add(row)
                await session.flush()
                user = user_from_row(row)
        except IntegrityError as e:
            # Lost a race against a concurrent signup for the same email
            raise DuplicateEmailError() from e

        logger.info("Created user id=%d email=%s", user.id, user.email)
        return user

    async def authenticate(self, email: str, password: str) -> User:
        """
        Check credentials.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password, indistinguishably
        """
        email = email.strip().lower()

        async with transaction(self._session_factory) as session:
            result = await session.execute(select(UserDB).where(UserDB.email == email))
            row = result.scalar_one_or_none()
            user = user_from_row(row) if row else None
            password_hash = row.password_hash if row else None

        if user is None or password_hash is None:
            # Spend the same hashing time as a real check
            await asyncio.to_thread(self._pwd.dummy_verify)
            logger.info("Login failed for %s", email)
            raise InvalidCredentialsError()

        if not password or not await self._verify(password, password_hash):
            logger.info("Login failed for %s", email)
            raise InvalidCredentialsError()

        return user

    async def update_profile(self, user: User, display_name: str) -> User:
        display_name = validate_display_name(display_name)

        async with transaction(self._session_factory) as session:
            row = await session.get(UserDB, user.id)
            if row is None:
                raise NotFoundError("User not found.")
            row.display_name = display_name
            await session.flush()
            return user_from_row(row)

    async def change_password(self, user: User, current_password: str, new_password: str) -> None:
        """
        Replace the stored hash after verifying the current password.

        Raises:
            ValidationError: New password too short
            InvalidPasswordError: Current password does not verify
        """
        validate_password(new_password, field="new_password")

        async with transaction(self._session_factory) as session:
            row = await session.get(UserDB, user.id)
            if row is None:
                raise NotFoundError("User not found.")
            current_hash = row.password_hash

        if not current_password or not await self._verify(current_password, current_hash):
            raise InvalidPasswordError()

        new_hash = await self._hash(new_password)

        async with transaction(self._session_factory) as session:
            row = await session.get(UserDB, user.id)
            if row is None:
                raise NotFoundError("User not found.")
            row.password_hash = new_hash

        logger.info("Password changed for user id=%d", user.id)

    async def delete_account(self, user: User) -> None:
        """Remove the user with all sessions, decks and deck lines."""
        async with transaction(self._session_factory) as session:
            deck_ids = select(DeckDB.id).where(DeckDB.user_id == user.id)
            await session.execute(delete(DeckCardDB).where(DeckCardDB.deck_id.in_(deck_ids)))
            await session.execute(delete(DeckDB).where(DeckDB.user_id == user.id))
            await session.execute(delete(SessionDB).where(SessionDB.user_id == user.id))
            await session.execute(delete(UserDB).where(UserDB.id == user.id))

        logger.info("Deleted account id=%d", user.id)

    # --- Sessions ---

    async def create_session(self, user: User, ttl: timedelta | None = None) -> Session:
        """
        Issue a new random session token for the user.

        A token collision is retried once with a fresh token; a second
        collision means the random source is broken and raises UnexpectedError.
        """
        now = self._clock()
        expires_at = now + (ttl or self._session_ttl)

        for _ in range(2):
            session_obj = Session(
                token=new_token(),
                user_id=user.id,
                created_at=now,
                expires_at=expires_at,
            )
            try:
                async with transaction(self._session_factory, raise_conflicts=True) as session:
                    session.add(
                        SessionDB(
                            token=session_obj.token,
                            user_id=session_obj.user_id,
                            created_at=session_obj.created_at,
                            expires_at=session_obj.expires_at,
                        )
                    )
            except IntegrityError:
                logger.warning("Session token collision for user id=%d", user.id)
                continue
            return session_obj

        raise UnexpectedError()

    async def resolve_session(self, token: str | None) -> User | None:
        """
        Map a session token to its user.

        Returns None for absent, malformed, unknown or expired tokens; the
        caller treats that as an anonymous request.
        """
        if not token or not TOKEN_PATTERN.match(token):
            return None

        now = self._clock()
        async with transaction(self._session_factory) as session:
            result = await session.execute(
                select(SessionDB, UserDB)
                .join(UserDB, UserDB.id == SessionDB.user_id)
                .where(SessionDB.token == token)
            )
            row = result.first()
            if row is None:
                return None

            session_row, user_row = row
            if now >= as_utc(session_row.expires_at):
                return None
            return user_from_row(user_row)

    async def delete_session(self, token: str | None) -> None:
        """Remove a session. Unknown tokens are ignored."""
        if not token or not TOKEN_PATTERN.match(token):
            return

        async with transaction(self._session_factory) as session:
            await session.execute(delete(SessionDB).where(SessionDB.token == token))
