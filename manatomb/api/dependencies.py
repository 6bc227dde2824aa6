"""
FastAPI dependencies wiring services to the request.

Services are built per request from injected factories, so tests override
get_session_factory and get_catalog_client instead of patching globals.
"""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from manatomb.config import settings
from manatomb.db.database import get_session_factory
from manatomb.models.account import User
from manatomb.models.failure import NotAuthenticatedError
from manatomb.services.catalog_resolver import CatalogResolver
from manatomb.services.deck_ledger import DeckLedger
from manatomb.services.identity_store import IdentityStore
from manatomb.services.scryfall import ScryfallClient

SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]


async def get_catalog_client() -> AsyncGenerator[ScryfallClient, None]:
    """One catalog client per request, closed when the request ends."""
    async with ScryfallClient() as client:
        yield client


def get_identity_store(session_factory: SessionFactory) -> IdentityStore:
    return IdentityStore(session_factory)


def get_deck_ledger(session_factory: SessionFactory) -> DeckLedger:
    return DeckLedger(session_factory)


def get_catalog_resolver(
    session_factory: SessionFactory,
    client: Annotated[ScryfallClient, Depends(get_catalog_client)],
) -> CatalogResolver:
    return CatalogResolver(session_factory, client)


Identity = Annotated[IdentityStore, Depends(get_identity_store)]
Ledger = Annotated[DeckLedger, Depends(get_deck_ledger)]
Resolver = Annotated[CatalogResolver, Depends(get_catalog_resolver)]


async def get_current_user(request: Request, identity: Identity) -> User | None:
    """The session cookie's user, or None for an anonymous request."""
    token = request.cookies.get(settings.session_cookie_name)
    return await identity.resolve_session(token)


async def require_user(
    user: Annotated[User | None, Depends(get_current_user)],
) -> User:
    if user is None:
        raise NotAuthenticatedError()
    return user


CurrentUser = Annotated[User | None, Depends(get_current_user)]
AuthenticatedUser = Annotated[User, Depends(require_user)]
