from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from manatomb.api.dependencies import get_catalog_client, get_identity_store
from manatomb.db.database import get_session_factory
from manatomb.main import app
from manatomb.models.account import User
from manatomb.models.db import Base
from manatomb.services.deck_ledger import DeckLedger
from manatomb.services.identity_store import IdentityStore
from manatomb.services.scryfall import ScryfallClient

SCRYFALL_URL = "https://api.scryfall.com"
SEARCH_URL = f"{SCRYFALL_URL}/cards/search"

# Minimum bcrypt cost keeps the suite fast
fast_pwd_context = CryptContext(schemes=["bcrypt"], bcrypt__rounds=4)


class FakeClock:
    """Settable clock for session expiry tests."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


def scryfall_card(name: str, **extra: Any) -> dict[str, Any]:
    """A Scryfall card object with the fields we read."""
    card: dict[str, Any] = {
        "object": "card",
        "name": name,
        "mana_cost": "{1}",
        "type_line": "Artifact",
        "oracle_text": "{T}: Add {C}{C}.",
        "image_uris": {"normal": f"https://img.example/{name.replace(' ', '_')}.jpg"},
    }
    card.update(extra)
    return card


def scryfall_list(*cards: dict[str, Any]) -> dict[str, Any]:
    return {"object": "list", "total_cards": len(cards), "has_more": False, "data": list(cards)}


def scryfall_not_found() -> dict[str, Any]:
    return {
        "object": "error",
        "code": "not_found",
        "status": 404,
        "details": "Your query didn't match any cards.",
    }


@pytest.fixture
async def async_engine():
    """Create an in-memory SQLite engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def identity(session_factory, clock) -> IdentityStore:
    return IdentityStore(session_factory, clock=clock, password_context=fast_pwd_context)


@pytest.fixture
def ledger(session_factory, clock) -> DeckLedger:
    return DeckLedger(session_factory, clock=clock)


@pytest.fixture
async def ann(identity: IdentityStore) -> AsyncGenerator[User, None]:
    yield await identity.create_user("a@x.com", "Ann", "password123")


@pytest.fixture
async def bob(identity: IdentityStore) -> AsyncGenerator[User, None]:
    yield await identity.create_user("b@x.com", "Bob", "hunter2hunter2")


@pytest.fixture
def app_overrides(session_factory):
    """Point the app at the test database and a Scryfall client we can mock."""

    def override_session_factory() -> async_sessionmaker[AsyncSession]:
        return session_factory

    def override_identity_store() -> IdentityStore:
        return IdentityStore(session_factory, password_context=fast_pwd_context)

    async def override_catalog_client() -> AsyncGenerator[ScryfallClient, None]:
        async with ScryfallClient(base_url=SCRYFALL_URL, timeout=1.0) as scry:
            yield scry

    app.dependency_overrides[get_session_factory] = override_session_factory
    app.dependency_overrides[get_identity_store] = override_identity_store
    app.dependency_overrides[get_catalog_client] = override_catalog_client
    yield app.dependency_overrides
    app.dependency_overrides.clear()


@pytest.fixture
async def client(app_overrides) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


@pytest.fixture
async def other_client(app_overrides) -> AsyncGenerator[AsyncClient, None]:
    """A second browser with its own cookie jar."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


async def signup(
    http: AsyncClient,
    email: str = "a@x.com",
    display_name: str = "Ann",
    password: str = "password123",
) -> dict[str, Any]:
    response = await http.post(
        "/auth/signup",
        json={"email": email, "display_name": display_name, "password": password},
    )
    assert response.status_code == 201, response.text
    return response.json()["user"]
