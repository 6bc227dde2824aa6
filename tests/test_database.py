"""Tests for the per-operation transaction helper."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from manatomb.db.database import transaction
from manatomb.models.db import CardDB
from manatomb.models.failure import UnexpectedError


async def count_cards(session_factory) -> int:
    async with session_factory() as session:
        return (await session.execute(select(func.count()).select_from(CardDB))).scalar_one()


@pytest.fixture
async def sol_ring(session_factory) -> None:
    async with transaction(session_factory) as session:
        session.add(CardDB(name="Sol Ring"))


class TestTransaction:
    async def test_commits(self, session_factory, sol_ring) -> None:
        assert await count_cards(session_factory) == 1

    async def test_rolls_back_on_error(self, session_factory) -> None:
        with pytest.raises(RuntimeError):
            async with transaction(session_factory) as session:
                session.add(CardDB(name="Sol Ring"))
                await session.flush()
                raise RuntimeError("boom")

        assert await count_cards(session_factory) == 0

    async def test_constraint_violation_is_unexpected(self, session_factory, sol_ring) -> None:
        with pytest.raises(UnexpectedError):
            async with transaction(session_factory) as session:
                session.add(CardDB(name="Sol Ring"))

        assert await count_cards(session_factory) == 1

    async def test_conflicts_pass_through_when_asked(self, session_factory, sol_ring) -> None:
        with pytest.raises(IntegrityError):
            async with transaction(session_factory, raise_conflicts=True) as session:
                session.add(CardDB(name="Sol Ring"))
