"""Tests for catalog resolution and search."""

import httpx
import pytest
import respx
from conftest import SCRYFALL_URL, SEARCH_URL, scryfall_card, scryfall_list, scryfall_not_found
from sqlalchemy import func, select

from manatomb.models.card import Card
from manatomb.models.db import CardDB
from manatomb.models.failure import LookupUnavailableError, NotFoundError
from manatomb.services.catalog_resolver import (
    CardNotFoundError,
    CatalogResolver,
    build_search_query,
)
from manatomb.services.scryfall import ScryfallClient


@pytest.fixture
async def resolver(session_factory):
    async with ScryfallClient(base_url=SCRYFALL_URL, timeout=1.0) as client:
        yield CatalogResolver(session_factory, client)


async def count_cards(session_factory) -> int:
    async with session_factory() as session:
        return (await session.execute(select(func.count()).select_from(CardDB))).scalar_one()


class TestBuildSearchQuery:
    def test_nothing_asked(self) -> None:
        assert build_search_query("", [], "") is None
        assert build_search_query("   ", [], "  ") is None

    def test_plain_query(self) -> None:
        assert build_search_query("  sol ring ") == "sol ring"

    def test_colors_and_type(self) -> None:
        assert build_search_query("elf", ["g", "W"], "creature") == "elf id>=GW t:creature"

    def test_filter_only_uses_wildcard(self) -> None:
        assert build_search_query("", ["U"], "") == "* id>=U"
        assert build_search_query("", [], "instant") == "* t:instant"

    def test_unknown_and_duplicate_colors_dropped(self) -> None:
        assert build_search_query("bolt", ["R", "X", "r", "purple"]) == "bolt id>=R"

    def test_only_unknown_colors_still_counts_as_search(self) -> None:
        assert build_search_query("", ["X"], "") == "*"


class TestResolve:
    @respx.mock
    async def test_fetches_and_stores_new_card(self, resolver, session_factory) -> None:
        route = respx.get(SEARCH_URL).mock(
            return_value=httpx.Response(200, json=scryfall_list(scryfall_card("Sol Ring")))
        )

        card = await resolver.resolve("  Sol Ring ")

        assert card.id is not None
        assert card.name == "Sol Ring"
        assert card.mana_cost == "{1}"
        assert route.call_count == 1
        assert route.calls.last.request.url.params["q"] == '!"Sol Ring"'
        assert await count_cards(session_factory) == 1

    @respx.mock
    async def test_second_resolve_uses_local_store(self, resolver) -> None:
        route = respx.get(SEARCH_URL).mock(
            return_value=httpx.Response(200, json=scryfall_list(scryfall_card("Sol Ring")))
        )

        first = await resolver.resolve("Sol Ring")
        second = await resolver.resolve("Sol Ring")

        assert first.id == second.id
        assert route.call_count == 1

    @respx.mock
    async def test_local_store_is_never_refreshed(self, resolver, session_factory) -> None:
        async with session_factory.begin() as session:
            session.add(CardDB(name="Sol Ring", mana_cost="{OLD}"))
        route = respx.get(SEARCH_URL).mock(
            return_value=httpx.Response(200, json=scryfall_list(scryfall_card("Sol Ring")))
        )

        card = await resolver.resolve("Sol Ring")

        assert card.mana_cost == "{OLD}"
        assert route.call_count == 0

    @respx.mock
    async def test_unknown_name_is_not_found_and_not_cached(
        self, resolver, session_factory
    ) -> None:
        route = respx.get(SEARCH_URL).mock(
            return_value=httpx.Response(404, json=scryfall_not_found())
        )

        with pytest.raises(CardNotFoundError):
            await resolver.resolve("Nonexistent Card XYZ")
        with pytest.raises(CardNotFoundError):
            await resolver.resolve("Nonexistent Card XYZ")

        # No negative caching: both calls asked the catalog
        assert route.call_count == 2
        assert await count_cards(session_factory) == 0

    @respx.mock
    async def test_empty_name_skips_network(self, resolver) -> None:
        route = respx.get(SEARCH_URL).mock(return_value=httpx.Response(200, json=scryfall_list()))

        with pytest.raises(NotFoundError):
            await resolver.resolve("   ")

        assert route.call_count == 0

    @respx.mock
    async def test_catalog_failure_is_distinct_from_not_found(
        self, resolver, session_factory
    ) -> None:
        respx.get(SEARCH_URL).mock(return_value=httpx.Response(500, text="oops"))

        with pytest.raises(LookupUnavailableError):
            await resolver.resolve("Sol Ring")

        assert await count_cards(session_factory) == 0

    @respx.mock
    async def test_takes_first_of_several_results(self, resolver) -> None:
        respx.get(SEARCH_URL).mock(
            return_value=httpx.Response(
                200,
                json=scryfall_list(scryfall_card("Sol Ring"), scryfall_card("Sol Ring Copy")),
            )
        )

        card = await resolver.resolve("Sol Ring")

        assert card.name == "Sol Ring"

    @respx.mock
    async def test_canonical_name_already_stored(self, resolver, session_factory) -> None:
        """A differently-cased name finds the stored canonical card locally."""
        async with session_factory.begin() as session:
            session.add(CardDB(name="Sol Ring"))
        route = respx.get(SEARCH_URL).mock(
            return_value=httpx.Response(200, json=scryfall_list(scryfall_card("Sol Ring")))
        )

        card = await resolver.resolve("sol ring")

        assert card.name == "Sol Ring"
        assert route.call_count == 0
        assert await count_cards(session_factory) == 1

    @respx.mock
    async def test_any_casing_asks_the_catalog_once(self, resolver, session_factory) -> None:
        route = respx.get(SEARCH_URL).mock(
            return_value=httpx.Response(200, json=scryfall_list(scryfall_card("Sol Ring")))
        )

        cards = [await resolver.resolve(name) for name in ("sol ring", "sol ring", "SOL RING")]

        assert {c.id for c in cards} == {cards[0].id}
        assert all(c.name == "Sol Ring" for c in cards)
        assert route.call_count == 1
        assert await count_cards(session_factory) == 1

    @respx.mock
    async def test_concurrent_insert_re_reads(
        self, resolver, session_factory, monkeypatch
    ) -> None:
        """Losing the insert race returns the row the other resolver stored."""
        respx.get(SEARCH_URL).mock(
            return_value=httpx.Response(200, json=scryfall_list(scryfall_card("Sol Ring")))
        )
        real_get_local = resolver.get_local
        misses = iter([True])

        async def get_local_racing(name: str):
            # The first lookup misses; the other resolver stores the card meanwhile
            if next(misses, False):
                async with session_factory.begin() as session:
                    session.add(CardDB(name="Sol Ring", mana_cost="{OTHER}"))
                return None
            return await real_get_local(name)

        monkeypatch.setattr(resolver, "get_local", get_local_racing)

        card = await resolver.resolve("Sol Ring")

        assert card.mana_cost == "{OTHER}"
        assert await count_cards(session_factory) == 1


class TestSearch:
    @respx.mock
    async def test_search_builds_expression_and_never_writes(
        self, resolver, session_factory
    ) -> None:
        route = respx.get(SEARCH_URL).mock(
            return_value=httpx.Response(
                200,
                json=scryfall_list(
                    scryfall_card("Llanowar Elves"), scryfall_card("Elvish Mystic")
                ),
            )
        )

        results = await resolver.search("elves", ["G"], "creature")

        assert [c.name for c in results] == ["Llanowar Elves", "Elvish Mystic"]
        assert route.calls.last.request.url.params["q"] == "elves id>=G t:creature"
        assert await count_cards(session_factory) == 0

    @respx.mock
    async def test_empty_search_skips_network(self, resolver) -> None:
        route = respx.get(SEARCH_URL).mock(return_value=httpx.Response(200, json=scryfall_list()))

        assert await resolver.search("") == []
        assert route.call_count == 0

    @respx.mock
    async def test_search_commanders(self, resolver) -> None:
        route = respx.get(SEARCH_URL).mock(
            return_value=httpx.Response(
                200, json=scryfall_list(scryfall_card("Atraxa, Praetors' Voice"))
            )
        )

        results = await resolver.search_commanders("atraxa")

        assert results[0].name == "Atraxa, Praetors' Voice"
        assert route.calls.last.request.url.params["q"] == "atraxa is:commander"

    async def test_search_commanders_blank(self, resolver) -> None:
        assert await resolver.search_commanders("  ") == []

    @respx.mock
    async def test_lookup_commander_swallows_outage(self, resolver) -> None:
        respx.get(SEARCH_URL).mock(side_effect=httpx.ConnectError("down"))

        assert await resolver.lookup_commander("Atraxa") is None

    @respx.mock
    async def test_lookup_commander_found(self, resolver) -> None:
        respx.get(SEARCH_URL).mock(
            return_value=httpx.Response(200, json=scryfall_list(scryfall_card("Atraxa")))
        )

        card = await resolver.lookup_commander("Atraxa")

        assert isinstance(card, Card)
        assert card.name == "Atraxa"
