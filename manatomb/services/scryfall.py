"""
Scryfall search client.

Wraps the /cards/search endpoint. Scryfall answers "no matches" with an
error object whose code is "not_found"; that is a normal empty result.
Every other error object, a non-JSON body, a timeout or a transport failure
is a LookupUnavailableError.

API docs: https://scryfall.com/docs/api/cards/search
"""

import logging
from typing import Any

import httpx

from manatomb.config import settings
from manatomb.models.card import Card
from manatomb.models.failure import LookupUnavailableError

logger = logging.getLogger(__name__)


def exact_name_query(name: str) -> str:
    """Scryfall exact-name expression: !"Card Name"."""
    escaped = name.replace("\\", "\\\\").replace('"', '\\"')
    return f'!"{escaped}"'


def parse_card(data: dict[str, Any]) -> Card:
    """
    Map a Scryfall card object to a Card.

    Double-faced cards carry images and text on their faces; the front face
    fills in whatever the top level lacks.
    """
    front: dict[str, Any] = {}
    faces = data.get("card_faces")
    if isinstance(faces, list) and faces and isinstance(faces[0], dict):
        front = faces[0]

    image_uris = data.get("image_uris") or front.get("image_uris") or {}

    return Card(
        name=str(data["name"]),
        mana_cost=data.get("mana_cost") or front.get("mana_cost"),
        type_line=data.get("type_line") or front.get("type_line"),
        oracle_text=data.get("oracle_text") or front.get("oracle_text"),
        image_uri=image_uris.get("normal"),
    )


class ScryfallClient:
    """
    Async client for Scryfall card search.

    Use as an async context manager, or pass in an httpx.AsyncClient that the
    caller owns.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = (base_url or settings.scryfall_api_url).rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers={
                "User-Agent": settings.catalog_user_agent,
                "Accept": "application/json",
            },
            timeout=timeout if timeout is not None else settings.catalog_timeout_seconds,
        )

    async def __aenter__(self) -> "ScryfallClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def search(self, query: str) -> list[Card]:
        """
        Run a search expression against the catalog.

        Args:
            query: Scryfall search syntax (e.g., 'sol ring', '!"Sol Ring"', 't:creature')

        Returns:
            Cards in the order Scryfall returned them. Empty when nothing matched.

        Raises:
            LookupUnavailableError: If the catalog cannot answer
        """
        url = f"{self.base_url}/cards/search"

        try:
            response = await self._client.get(url, params={"q": query})
        except httpx.TimeoutException as e:
            logger.warning("Scryfall search timed out for %r", query)
            raise LookupUnavailableError("timeout") from e
        except httpx.RequestError as e:
            logger.warning("Scryfall search failed for %r: %s", query, e)
            raise LookupUnavailableError("transport error") from e

        try:
            body = response.json()
        except ValueError as e:
            logger.warning(
                "Scryfall returned a non-JSON body (HTTP %d) for %r",
                response.status_code,
                query,
            )
            raise LookupUnavailableError(f"HTTP {response.status_code}") from e

        if not isinstance(body, dict):
            raise LookupUnavailableError("malformed response")

        if body.get("object") == "error":
            if body.get("code") == "not_found" or response.status_code == 404:
                return []
            logger.warning(
                "Scryfall error (%s) for %r: %s",
                body.get("code"),
                query,
                body.get("details"),
            )
            raise LookupUnavailableError(f"scryfall error ({body.get('code')})")

        if response.status_code == 404:
            return []
        if response.is_error:
            raise LookupUnavailableError(f"HTTP {response.status_code}")

        data = body.get("data")
        if not isinstance(data, list):
            raise LookupUnavailableError("malformed response")

        try:
            return [parse_card(item) for item in data]
        except (KeyError, TypeError, AttributeError) as e:
            raise LookupUnavailableError("malformed card data") from e
