"""Tests for account settings and the home page."""

from conftest import signup
from httpx import AsyncClient


class TestProfile:
    async def test_show_settings(self, client: AsyncClient) -> None:
        await signup(client)

        response = await client.get("/settings")
        profile = await client.get("/settings/profile")

        assert response.json()["email"] == "a@x.com"
        assert profile.json() == response.json()

    async def test_update_display_name(self, client: AsyncClient) -> None:
        await signup(client)

        response = await client.post("/settings/profile", json={"display_name": "Annie"})

        assert response.status_code == 200
        assert (await client.get("/auth/me")).json()["display_name"] == "Annie"

    async def test_rejects_markup(self, client: AsyncClient) -> None:
        await signup(client)

        response = await client.post("/settings/profile", json={"display_name": "<b>Ann</b>"})

        assert response.status_code == 400


class TestPassword:
    async def test_change_password(self, client: AsyncClient, other_client: AsyncClient) -> None:
        await signup(client)

        response = await client.post(
            "/settings/password",
            json={
                "current_password": "password123",
                "new_password": "brand-new-pass",
                "confirm_password": "brand-new-pass",
            },
        )

        assert response.status_code == 200
        login = await other_client.post(
            "/auth/login", json={"email": "a@x.com", "password": "brand-new-pass"}
        )
        assert login.status_code == 200

    async def test_confirmation_mismatch(self, client: AsyncClient) -> None:
        await signup(client)

        response = await client.post(
            "/settings/password",
            json={
                "current_password": "password123",
                "new_password": "brand-new-pass",
                "confirm_password": "brand-new-typo",
            },
        )

        assert response.status_code == 400
        assert response.json()["failure"]["detail"] == "confirm_password"

    async def test_wrong_current_password(self, client: AsyncClient) -> None:
        await signup(client)

        response = await client.post(
            "/settings/password",
            json={
                "current_password": "guess-guess",
                "new_password": "brand-new-pass",
                "confirm_password": "brand-new-pass",
            },
        )

        assert response.status_code == 400
        assert response.json()["failure"]["kind"] == "invalid_password"


class TestDeleteAccount:
    async def test_delete_account(self, client: AsyncClient, other_client: AsyncClient) -> None:
        await signup(client)
        await client.post("/decks", json={"name": "Artifacts"})

        response = await client.delete("/settings/account")

        assert response.status_code == 200
        assert (await client.get("/auth/me")).status_code == 401
        login = await other_client.post(
            "/auth/login", json={"email": "a@x.com", "password": "password123"}
        )
        assert login.status_code == 401


class TestHome:
    async def test_anonymous(self, client: AsyncClient) -> None:
        response = await client.get("/home")

        assert response.json() == {"user": None, "recent_decks": []}

    async def test_recent_decks(self, client: AsyncClient) -> None:
        await signup(client)
        for i in range(6):
            await client.post("/decks", json={"name": f"Deck {i}"})

        data = (await client.get("/home")).json()

        assert data["user"]["display_name"] == "Ann"
        assert len(data["recent_decks"]) == 5
