"""
API tests for index item listing and admin mutations.
"""

import pytest

NEW_ITEM = {
    "title": "Nursing",
    "letter": "n",
    "url": "https://skylinecollege.edu/nursing",
    "campus": "SKY",
}


class TestListing:
    """Public listing endpoint."""

    @pytest.mark.asyncio
    async def test_list_all(self, client):
        response = await client.get("/api/index-items")

        assert response.status_code == 200
        assert [item["title"] for item in response.json()] == [
            "Admissions",
            "Athletics",
            "Bookstore",
            "Financial Aid",
            "Library",
        ]

    @pytest.mark.asyncio
    async def test_filters(self, client):
        response = await client.get(
            "/api/index-items", params={"campus": "csm", "letter": "a"}
        )

        assert response.status_code == 200
        assert [item["title"] for item in response.json()] == ["Admissions"]

    @pytest.mark.asyncio
    async def test_search(self, client, memory_store):
        response = await client.get("/api/index-items", params={"search": " Library "})

        assert [item["title"] for item in response.json()] == ["Library"]
        assert await memory_store.get("indexItems:::library") is not None

    @pytest.mark.asyncio
    async def test_listing_is_cached(self, client, fake_repository):
        await client.get("/api/index-items", params={"letter": "B"})
        await client.get("/api/index-items", params={"letter": "B"})

        assert fake_repository.list_calls == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "params",
        [{"letter": "AB"}, {"letter": "!"}, {"campus": "Hogwarts"}, {"search": "x" * 101}],
    )
    async def test_invalid_filters(self, client, params):
        response = await client.get("/api/index-items", params=params)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_get_item(self, client):
        response = await client.get("/api/index-items/3")

        assert response.status_code == 200
        assert response.json()["title"] == "Bookstore"

    @pytest.mark.asyncio
    async def test_get_missing_item(self, client):
        response = await client.get("/api/index-items/999")

        assert response.status_code == 404
        assert response.json()["error"] == "Not found"


class TestMutationSecurity:
    """Authentication and CSRF checks on writes."""

    @pytest.mark.asyncio
    async def test_create_requires_session(self, client):
        response = await client.post("/api/index-items", json=NEW_ITEM)
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_create_requires_csrf_token(self, client, settings):
        response = await client.post(
            "/api/index-items",
            json=NEW_ITEM,
            headers={settings.AUTH_EMAIL_HEADER: "admin@smccd.edu"},
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_forged_csrf_token_rejected(self, admin_client):
        response = await admin_client.post(
            "/api/index-items", json=NEW_ITEM, headers={"X-CSRF-Token": "forged"}
        )
        assert response.status_code == 403


class TestMutations:
    """Admin create, update and delete."""

    @pytest.mark.asyncio
    async def test_create_normalizes_input(self, admin_client):
        response = await admin_client.post("/api/index-items", json=NEW_ITEM)

        assert response.status_code == 201
        body = response.json()
        assert body["letter"] == "N"
        assert body["campus"] == "Skyline College"

    @pytest.mark.asyncio
    async def test_create_then_list_includes_record(self, admin_client):
        await admin_client.get("/api/index-items", params={"letter": "N"})

        created = (await admin_client.post("/api/index-items", json=NEW_ITEM)).json()
        listing = (await admin_client.get("/api/index-items", params={"letter": "N"})).json()

        assert [item["id"] for item in listing] == [created["id"]]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "changes",
        [
            {"url": "ftp://example.edu/file"},
            {"title": "   "},
            {"letter": "??"},
            {"campus": "Elsewhere"},
        ],
    )
    async def test_create_validation(self, admin_client, changes):
        response = await admin_client.post("/api/index-items", json={**NEW_ITEM, **changes})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_update(self, admin_client):
        response = await admin_client.patch("/api/index-items/5", json={"title": "Libraries"})

        assert response.status_code == 200
        assert response.json()["title"] == "Libraries"
        assert response.json()["letter"] == "L"

    @pytest.mark.asyncio
    async def test_update_missing(self, admin_client):
        response = await admin_client.patch("/api/index-items/999", json={"title": "x"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete(self, admin_client, fake_repository):
        response = await admin_client.delete("/api/index-items/1")

        assert response.status_code == 204
        assert 1 not in fake_repository.items

    @pytest.mark.asyncio
    async def test_delete_missing(self, admin_client):
        response = await admin_client.delete("/api/index-items/999")
        assert response.status_code == 404
