"""
API tests for admin endpoints: bulk operations, stats, cache management,
link checks, backups, CSRF token issue and health checks.
"""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from siteindex.core.csrf import CSRF_COOKIE_NAME
from siteindex.infrastructure.cache.exceptions import CacheStoreConnectionException
from siteindex.services.link_checker import LinkChecker


class TestAdminAccess:
    """Every admin route requires a session."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/admin/stats"),
            ("POST", "/api/admin/bulk"),
            ("GET", "/api/admin/cache"),
            ("POST", "/api/admin/cache/invalidate"),
            ("POST", "/api/admin/cache/warm"),
            ("GET", "/api/admin/link-check"),
            ("GET", "/api/admin/system/backups"),
        ],
    )
    async def test_requires_session(self, client, method, path):
        response = await client.request(method, path)
        assert response.status_code == 401


class TestBulkOperations:
    """Bulk delete and update."""

    @pytest.mark.asyncio
    async def test_bulk_delete(self, admin_client, fake_repository):
        response = await admin_client.post(
            "/api/admin/bulk", json={"operation": "delete", "items": [1, 2, 99]}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["operation"] == "delete"
        assert body["count"] == 2
        assert sorted(fake_repository.items) == [3, 4, 5]

    @pytest.mark.asyncio
    async def test_bulk_update(self, admin_client, fake_repository):
        response = await admin_client.post(
            "/api/admin/bulk",
            json={"operation": "update", "items": [1, 5], "update_data": {"campus": "DO"}},
        )

        assert response.status_code == 200
        assert response.json()["count"] == 2
        assert fake_repository.items[5].campus == "District Office"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"operation": "update", "items": [1]},
            {"operation": "update", "items": [1], "update_data": {}},
            {"operation": "delete", "items": []},
            {"operation": "delete", "items": list(range(1, 102))},
            {"operation": "archive", "items": [1]},
        ],
    )
    async def test_bulk_validation(self, admin_client, payload):
        response = await admin_client.post("/api/admin/bulk", json=payload)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_bulk_requires_csrf(self, admin_client):
        admin_client.cookies.clear()
        response = await admin_client.post(
            "/api/admin/bulk", json={"operation": "delete", "items": [1]}
        )
        assert response.status_code == 403


class TestDashboardStats:

    @pytest.mark.asyncio
    async def test_stats(self, admin_client):
        response = await admin_client.get("/api/admin/stats")

        assert response.status_code == 200
        body = response.json()
        assert body["total_items"] == 5
        assert body["campus_counts"]["College of San Mateo"] == 2


class TestCacheAdmin:
    """Cache inspection, invalidation and warming."""

    @pytest.mark.asyncio
    async def test_inspect(self, admin_client):
        await admin_client.get("/api/index-items")

        response = await admin_client.get("/api/admin/cache")

        assert response.status_code == 200
        body = response.json()
        assert body["stats"]["total_keys"] == 1
        assert body["entries"][0]["key"] == "indexItems:all"

    @pytest.mark.asyncio
    async def test_inspect_store_unavailable(self, admin_client, memory_store):
        with patch.object(
            memory_store, "keys", AsyncMock(side_effect=CacheStoreConnectionException())
        ):
            response = await admin_client.get("/api/admin/cache")

        assert response.status_code == 503
        assert response.json()["detail"]["error"] == "CACHE_CONNECTION_ERROR"

    @pytest.mark.asyncio
    async def test_invalidate_by_pattern(self, admin_client, memory_store):
        await admin_client.get("/api/index-items", params={"letter": "A"})
        await admin_client.get("/api/index-items", params={"letter": "B"})

        response = await admin_client.post(
            "/api/admin/cache/invalidate", json={"pattern": "indexItems::?:"}
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "invalidated_count": 2, "mode": "pattern"}
        assert await memory_store.keys("*") == []

    @pytest.mark.asyncio
    async def test_invalidate_by_key(self, admin_client):
        await admin_client.get("/api/index-items")

        response = await admin_client.post(
            "/api/admin/cache/invalidate", json={"key": "indexItems:all"}
        )

        assert response.json()["invalidated_count"] == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{}, {"keys": []}, {"key": ""}])
    async def test_invalidate_empty_selector(self, admin_client, payload):
        response = await admin_client.post("/api/admin/cache/invalidate", json=payload)

        assert response.status_code == 400
        assert response.json()["error"] == "Bad request"

    @pytest.mark.asyncio
    async def test_warm(self, admin_client, memory_store):
        response = await admin_client.post("/api/admin/cache/warm")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["failed"] == 0
        assert "indexItems:all" in await memory_store.keys("*")


def link_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path.endswith("/bookstore"):
        return httpx.Response(404)
    return httpx.Response(200)


@pytest.fixture
def link_checker(app, memory_store):
    async def no_sleep(seconds):
        return None

    client = httpx.AsyncClient(transport=httpx.MockTransport(link_handler))
    checker = LinkChecker(client, memory_store, sleep=no_sleep)
    app.state.link_checker = checker
    return checker


class TestLinkCheck:
    """Link check endpoints."""

    @pytest.mark.asyncio
    async def test_no_results_before_scan(self, admin_client, link_checker):
        response = await admin_client.get("/api/admin/link-check")

        assert response.status_code == 200
        assert response.json() == {"results": [], "summary": None, "has_results": False}

    @pytest.mark.asyncio
    async def test_full_scan_then_reports(self, admin_client, link_checker):
        scan = await admin_client.post("/api/admin/link-check")

        assert scan.status_code == 200
        assert scan.json()["summary"]["dead"] == 1

        cached = (await admin_client.get("/api/admin/link-check")).json()
        assert cached["has_results"] is True
        assert len(cached["results"]) == 5

        dead = (await admin_client.get("/api/admin/link-check/dead")).json()
        assert dead["total"] == 1
        assert dead["dead_links"][0]["title"] == "Bookstore"

    @pytest.mark.asyncio
    async def test_filtered_check(self, admin_client, link_checker, memory_store):
        response = await admin_client.post(
            "/api/admin/link-check", json={"campus": "CSM"}
        )

        assert response.status_code == 200
        assert response.json()["summary"]["total"] == 2
        assert await memory_store.get("linkcheck:results") is None


class TestBackups:
    """Backup endpoints."""

    @pytest.mark.asyncio
    async def test_create_list_read_delete(self, admin_client):
        created = await admin_client.post("/api/admin/system/backups")
        assert created.status_code == 201
        filename = created.json()["backup"]["filename"]

        listing = (await admin_client.get("/api/admin/system/backups")).json()
        assert listing["stats"]["total_backups"] == 1
        assert listing["backups"][0]["filename"] == filename

        document = (await admin_client.get(f"/api/admin/system/backups/{filename}")).json()
        assert document["total_records"] == 5

        deleted = await admin_client.delete(f"/api/admin/system/backups/{filename}")
        assert deleted.status_code == 204

        missing = await admin_client.get(f"/api/admin/system/backups/{filename}")
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_filename(self, admin_client):
        response = await admin_client.get("/api/admin/system/backups/notes.txt")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete_missing(self, admin_client):
        response = await admin_client.delete("/api/admin/system/backups/backup-2000-01-01.json")
        assert response.status_code == 404


class TestCSRFToken:

    @pytest.mark.asyncio
    async def test_issued_token_authorizes_writes(self, client, app, settings):
        response = await client.get("/api/csrf-token")

        assert response.status_code == 200
        token = response.json()["csrf_token"]
        cookie_value = response.cookies[CSRF_COOKIE_NAME]
        assert app.state.csrf.validate(token, cookie_value)

        write = await client.post(
            "/api/admin/cache/invalidate",
            json={"key": "indexItems:all"},
            headers={settings.AUTH_EMAIL_HEADER: "admin@smccd.edu", "X-CSRF-Token": token},
        )
        assert write.status_code == 200


class TestHealth:

    @pytest.mark.asyncio
    async def test_liveness(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    @pytest.mark.asyncio
    async def test_readiness_requires_database(self, client):
        response = await client.get("/health/ready")

        assert response.status_code == 503
        assert response.json()["checks"]["cache"]["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_ready_with_healthy_database(self, client, app):
        database = AsyncMock()
        database.health_check.return_value = {"status": "healthy"}
        app.state.database = database

        response = await client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"
