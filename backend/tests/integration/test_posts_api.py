"""
Integration tests for the admin post, version and taxonomy endpoints.
"""

import io
import zipfile

import pytest
from datetime import timedelta

BASE = "/api/v1/admin/posts"


async def _create(client, headers, **overrides) -> dict:
    body = {"title": "Hello World", "content": "line one\nline two"}
    body.update(overrides)
    response = await client.post(BASE, json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestAuth:
    """Tests for admin authentication."""

    @pytest.mark.asyncio
    async def test_missing_token(self, async_client):
        response = await async_client.get(BASE)
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_token(self, async_client):
        response = await async_client.get(BASE, headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_non_admin_forbidden(self, async_client, editor_headers):
        response = await async_client.get(BASE, headers=editor_headers)
        assert response.status_code == 403


class TestPostCrud:
    """Tests for post CRUD endpoints."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, async_client, admin_headers, category, tags):
        created = await _create(
            async_client,
            admin_headers,
            category_id=category.id,
            tag_ids=[tags[1].id, tags[0].id],
        )

        assert created["slug"] == "hello-world"
        assert created["status"] == "DRAFT"
        assert created["author_id"] == "admin-1"
        assert created["category"]["slug"] == "engineering"
        assert [tag["name"] for tag in created["tags"]] == ["Databases", "Python"]

        response = await async_client.get(f"{BASE}/{created['id']}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["title"] == "Hello World"

    @pytest.mark.asyncio
    async def test_duplicate_title_gets_suffixed_slug(self, async_client, admin_headers):
        await _create(async_client, admin_headers)
        second = await _create(async_client, admin_headers)
        assert second["slug"] == "hello-world-2"

    @pytest.mark.asyncio
    async def test_duplicate_explicit_slug_conflicts(self, async_client, admin_headers):
        await _create(async_client, admin_headers, slug="taken")
        response = await async_client.post(
            BASE,
            json={"title": "Other", "content": "x", "slug": "taken"},
            headers=admin_headers,
        )
        assert response.status_code == 409
        assert response.json() == {"success": False, "error": "A record with slug 'taken' already exists"}

    @pytest.mark.asyncio
    async def test_request_validation(self, async_client, admin_headers):
        response = await async_client.post(
            BASE,
            json={"title": "", "content": "x", "cover_image": "not-a-url"},
            headers=admin_headers,
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_post(self, async_client, admin_headers):
        response = await async_client.get(f"{BASE}/missing", headers=admin_headers)
        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert "missing" in body["error"]

    @pytest.mark.asyncio
    async def test_update_creates_version(self, async_client, admin_headers):
        created = await _create(async_client, admin_headers)

        response = await async_client.put(
            f"{BASE}/{created['id']}",
            json={"content": "line one\nline two\nline three"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["content"].endswith("line three")
        versions = await async_client.get(f"{BASE}/{created['id']}/versions", headers=admin_headers)
        assert [v["version"] for v in versions.json()] == [2, 1]

    @pytest.mark.asyncio
    async def test_delete(self, async_client, admin_headers):
        created = await _create(async_client, admin_headers)

        response = await async_client.delete(f"{BASE}/{created['id']}", headers=admin_headers)
        assert response.status_code == 204

        missing = await async_client.get(f"{BASE}/{created['id']}", headers=admin_headers)
        assert missing.status_code == 404


class TestListing:
    """Tests for GET /admin/posts."""

    @pytest.mark.asyncio
    async def test_pagination_meta(self, async_client, admin_headers, make_post):
        for _ in range(5):
            await make_post()

        response = await async_client.get(f"{BASE}?page=2&limit=2", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert len(data["items"]) == 2
        assert data["meta"] == {
            "total": 5,
            "page": 2,
            "limit": 2,
            "total_pages": 3,
            "has_next": True,
            "has_prev": True,
        }

    @pytest.mark.asyncio
    async def test_filters(self, async_client, admin_headers, make_post, status_service, tags):
        from core.domain.post import PostStatus

        published = await make_post(title="Async SQL tips", tag_ids=[tags[0].id])
        await status_service.update_post_status(published.id, PostStatus.PUBLISHED)
        await make_post(title="Something else")

        by_status = await async_client.get(f"{BASE}?status=PUBLISHED", headers=admin_headers)
        assert [p["id"] for p in by_status.json()["items"]] == [published.id]

        by_tag = await async_client.get(f"{BASE}?tag_id={tags[0].id}", headers=admin_headers)
        assert by_tag.json()["meta"]["total"] == 1

        by_search = await async_client.get(f"{BASE}?search=sql", headers=admin_headers)
        assert by_search.json()["meta"]["total"] == 1

    @pytest.mark.asyncio
    async def test_limit_capped(self, async_client, admin_headers):
        response = await async_client.get(f"{BASE}?limit=500", headers=admin_headers)
        assert response.status_code == 422


class TestStatusEndpoint:
    """Tests for PATCH /admin/posts/{id}/status."""

    @pytest.mark.asyncio
    async def test_publish(self, async_client, admin_headers):
        created = await _create(async_client, admin_headers)

        response = await async_client.patch(
            f"{BASE}/{created['id']}/status",
            json={"status": "PUBLISHED"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "PUBLISHED"
        assert response.json()["published_at"] is not None

    @pytest.mark.asyncio
    async def test_invalid_transition(self, async_client, admin_headers):
        created = await _create(async_client, admin_headers)

        response = await async_client.patch(
            f"{BASE}/{created['id']}/status",
            json={"status": "DRAFT"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "Cannot transition post from DRAFT to DRAFT",
        }

    @pytest.mark.asyncio
    async def test_schedule_requires_future_time(self, async_client, admin_headers, clock):
        created = await _create(async_client, admin_headers)
        url = f"{BASE}/{created['id']}/status"

        missing = await async_client.patch(url, json={"status": "SCHEDULED"}, headers=admin_headers)
        assert missing.status_code == 400

        past = (clock.now - timedelta(hours=1)).isoformat()
        response = await async_client.patch(
            url, json={"status": "SCHEDULED", "scheduled_at": past}, headers=admin_headers
        )
        assert response.status_code == 400

        future = (clock.now + timedelta(hours=1)).isoformat()
        response = await async_client.patch(
            url, json={"status": "SCHEDULED", "scheduled_at": future}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "SCHEDULED"


class TestBatchEndpoint:
    """Tests for POST /admin/posts/batch."""

    @pytest.mark.asyncio
    async def test_publish_batch(self, async_client, admin_headers, make_post):
        posts = [await make_post() for _ in range(3)]

        response = await async_client.post(
            f"{BASE}/batch",
            json={"action": "publish", "ids": [p.id for p in posts]},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "count": 3}

    @pytest.mark.asyncio
    async def test_over_limit(self, async_client, admin_headers):
        response = await async_client.post(
            f"{BASE}/batch",
            json={"action": "delete", "ids": [f"id-{n}" for n in range(101)]},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Batch operation limited to 100 items"

    @pytest.mark.asyncio
    async def test_unknown_action(self, async_client, admin_headers):
        response = await async_client.post(
            f"{BASE}/batch", json={"action": "explode", "ids": []}, headers=admin_headers
        )
        assert response.status_code == 422


class TestTransferEndpoints:
    """Tests for Markdown export and import."""

    @pytest.mark.asyncio
    async def test_export_markdown(self, async_client, admin_headers, tags):
        created = await _create(async_client, admin_headers, tag_ids=[tags[0].id])

        response = await async_client.post(
            f"{BASE}/export", json={"post_id": created["id"]}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/markdown")
        assert response.headers["content-disposition"] == 'attachment; filename="hello-world.md"'
        assert response.text.startswith("---\ntitle: Hello World\nslug: hello-world\n")
        assert "tags:\n- Python\n" in response.text
        assert response.text.endswith("line one\nline two\n")

    @pytest.mark.asyncio
    async def test_export_unknown(self, async_client, admin_headers):
        response = await async_client.post(
            f"{BASE}/export", json={"post_id": "missing"}, headers=admin_headers
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_export_batch_zip(self, async_client, admin_headers):
        first = await _create(async_client, admin_headers)
        second = await _create(async_client, admin_headers, title="Second")

        response = await async_client.post(
            f"{BASE}/export/batch",
            json={"ids": [first["id"], second["id"]]},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/zip"
        assert response.headers["content-disposition"] == 'attachment; filename="posts.zip"'
        with zipfile.ZipFile(io.BytesIO(response.content)) as archive:
            assert archive.namelist() == ["hello-world.md", "second.md"]

    @pytest.mark.asyncio
    async def test_export_requires_admin(self, async_client, editor_headers):
        response = await async_client.post(
            f"{BASE}/export/batch", json={"ids": []}, headers=editor_headers
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_import_upload(self, async_client, admin_headers):
        document = "---\ntitle: Uploaded\ntags:\n  - Fresh\n---\n\nFrom a file\n"

        response = await async_client.post(
            f"{BASE}/import",
            files={"file": ("uploaded.md", document.encode("utf-8"), "text/markdown")},
            headers=admin_headers,
        )

        assert response.status_code == 201, response.text
        body = response.json()
        assert body["slug"] == "uploaded"
        assert body["content"] == "From a file"
        assert body["author_id"] == "admin-1"
        assert [tag["slug"] for tag in body["tags"]] == ["fresh"]

        versions = await async_client.get(f"{BASE}/{body['id']}/versions", headers=admin_headers)
        assert [v["version"] for v in versions.json()] == [1]

    @pytest.mark.asyncio
    async def test_import_empty_file(self, async_client, admin_headers):
        response = await async_client.post(
            f"{BASE}/import",
            files={"file": ("empty.md", b"", "text/markdown")},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "File is empty"}

    @pytest.mark.asyncio
    async def test_import_binary_rejected(self, async_client, admin_headers):
        response = await async_client.post(
            f"{BASE}/import",
            files={"file": ("image.md", b"\xff\xfe\x00binary", "text/markdown")},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "File must be UTF-8 encoded text"

    @pytest.mark.asyncio
    async def test_import_missing_title(self, async_client, admin_headers):
        response = await async_client.post(
            f"{BASE}/import",
            files={"file": ("x.md", b"---\nslug: x\n---\nBody", "text/markdown")},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Missing required field: title"

class TestVersionEndpoints:
    """Tests for the version history endpoints."""

    @pytest.mark.asyncio
    async def test_compare_and_restore(self, async_client, admin_headers):
        created = await _create(async_client, admin_headers)
        post_url = f"{BASE}/{created['id']}"
        await async_client.put(
            post_url, json={"title": "Renamed", "content": "line one"}, headers=admin_headers
        )
        await async_client.put(post_url, json={"content": "final"}, headers=admin_headers)

        versions = (await async_client.get(f"{post_url}/versions", headers=admin_headers)).json()
        by_number = {v["version"]: v for v in versions}
        assert sorted(by_number) == [1, 2, 3]

        diff = await async_client.get(
            f"{post_url}/versions/compare",
            params={
                "from_version_id": by_number[2]["id"],
                "to_version_id": by_number[3]["id"],
            },
            headers=admin_headers,
        )
        assert diff.status_code == 200
        assert diff.json()["title_changed"] is True
        assert diff.json()["content"]["removed"] == 1
        assert diff.json()["summary"].startswith("Title changed")

        restored = await async_client.post(
            f"{post_url}/versions/{by_number[1]['id']}/restore", headers=admin_headers
        )
        assert restored.status_code == 200
        assert restored.json()["title"] == "Hello World"
        assert restored.json()["content"] == "line one\nline two"

    @pytest.mark.asyncio
    async def test_version_of_other_post_not_found(self, async_client, admin_headers):
        first = await _create(async_client, admin_headers)
        second = await _create(async_client, admin_headers)
        versions = (
            await async_client.get(f"{BASE}/{first['id']}/versions", headers=admin_headers)
        ).json()

        response = await async_client.get(
            f"{BASE}/{second['id']}/versions/{versions[0]['id']}", headers=admin_headers
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_clean(self, async_client, admin_headers):
        created = await _create(async_client, admin_headers)
        post_url = f"{BASE}/{created['id']}"
        for n in range(3):
            await async_client.put(post_url, json={"content": f"rev {n}"}, headers=admin_headers)

        response = await async_client.delete(
            f"{post_url}/versions", params={"keep": 2}, headers=admin_headers
        )

        assert response.json() == {"success": True, "deleted": 2}

        rejected = await async_client.delete(
            f"{post_url}/versions", params={"keep": 0}, headers=admin_headers
        )
        assert rejected.status_code == 422


class TestTaxonomyEndpoints:
    """Tests for category and tag endpoints."""

    @pytest.mark.asyncio
    async def test_category_lifecycle(self, async_client, admin_headers):
        created = await async_client.post(
            "/api/v1/admin/categories", json={"name": "News"}, headers=admin_headers
        )
        assert created.status_code == 201
        assert created.json()["slug"] == "news"

        duplicate = await async_client.post(
            "/api/v1/admin/categories", json={"name": "News"}, headers=admin_headers
        )
        assert duplicate.status_code == 409

        listed = await async_client.get("/api/v1/admin/categories", headers=admin_headers)
        assert [c["name"] for c in listed.json()] == ["News"]

        deleted = await async_client.delete(
            f"/api/v1/admin/categories/{created.json()['id']}", headers=admin_headers
        )
        assert deleted.status_code == 204
