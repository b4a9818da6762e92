"""
Integration tests for the scheduled publish trigger endpoint.
"""

import pytest
from datetime import timedelta

from core.domain.post import PostStatus

URL = "/api/v1/cron/publish-scheduled"


class TestPublishScheduledEndpoint:
    """Tests for GET /cron/publish-scheduled."""

    @pytest.mark.asyncio
    async def test_missing_secret(self, async_client):
        response = await async_client.get(URL)
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_wrong_secret(self, async_client):
        response = await async_client.get(URL, headers={"Authorization": "Bearer not-the-secret"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_admin_token_is_not_the_cron_secret(self, async_client, admin_headers):
        response = await async_client.get(URL, headers=admin_headers)
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_publishes_due_posts(
        self, async_client, cron_headers, clock, make_post, status_service, post_service
    ):
        post = await make_post()
        await status_service.update_post_status(
            post.id, PostStatus.SCHEDULED, clock.now + timedelta(minutes=5)
        )
        clock.advance(minutes=5)

        response = await async_client.get(URL, headers=cron_headers)

        assert response.status_code == 200
        assert response.json() == {"success": True, "published": 1}
        assert (await post_service.get_post_by_id(post.id)).status == PostStatus.PUBLISHED.value

        again = await async_client.get(URL, headers=cron_headers)
        assert again.json()["published"] == 0


class TestHealth:
    """Tests for the health endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, async_client):
        response = await async_client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_db_health_reports_overdue_posts(
        self, async_client, clock, make_post, status_service
    ):
        due = await make_post()
        later = await make_post()
        await status_service.update_post_status(
            due.id, PostStatus.SCHEDULED, clock.now + timedelta(hours=1)
        )
        await status_service.update_post_status(
            later.id, PostStatus.SCHEDULED, clock.now + timedelta(days=1)
        )

        before = await async_client.get("/api/v1/health/db")
        assert before.json()["overdue_scheduled_posts"] == 0

        clock.advance(hours=2)
        response = await async_client.get("/api/v1/health/db")

        assert response.status_code == 200
        body = response.json()
        assert body["database"] == "connected"
        assert body["overdue_scheduled_posts"] == 1

    @pytest.mark.asyncio
    async def test_ready(self, async_client):
        response = await async_client.get("/api/v1/health/ready")
        assert response.json() == {"ready": True}
