"""
Integration tests for post version history.

Tests:
- Explicit version creation and numbering
- Lookup scoped to the owning post
- Comparison between versions
- Pruning old versions
- Restore through the update path
"""

import pytest

from core.exceptions import NotFoundError, ValidationFailedError


class TestVersionStore:
    """Tests for creating and reading versions."""

    @pytest.mark.asyncio
    async def test_create_version_numbers_sequentially(self, make_post, version_service):
        post = await make_post()

        v2 = await version_service.create_version(post.id, "T2", "C2")
        v3 = await version_service.create_version(post.id, "T3", "C3", excerpt="E3")

        assert (v2.version, v3.version) == (2, 3)
        assert v3.excerpt == "E3"

    @pytest.mark.asyncio
    async def test_numbering_continues_after_pruning(self, make_post, version_service):
        post = await make_post()
        for n in range(4):
            await version_service.create_version(post.id, "T", f"C{n}")
        await version_service.clean_old_versions(post.id, keep=1)

        nxt = await version_service.create_version(post.id, "T", "after")

        assert nxt.version == 6

    @pytest.mark.asyncio
    async def test_create_version_for_unknown_post(self, version_service):
        with pytest.raises(NotFoundError):
            await version_service.create_version("missing", "T", "C")

    @pytest.mark.asyncio
    async def test_get_versions_unknown_post_is_empty(self, version_service):
        assert await version_service.get_versions("missing") == []

    @pytest.mark.asyncio
    async def test_get_version_scoped_to_post(self, make_post, version_service):
        post = await make_post()
        other = await make_post()
        version = (await version_service.get_versions(post.id))[0]

        found = await version_service.get_version_by_id(post.id, version.id)
        assert found.id == version.id

        with pytest.raises(NotFoundError):
            await version_service.get_version_by_id(other.id, version.id)
        with pytest.raises(NotFoundError):
            await version_service.get_version_by_id(post.id, "missing")


class TestCompareVersions:
    """Tests for version comparison."""

    @pytest.mark.asyncio
    async def test_compare(self, post_service, version_service):
        post = await post_service.create_post(title="A", content="one\ntwo", slug="a")
        await post_service.update_post(post.id, {"title": "B", "content": "one\ntwo\nthree"})
        await post_service.update_post(post.id, {"content": "final"})
        versions = {v.version: v for v in await version_service.get_versions(post.id)}

        # v2 holds {A, one/two}, v3 holds {B, one/two/three}
        diff = await version_service.compare_versions(post.id, versions[2].id, versions[3].id)

        assert diff.title_changed is True
        assert diff.changed_fields == ("title", "content")
        assert (diff.content.added, diff.content.removed) == (1, 0)

    @pytest.mark.asyncio
    async def test_compare_with_foreign_version(self, make_post, version_service):
        post = await make_post()
        other = await make_post()
        mine = (await version_service.get_versions(post.id))[0]
        theirs = (await version_service.get_versions(other.id))[0]

        with pytest.raises(NotFoundError):
            await version_service.compare_versions(post.id, mine.id, theirs.id)


class TestCleanOldVersions:
    """Tests for explicit pruning."""

    @pytest.mark.asyncio
    async def test_keeps_newest(self, make_post, version_service):
        post = await make_post()
        for n in range(5):
            await version_service.create_version(post.id, "T", f"C{n}")

        deleted = await version_service.clean_old_versions(post.id, keep=2)

        assert deleted == 4
        assert [v.version for v in await version_service.get_versions(post.id)] == [6, 5]

    @pytest.mark.asyncio
    async def test_nothing_to_delete(self, make_post, version_service):
        post = await make_post()
        assert await version_service.clean_old_versions(post.id, keep=10) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("keep", [0, -1])
    async def test_keep_must_be_positive(self, make_post, version_service, keep):
        post = await make_post()
        with pytest.raises(ValidationFailedError):
            await version_service.clean_old_versions(post.id, keep=keep)


class TestRestoreVersion:
    """Tests for restoring a version."""

    @pytest.mark.asyncio
    async def test_restore_snapshots_pre_restore_state(self, post_service, version_service):
        post = await post_service.create_post(title="A", content="c1", slug="a")
        await post_service.update_post(post.id, {"title": "B", "content": "c2"})
        v1 = [v for v in await version_service.get_versions(post.id) if v.version == 1][0]

        restored = await version_service.restore_version(post.id, v1.id)

        assert (restored.title, restored.content) == ("A", "c1")
        versions = await version_service.get_versions(post.id)
        assert [v.version for v in versions] == [3, 2, 1]
        assert (versions[0].title, versions[0].content) == ("B", "c2")

    @pytest.mark.asyncio
    async def test_restore_identical_content_creates_no_version(self, make_post, version_service):
        post = await make_post()
        v1 = (await version_service.get_versions(post.id))[0]

        await version_service.restore_version(post.id, v1.id)

        assert len(await version_service.get_versions(post.id)) == 1

    @pytest.mark.asyncio
    async def test_restore_unknown_version(self, make_post, version_service):
        post = await make_post()
        with pytest.raises(NotFoundError):
            await version_service.restore_version(post.id, "missing")
