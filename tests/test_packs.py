"""Tests for the source registry (utils/packs.py) against an in-memory pack store."""
from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from utils.errors import NonFatalError, PackNotFoundError
from utils.media_types import PackType
from utils.packs import GuildPackCache, PackRegistry

GUILD = "guild-1"


def _manifest(mid: str, **kw) -> dict:
    return {"id": mid, **kw}


class TestListing:

    @pytest.mark.asyncio
    async def test_builtins_first(self, registry):
        await registry.install(_manifest("community-a"), GUILD, "u1")
        ids = [p.manifest.id for p in await registry.list_packs(GUILD)]
        assert ids == ["anilist", "vtubers", "community-a"]

    @pytest.mark.asyncio
    async def test_type_filter(self, registry):
        await registry.install(_manifest("community-a"), GUILD, "u1")
        assert [p.manifest.id for p in await registry.list_packs(GUILD, PackType.BUILTIN)] == ["anilist", "vtubers"]
        community = await registry.list_packs(GUILD, PackType.COMMUNITY)
        assert [p.manifest.id for p in community] == ["community-a"]
        assert community[0].type == PackType.COMMUNITY

    @pytest.mark.asyncio
    async def test_guild_cache_populated_once(self, registry, pack_store):
        await registry.list_packs(GUILD)
        await registry.list_packs(GUILD)
        assert pack_store.get_calls == 1

    @pytest.mark.asyncio
    async def test_community_packs_switch(self, pack_store, empty_builtins):
        reg = PackRegistry(store=pack_store, community_packs=False)
        pack_store.manifests["x"] = _manifest("x")
        pack_store.installed[GUILD] = ["x"]
        assert [p.manifest.id for p in await reg.list_packs(GUILD)] == ["anilist", "vtubers"]
        assert pack_store.get_calls == 0

    @pytest.mark.asyncio
    async def test_pages(self, registry):
        await registry.install(_manifest("community-a"), GUILD, "u1")
        page = await registry.pages(GUILD, None, 2)
        assert page.pack.manifest.id == "community-a"
        assert page.total == 3
        assert page.next is False
        first = await registry.pages(GUILD, None, 0)
        assert first.next is True

    @pytest.mark.asyncio
    async def test_pages_empty(self, registry):
        page = await registry.pages(GUILD, PackType.COMMUNITY, 0)
        assert page.pack is None
        assert page.total == 0


class TestDisabled:

    @pytest.mark.asyncio
    async def test_conflicts_disable_ids(self, registry):
        await registry.install(
            _manifest("overrides", characters={"conflicts": ["anilist:1"]}, media={"conflicts": ["anilist:5"]}),
            GUILD,
            "u1",
        )
        assert await registry.is_disabled("anilist:1", GUILD)
        assert await registry.is_disabled("anilist:5", GUILD)
        assert not await registry.is_disabled("anilist:2", GUILD)
        # other guilds are unaffected
        assert not await registry.is_disabled("anilist:1", "guild-2")

    @pytest.mark.asyncio
    async def test_install_and_remove_invalidate(self, registry):
        assert not await registry.is_disabled("anilist:1", GUILD)
        await registry.install(_manifest("overrides", characters={"conflicts": ["anilist:1"]}), GUILD, "u1")
        assert await registry.is_disabled("anilist:1", GUILD)
        await registry.remove("overrides", GUILD)
        assert not await registry.is_disabled("anilist:1", GUILD)


class TestInstall:

    @pytest.mark.asyncio
    async def test_candidate_conflicts_with_installed(self, registry):
        await registry.install(_manifest("pack-a"), GUILD, "u1")
        result = await registry.install(_manifest("pack-b", conflicts=["pack-a"]), GUILD, "u1")
        assert not result.ok
        assert result.conflicts == ["pack-a"]
        assert "This pack conflicts with pack-a" in result.explanation()
        assert "pack-b" not in [p.manifest.id for p in await registry.list_packs(GUILD)]

    @pytest.mark.asyncio
    async def test_installed_conflicts_with_candidate(self, registry):
        await registry.install(_manifest("pack-a", conflicts=["pack-b"]), GUILD, "u1")
        result = await registry.install(_manifest("pack-b"), GUILD, "u1")
        assert not result.ok
        assert result.conflicts == ["pack-a"]

    @pytest.mark.asyncio
    async def test_missing_dependencies_listed(self, registry):
        result = await registry.install(_manifest("pack-c", depends=["vtubers", "pack-x", "pack-y"]), GUILD, "u1")
        assert not result.ok
        assert result.missing == ["pack-x", "pack-y"]
        text = result.explanation()
        assert "This pack requires pack-x" in text
        assert "This pack requires pack-y" in text

    @pytest.mark.asyncio
    async def test_schema_error_never_persists(self, registry, pack_store):
        result = await registry.install({"id": "anilist"}, GUILD, "u1")
        assert not result.ok
        assert result.error == "anilist is a reserved id"
        assert pack_store.manifests == {}

    @pytest.mark.asyncio
    async def test_shallow_only_validates(self, registry, pack_store):
        result = await registry.install(_manifest("pack-a"), GUILD, "u1", shallow=True)
        assert result.ok
        assert result.explanation() == "Valid"
        assert pack_store.manifests == {}

    @pytest.mark.asyncio
    async def test_reserved_props_stripped_before_store(self, registry, pack_store):
        await registry.install({"$schema": "x", "id": "pack-a"}, GUILD, "u1")
        assert pack_store.manifests["pack-a"] == {"id": "pack-a"}

    @pytest.mark.asyncio
    async def test_pack_id_changed_is_non_fatal(self, registry):
        await registry.install(_manifest("pack-a"), GUILD, "u1", source_id=42)
        with pytest.raises(NonFatalError) as exc:
            await registry.install(_manifest("pack-renamed"), GUILD, "u1", source_id=42)
        assert "pack-renamed" in str(exc.value)
        assert "pack-a" in str(exc.value)

    @pytest.mark.asyncio
    async def test_unknown_store_error_propagates(self, empty_builtins):
        from utils.packs_store import StoreResult

        store = AsyncMock()
        store.get_guild_packs.return_value = []
        store.install_pack.return_value = StoreResult(ok=False, error="STORE_UNAVAILABLE")
        reg = PackRegistry(store=store, community_packs=True)
        with pytest.raises(RuntimeError):
            await reg.install(_manifest("pack-a"), GUILD, "u1")

    @pytest.mark.asyncio
    async def test_install_from_github_uses_repo_id(self, registry, pack_store):
        with patch("utils.packs.github.fetch_manifest", new=AsyncMock(return_value=(99, _manifest("gh-pack")))):
            result = await registry.install_from_github("https://github.com/o/r", GUILD, "u1")
        assert result.ok
        assert pack_store.sources == {"99": "gh-pack"}


class TestRemove:

    @pytest.mark.asyncio
    async def test_unknown_is_not_found(self, registry):
        with pytest.raises(PackNotFoundError):
            await registry.remove("nope", GUILD)

    @pytest.mark.asyncio
    async def test_not_installed_here_is_not_found(self, registry):
        await registry.install(_manifest("pack-a"), "other-guild", "u1")
        with pytest.raises(PackNotFoundError):
            await registry.remove("pack-a", GUILD)

    @pytest.mark.asyncio
    async def test_remove_returns_manifest(self, registry):
        await registry.install(_manifest("pack-a", title="A"), GUILD, "u1")
        removed = await registry.remove("pack-a", GUILD)
        assert removed.id == "pack-a"
        assert removed.title == "A"


def test_cache_invalidate_drops_both_entries():
    cache = GuildPackCache()
    cache.set("g", [])
    cache.set_disabled("g", frozenset({"a:b"}))
    cache.invalidate("g")
    assert cache.get("g") is None
    assert cache.get_disabled("g") is None
