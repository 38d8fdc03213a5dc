"""Tests for reply mapping in core/gacha_flow.py (no Discord connection)."""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from core.gacha_flow import GachaFlow, PacksFlow
from utils.anilist import CatalogRateLimitError
from utils.errors import NonFatalError, PoolError
from utils.gacha import Pull
from utils.media_types import AggregatedCharacter, AggregatedMedia, Alias, CharacterRole, RoleEdge
from utils.rating import Rating
from utils.services import Services

GUILD = "guild-1"
USER = "42"


def _pull(role=CharacterRole.MAIN) -> Pull:
    media = AggregatedMedia(id="10", pack_id="anilist", title=Alias(english="Show"), popularity=60_000)
    character = AggregatedCharacter(
        id="1",
        pack_id="anilist",
        name=Alias(english="Hero"),
        media=[RoleEdge(role=role, node=media)],
    )
    return Pull(character=character, media=media, rating=Rating(3))


def _services(registry=None, *, pull=None, error=None, liked=None) -> Services:
    engine = AsyncMock()
    if error is not None:
        engine.rng_pull.side_effect = error
    else:
        engine.rng_pull.return_value = pull or _pull()
    inventory = AsyncMock()
    if isinstance(liked, Exception):
        inventory.get_active_users_if_liked.side_effect = liked
    else:
        inventory.get_active_users_if_liked.return_value = liked or []
    return Services(registry=registry, resolver=MagicMock(), pools=MagicMock(), engine=engine, inventory=inventory)


class TestGachaFlow:

    @pytest.mark.asyncio
    async def test_successful_pull(self):
        replies = await GachaFlow(_services(), enabled=True).start(guild_id=GUILD, user_id=USER, mention=True)
        assert len(replies) == 1
        assert replies[0].embed.title == "Hero"
        assert replies[0].embed.description == Rating(3).emotes
        assert replies[0].content == f"<@{USER}>"

    @pytest.mark.asyncio
    async def test_disabled(self):
        services = _services()
        replies = await GachaFlow(services, enabled=False).start(guild_id=GUILD, user_id=USER)
        assert "maintenance" in replies[0].embed.description
        services.engine.rng_pull.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_pool_error_guaranteed(self):
        flow = GachaFlow(_services(error=PoolError()), enabled=True)
        replies = await flow.start(guild_id=GUILD, user_id=USER, guarantee=5)
        assert replies[0].embed.title == "Nothing available"
        assert replies[0].embed.description == "There are no more 5★ characters left to pull."

    @pytest.mark.asyncio
    async def test_pool_error(self):
        flow = GachaFlow(_services(error=PoolError()), enabled=True)
        replies = await flow.start(guild_id=GUILD, user_id=USER)
        assert replies[0].embed.description == "There are no more characters left to pull."

    @pytest.mark.asyncio
    async def test_non_fatal_message_shown(self):
        flow = GachaFlow(_services(error=NonFatalError("Not yours anymore")), enabled=True)
        replies = await flow.start(guild_id=GUILD, user_id=USER)
        assert replies[0].embed.description == "Not yours anymore"
        assert replies[0].ephemeral

    @pytest.mark.asyncio
    async def test_rate_limited(self):
        err = CatalogRateLimitError("https://graphql.anilist.co", "q", None, "", status_code=429, retry_after=30)
        replies = await GachaFlow(_services(error=err), enabled=True).start(guild_id=GUILD, user_id=USER)
        assert "Try again in 30s." in replies[0].embed.description

    @pytest.mark.asyncio
    async def test_unexpected_error_has_reference(self):
        flow = GachaFlow(_services(error=KeyError("boom")), enabled=True)
        with patch("core.gacha_flow.capture_exception", return_value="abc123") as capture:
            replies = await flow.start(guild_id=GUILD, user_id=USER)
        assert "`abc123`" in replies[0].embed.description
        assert capture.call_args.kwargs["guild_id"] == GUILD

    @pytest.mark.asyncio
    async def test_liked_users_pinged_without_puller(self):
        services = _services(liked=["7", USER, "8"])
        replies = await GachaFlow(services, enabled=True).start(guild_id=GUILD, user_id=USER)
        assert len(replies) == 2
        assert replies[1].content == "<@7> <@8>"
        assert replies[1].ping
        kwargs = services.inventory.get_active_users_if_liked.await_args.kwargs
        assert kwargs["character_id"] == "anilist:1"
        assert kwargs["media_ids"] == ["anilist:10"]

    @pytest.mark.asyncio
    async def test_background_character_pings_nobody(self):
        services = _services(pull=_pull(CharacterRole.BACKGROUND), liked=["7"])
        replies = await GachaFlow(services, enabled=True).start(guild_id=GUILD, user_id=USER)
        assert len(replies) == 1
        services.inventory.get_active_users_if_liked.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_liked_lookup_failure_keeps_pull(self):
        services = _services(liked=RuntimeError("db down"))
        replies = await GachaFlow(services, enabled=True).start(guild_id=GUILD, user_id=USER)
        assert len(replies) == 1
        assert replies[0].embed.title == "Hero"


class TestPacksFlow:

    @pytest.mark.asyncio
    async def test_remove_not_installed(self, registry):
        reply = await PacksFlow(_services(registry)).remove(guild_id=GUILD, manifest_id="nope")
        assert reply.embed.description == "`nope` is not installed."
        assert reply.ephemeral

    @pytest.mark.asyncio
    async def test_install_conflict_explained(self, registry):
        await registry.install({"id": "pack-a"}, GUILD, "u1")
        manifest = {"id": "pack-b", "conflicts": ["pack-a"]}
        with patch("utils.packs.github.fetch_manifest", new=AsyncMock(return_value=(1, manifest))):
            reply = await PacksFlow(_services(registry)).install(
                guild_id=GUILD, user_id="u1", github="https://github.com/o/r"
            )
        assert reply.embed.title == "Install failed"
        assert "This pack conflicts with pack-a" in reply.embed.description

    @pytest.mark.asyncio
    async def test_install_bad_url(self, registry):
        reply = await PacksFlow(_services(registry)).install(guild_id=GUILD, user_id="u1", github="not a url")
        assert reply.embed.description == "Invalid GitHub URL"

    @pytest.mark.asyncio
    async def test_page(self, registry):
        reply = await PacksFlow(_services(registry)).page(guild_id=GUILD, index=1)
        assert reply.embed.title == "vtubers"
        assert reply.embed.footer.text == "2/2"
