from __future__ import annotations

"""Turns pull / pack outcomes into replies.

Commands call into these flows and just send what comes back. Every failure
mode ends as an embed:
- PoolError          -> "nothing available"
- NonFatalError      -> its own message
- catalog 429        -> "try again in ..."
- anything else      -> "unexpected error" + reference id (logged with traceback)
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import discord

import config
from core import ui_embeds
from core.ui import format_retry_after
from utils.anilist import CatalogRateLimitError
from utils.errors import NonFatalError, PackNotFoundError, PoolError
from utils.media_types import CharacterRole, PackType, compound_id
from utils.reporting import capture_exception
from utils.services import Services

logger = logging.getLogger("bot.gacha_flow")


@dataclass
class FlowReply:
    embed: discord.Embed
    content: Optional[str] = None
    ephemeral: bool = False
    ping: bool = False


def _unexpected(err: Exception, **context: Any) -> FlowReply:
    ref = capture_exception(err, **context)
    return FlowReply(
        embed=ui_embeds.error(f"An unexpected error occurred. Reference: `{ref}`"),
        ephemeral=True,
    )


def _rate_limited(err: CatalogRateLimitError) -> FlowReply:
    retry = format_retry_after(int(err.retry_after or 0))
    return FlowReply(embed=ui_embeds.error(f"The catalog is busy right now.{retry}"), ephemeral=True)


class GachaFlow:
    def __init__(self, services: Services, *, enabled: bool | None = None) -> None:
        self.services = services
        self.enabled = bool(getattr(config, "GACHA_ENABLED", True)) if enabled is None else enabled

    async def start(
        self,
        *,
        guild_id: str,
        user_id: str,
        guarantee: int | None = None,
        mention: bool = False,
    ) -> list[FlowReply]:
        if not self.enabled:
            return [FlowReply(embed=ui_embeds.error("Gacha is under maintenance, try again later."), ephemeral=True)]

        try:
            pull = await self.services.engine.rng_pull(guild_id, user_id, guarantee=guarantee)
        except PoolError:
            if guarantee is not None:
                msg = f"There are no more {guarantee}★ characters left to pull."
            else:
                msg = "There are no more characters left to pull."
            return [FlowReply(embed=ui_embeds.error(msg, title="Nothing available"))]
        except NonFatalError as e:
            return [FlowReply(embed=ui_embeds.error(str(e)), ephemeral=True)]
        except CatalogRateLimitError as e:
            return [_rate_limited(e)]
        except Exception as e:
            return [_unexpected(e, guild_id=guild_id, user_id=user_id, guarantee=guarantee)]

        replies = [
            FlowReply(
                embed=ui_embeds.pull_embed(pull),
                content=f"<@{user_id}>" if mention else None,
                ping=mention,
            )
        ]

        role = pull.character.media[0].role if pull.character.media else None
        if role == CharacterRole.BACKGROUND:
            return replies

        media_ids = [compound_id(pull.media)] + [compound_id(e.node) for e in pull.media.relations]
        try:
            liked = await self.services.inventory.get_active_users_if_liked(
                guild_id=guild_id,
                character_id=compound_id(pull.character),
                media_ids=media_ids,
            )
        except Exception:
            # the pull itself already succeeded
            logger.exception("Liked-users lookup failed for %s", compound_id(pull.character))
            return replies

        liked = [u for u in liked if u != str(user_id)]
        if liked:
            replies.append(
                FlowReply(
                    embed=ui_embeds.character_embed(pull.character, rating=pull.rating),
                    content=ui_embeds.liked_ping_content(liked),
                    ping=True,
                )
            )
        return replies


class PacksFlow:
    def __init__(self, services: Services) -> None:
        self.services = services

    async def install(
        self,
        *,
        guild_id: str,
        user_id: str,
        github: str,
        ref: str | None = None,
        shallow: bool = False,
    ) -> FlowReply:
        try:
            result = await self.services.registry.install_from_github(
                github, guild_id, user_id, ref=ref, shallow=shallow
            )
        except NonFatalError as e:
            return FlowReply(embed=ui_embeds.error(str(e)), ephemeral=True)
        except Exception as e:
            return _unexpected(e, guild_id=guild_id, user_id=user_id, github=github)
        return FlowReply(embed=ui_embeds.install_result_embed(result), ephemeral=not result.ok)

    async def remove(self, *, guild_id: str, manifest_id: str) -> FlowReply:
        try:
            manifest = await self.services.registry.remove(manifest_id, guild_id)
        except PackNotFoundError:
            return FlowReply(embed=ui_embeds.error(f"`{manifest_id}` is not installed."), ephemeral=True)
        except Exception as e:
            return _unexpected(e, guild_id=guild_id, manifest_id=manifest_id)
        return FlowReply(embed=ui_embeds.success(f"Removed `{manifest.id}`."))

    async def page(self, *, guild_id: str, type: PackType | None = None, index: int = 0) -> FlowReply:
        page = await self.services.registry.pages(guild_id, type, index)
        return FlowReply(embed=ui_embeds.pack_page_embed(page))
