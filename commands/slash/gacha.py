# commands/slash/gacha.py
from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from core import ui_embeds
from core.gacha_flow import GachaFlow
from core.ui import format_retry_after, safe_defer, send_reply
from utils.anilist import CatalogRateLimitError
from utils.errors import PackNotFoundError
from utils.media_types import compound_id
from utils.rating import Rating

logger = logging.getLogger("bot.gacha")


class SlashGacha(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @property
    def services(self):
        return self.bot.services  # type: ignore[attr-defined]

    async def _pull(self, interaction: discord.Interaction, *, guarantee: int | None = None) -> None:
        await safe_defer(interaction)
        replies = await GachaFlow(self.services).start(
            guild_id=str(interaction.guild_id),
            user_id=str(interaction.user.id),
            guarantee=guarantee,
        )
        for reply in replies:
            await send_reply(
                interaction,
                embed=reply.embed,
                content=reply.content,
                ephemeral=reply.ephemeral,
                ping=reply.ping,
            )

    @app_commands.command(name="gacha", description="Pull a random character")
    @app_commands.guild_only()
    async def gacha(self, interaction: discord.Interaction):
        await self._pull(interaction)

    @app_commands.command(name="pull", description="Pull a character of a guaranteed star rating")
    @app_commands.describe(stars="Star rating to guarantee")
    @app_commands.guild_only()
    async def pull(self, interaction: discord.Interaction, stars: app_commands.Range[int, 1, 5]):
        await self._pull(interaction, guarantee=int(stars))

    @app_commands.command(name="character", description="Look up a character")
    @app_commands.describe(name="Character name")
    @app_commands.guild_only()
    async def character(self, interaction: discord.Interaction, name: str):
        await safe_defer(interaction)
        guild_id = str(interaction.guild_id)
        match = await self.services.resolver.search_one("characters", name, guild_id)
        if match is None:
            await send_reply(interaction, embed=ui_embeds.error("Found _nothing_ matching that query!"), ephemeral=True)
            return
        character = await self.services.resolver.aggregator.aggregate(character=match, guild_id=guild_id)
        await send_reply(interaction, embed=ui_embeds.character_embed(character, rating=Rating.from_character(character)))

    @app_commands.command(name="cast", description="Browse the characters of a media")
    @app_commands.describe(media_id="Media id (source:id)", page="Character number (starts at 1)")
    @app_commands.guild_only()
    async def cast(self, interaction: discord.Interaction, media_id: str, page: app_commands.Range[int, 1] = 1):
        await safe_defer(interaction)
        try:
            result = await self.services.resolver.media_characters(media_id.strip(), str(interaction.guild_id), page - 1)
        except PackNotFoundError:
            await send_reply(interaction, embed=ui_embeds.error("Found _nothing_ matching that query!"), ephemeral=True)
            return
        if result.character is None:
            await send_reply(interaction, embed=ui_embeds.info("This media has no characters."), ephemeral=True)
            return
        embed = ui_embeds.character_embed(result.character)
        embed.set_footer(text=f"{page}/{result.total}")
        await send_reply(interaction, embed=embed)

    @app_commands.command(name="like", description="Get pinged when someone pulls this character")
    @app_commands.describe(name="Character name")
    @app_commands.guild_only()
    async def like(self, interaction: discord.Interaction, name: str):
        await safe_defer(interaction, ephemeral=True)
        match = await self.services.resolver.search_one("characters", name, str(interaction.guild_id))
        if match is None:
            await send_reply(interaction, embed=ui_embeds.error("Found _nothing_ matching that query!"), ephemeral=True)
            return
        await self.services.inventory.like(user_id=str(interaction.user.id), character_id=compound_id(match))
        await send_reply(interaction, embed=ui_embeds.success("Liked."), ephemeral=True)

    @app_commands.command(name="unlike", description="Stop getting pinged for this character")
    @app_commands.describe(name="Character name")
    @app_commands.guild_only()
    async def unlike(self, interaction: discord.Interaction, name: str):
        await safe_defer(interaction, ephemeral=True)
        match = await self.services.resolver.search_one("characters", name, str(interaction.guild_id))
        if match is None:
            await send_reply(interaction, embed=ui_embeds.error("Found _nothing_ matching that query!"), ephemeral=True)
            return
        await self.services.inventory.unlike(user_id=str(interaction.user.id), character_id=compound_id(match))
        await send_reply(interaction, embed=ui_embeds.success("Unliked."), ephemeral=True)

    # ----------------------------
    # Error handling
    # ----------------------------

    async def cog_app_command_error(self, interaction: discord.Interaction, error: app_commands.AppCommandError) -> None:
        original = getattr(error, "original", error)
        if isinstance(original, CatalogRateLimitError):
            retry = format_retry_after(int(original.retry_after or 0))
            await send_reply(interaction, embed=ui_embeds.error(f"The catalog is busy right now.{retry}"), ephemeral=True)
            return

        logger.error("/%s command error: %s", getattr(interaction.command, "name", "?"), type(original).__name__, exc_info=original)
        await send_reply(interaction, embed=ui_embeds.error("Something went wrong running that command."), ephemeral=True)


async def setup(bot: commands.Bot):
    await bot.add_cog(SlashGacha(bot))
