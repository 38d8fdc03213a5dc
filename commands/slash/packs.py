# commands/slash/packs.py
from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from core import ui_embeds
from core.gacha_flow import PacksFlow
from core.ui import safe_defer, send_reply
from utils.media_types import PackType

logger = logging.getLogger("bot.packs")


class SlashPacks(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @property
    def flow(self) -> PacksFlow:
        return PacksFlow(self.bot.services)  # type: ignore[attr-defined]

    packs = app_commands.Group(
        name="packs",
        description="Content packs installed in this server",
        guild_only=True,
    )

    @packs.command(name="list", description="Browse installed packs")
    @app_commands.describe(type="Only builtin or only community packs", page="Page number (starts at 1)")
    @app_commands.choices(type=[
        app_commands.Choice(name="Builtin", value="builtin"),
        app_commands.Choice(name="Community", value="community"),
    ])
    async def packs_list(
        self,
        interaction: discord.Interaction,
        type: app_commands.Choice[str] | None = None,
        page: app_commands.Range[int, 1] = 1,
    ):
        reply = await self.flow.page(
            guild_id=str(interaction.guild_id),
            type=PackType(type.value) if type else None,
            index=page - 1,
        )
        await send_reply(interaction, embed=reply.embed, ephemeral=reply.ephemeral)

    @packs.command(name="install", description="Install a community pack from a GitHub repository")
    @app_commands.describe(github="Repository URL", ref="Branch, tag or commit (default branch if empty)")
    @app_commands.checks.has_permissions(manage_guild=True)
    async def packs_install(self, interaction: discord.Interaction, github: str, ref: str | None = None):
        await safe_defer(interaction)
        reply = await self.flow.install(
            guild_id=str(interaction.guild_id),
            user_id=str(interaction.user.id),
            github=github,
            ref=ref,
        )
        await send_reply(interaction, embed=reply.embed, ephemeral=reply.ephemeral)

    @packs.command(name="validate", description="Check a GitHub pack without installing it")
    @app_commands.describe(github="Repository URL", ref="Branch, tag or commit (default branch if empty)")
    async def packs_validate(self, interaction: discord.Interaction, github: str, ref: str | None = None):
        await safe_defer(interaction, ephemeral=True)
        reply = await self.flow.install(
            guild_id=str(interaction.guild_id),
            user_id=str(interaction.user.id),
            github=github,
            ref=ref,
            shallow=True,
        )
        await send_reply(interaction, embed=reply.embed, ephemeral=True)

    @packs.command(name="remove", description="Remove an installed community pack")
    @app_commands.describe(manifest_id="Pack id")
    @app_commands.checks.has_permissions(manage_guild=True)
    async def packs_remove(self, interaction: discord.Interaction, manifest_id: str):
        reply = await self.flow.remove(guild_id=str(interaction.guild_id), manifest_id=manifest_id.strip().lower())
        await send_reply(interaction, embed=reply.embed, ephemeral=reply.ephemeral)

    # ----------------------------
    # Error handling
    # ----------------------------

    async def cog_app_command_error(self, interaction: discord.Interaction, error: app_commands.AppCommandError) -> None:
        if isinstance(error, app_commands.MissingPermissions):
            await send_reply(
                interaction,
                embed=ui_embeds.error("You need the **Manage Server** permission to do that."),
                ephemeral=True,
            )
            return

        logger.error("/packs command error: %s", type(error).__name__, exc_info=error)
        await send_reply(interaction, embed=ui_embeds.error("Something went wrong running that command."), ephemeral=True)


async def setup(bot: commands.Bot):
    await bot.add_cog(SlashPacks(bot))
