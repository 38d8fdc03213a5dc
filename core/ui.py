from __future__ import annotations

from typing import Optional

import discord


async def safe_defer(interaction: discord.Interaction, *, ephemeral: bool = False) -> None:
    """Defer once; pulls and catalog lookups can take longer than the 3s ack window."""
    try:
        if not interaction.response.is_done():
            await interaction.response.defer(ephemeral=ephemeral, thinking=True)
    except discord.HTTPException:
        pass


async def send_reply(
    interaction: discord.Interaction,
    *,
    embed: discord.Embed,
    content: Optional[str] = None,
    ephemeral: bool = False,
    ping: bool = False,
) -> None:
    """Send an embed as the first response or as a followup, whichever is still available."""
    mentions = discord.AllowedMentions(users=True) if ping else discord.AllowedMentions.none()
    if interaction.response.is_done():
        await interaction.followup.send(content=content, embed=embed, ephemeral=ephemeral, allowed_mentions=mentions)
    else:
        await interaction.response.send_message(
            content=content, embed=embed, ephemeral=ephemeral, allowed_mentions=mentions
        )


def format_retry_after(seconds: Optional[int]) -> str:
    if not seconds or seconds <= 0:
        return ""
    seconds = int(seconds)
    if seconds < 60:
        return f" Try again in {seconds}s."
    minutes, sec = divmod(seconds, 60)
    return f" Try again in {minutes}m {sec}s."
