"""core/ui_embeds.py

Embed builders for pulls, packs and status replies.

Commands never build embeds themselves; they hand data to these helpers so
every reply shares one style (title + description + footer).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import discord

import config
from utils.gacha import Pull
from utils.media_types import Manifest, PackType, entity_aliases
from utils.packs import InstallResult, PackPage
from utils.rating import Rating
from utils.titles import alias_to_array, media_to_string


def _brand_name() -> str:
    return str(getattr(config, "BOT_NAME", "Fable") or "Fable")


def _base_embed(*, title: str, description: str) -> discord.Embed:
    e = discord.Embed(title=title, description=description)
    e.timestamp = datetime.now(timezone.utc)
    e.set_footer(text=_brand_name())
    return e


def success(description: str, *, title: Optional[str] = None) -> discord.Embed:
    return _base_embed(title=title or "✅ Success", description=description)


def error(description: str, *, title: Optional[str] = None) -> discord.Embed:
    return _base_embed(title=title or "❌ Error", description=description)


def info(description: str, *, title: Optional[str] = None) -> discord.Embed:
    return _base_embed(title=title or "ℹ️ Info", description=description)


# ----------------------------
# Gacha
# ----------------------------

def _first_image(item) -> str | None:
    return item.images[0].url if getattr(item, "images", None) else None


def pull_embed(pull: Pull) -> discord.Embed:
    names = alias_to_array(entity_aliases(pull.character), 128)
    e = discord.Embed(
        title=names[0] if names else "?",
        description=pull.rating.emotes,
    )
    e.add_field(name="Media", value=media_to_string(pull.media) or "?", inline=False)
    image = _first_image(pull.character)
    if image:
        e.set_image(url=image)
    e.set_footer(text=f"{pull.character.pack_id}:{pull.character.id}")
    return e


def character_embed(character, *, rating: Rating | None = None) -> discord.Embed:
    names = alias_to_array(entity_aliases(character), 128)
    e = discord.Embed(title=names[0] if names else "?", description=character.description or "")
    if rating is not None and rating.stars:
        e.add_field(name="Rating", value=rating.emotes, inline=False)
    if len(names) > 1:
        e.add_field(name="Aliases", value=", ".join(names[1:5]), inline=False)
    image = _first_image(character)
    if image:
        e.set_thumbnail(url=image)
    e.set_footer(text=f"{character.pack_id}:{character.id}")
    return e


def liked_ping_content(user_ids: list[str]) -> str:
    return " ".join(f"<@{uid}>" for uid in user_ids)


# ----------------------------
# Packs
# ----------------------------

def manifest_embed(manifest: Manifest, *, pack_type: PackType | None = None) -> discord.Embed:
    e = discord.Embed(
        title=manifest.title or manifest.id,
        description=manifest.description or "",
        url=manifest.url or None,
    )
    e.add_field(name="Id", value=f"`{manifest.id}`", inline=True)
    if pack_type is not None:
        e.add_field(name="Type", value=pack_type.value, inline=True)
    if manifest.author:
        e.add_field(name="Author", value=manifest.author, inline=True)
    e.add_field(
        name="Content",
        value=f"{len(manifest.media.new)} media, {len(manifest.characters.new)} characters",
        inline=False,
    )
    if manifest.image:
        e.set_thumbnail(url=manifest.image)
    return e


def pack_page_embed(page: PackPage) -> discord.Embed:
    if page.pack is None:
        return info("No packs installed.", title="Packs")
    e = manifest_embed(page.pack.manifest, pack_type=page.pack.type)
    e.set_footer(text=f"{page.index + 1}/{page.total}")
    return e


def install_result_embed(result: InstallResult) -> discord.Embed:
    if result.ok:
        mid = result.manifest.id if result.manifest else "?"
        if result.shallow:
            return success(f"`{mid}` is a valid pack.", title="Valid")
        return success(f"Installed `{mid}`.", title="Installed")
    return error(result.explanation(), title="Install failed")
