from __future__ import annotations

"""Entity resolution across the catalog and every installed pack.

Two entry points:
- ``find_by_id``: exact lookup by compound id; malformed, unknown and disabled
  ids are silently dropped, so callers must tolerate sparse results.
- ``search_many`` / ``search_one``: fuzzy lookup by name/title, ranked by
  similarity then popularity.
"""

import asyncio
import logging
from typing import Any, Literal

from utils import anilist
from utils.aggregate import Aggregator
from utils.errors import PackNotFoundError
from utils.ids import format_id, parse_id
from utils.media_types import (
    Entity,
    Manifest,
    MediaCharacterPage,
    compound_id,
    entity_aliases,
)
from utils.titles import alias_to_array, similarity

logger = logging.getLogger("bot.resolver")

Key = Literal["media", "characters"]

DEFAULT_THRESHOLD = 65


def _section(manifest: Manifest | None, key: Key) -> list[Any]:
    if manifest is None:
        return []
    return list(getattr(manifest, key).new)


class EntityResolver:
    def __init__(self, registry, *, catalog: Any = anilist) -> None:
        self.registry = registry
        self.catalog = catalog
        self.aggregator = Aggregator(registry, self)

    async def _catalog_lookup(self, key: Key, **kwargs) -> list[Entity]:
        if key == "media":
            return list(await self.catalog.media(**kwargs))
        return list(await self.catalog.characters(**kwargs))

    # -----------------------------
    # Exact lookup
    # -----------------------------

    async def find_by_id(
        self,
        key: Key,
        ids: list[str],
        guild_id: str | None,
        default_pack_id: str | None = None,
    ) -> dict[str, Entity]:
        """Resolve compound ids to entities, keyed by normalized compound id."""
        disabled = await self.registry.disabled_ids(guild_id)

        catalog_ids: list[str] = []
        pack_ids: list[tuple[str, str]] = []

        seen: set[str] = set()
        for literal in ids:
            pack_id, local_id = parse_id(literal, default_pack_id)
            if not pack_id or not local_id:
                continue

            cid = format_id(pack_id, local_id)
            if cid in seen or cid in disabled:
                continue
            seen.add(cid)

            if pack_id == anilist.PACK_ID:
                catalog_ids.append(local_id)
            else:
                pack_ids.append((pack_id, local_id))

        results: dict[str, Entity] = {}

        if pack_ids:
            manifests = await self.registry.manifests(guild_id)
            for pack_id, local_id in pack_ids:
                match = next((m for m in _section(manifests.get(pack_id), key) if m.id == local_id), None)
                if match is not None:
                    results[format_id(pack_id, local_id)] = match

        if catalog_ids:
            for item in await self._catalog_lookup(key, ids=catalog_ids):
                results[compound_id(item)] = item

        return results

    # -----------------------------
    # Fuzzy lookup
    # -----------------------------

    async def search_many(
        self,
        key: Key,
        search: str,
        guild_id: str | None,
        threshold: int = DEFAULT_THRESHOLD,
    ) -> list[Entity]:
        catalog_hits, packs, disabled = await asyncio.gather(
            self._catalog_lookup(key, search=search),
            self.registry.list_packs(guild_id),
            self.registry.disabled_ids(guild_id),
        )

        candidates: list[Entity] = list(catalog_hits)
        for pack in packs:
            candidates.extend(_section(pack.manifest, key))

        scored: list[tuple[int, Entity]] = []
        for item in candidates:
            if compound_id(item) in disabled:
                continue

            aliases = alias_to_array(entity_aliases(item))
            # an item without any alias ends the whole search
            if not aliases:
                return []

            score = max(similarity(search, alias) for alias in aliases)
            if score < threshold:
                continue
            scored.append((score, item))

        # stable: equal score and popularity keep candidate order
        scored.sort(key=lambda t: (-t[0], -(t[1].popularity or 0)))
        return [item for _, item in scored]

    async def search_one(self, key: Key, search: str, guild_id: str | None) -> Entity | None:
        results = await self.search_many(key, search, guild_id)
        return results[0] if results else None

    # -----------------------------
    # Convenience wrappers
    # -----------------------------

    async def media(
        self,
        *,
        ids: list[str] | None = None,
        search: str | None = None,
        guild_id: str | None = None,
    ) -> list[Entity]:
        if ids:
            return list((await self.find_by_id("media", ids, guild_id)).values())
        if search:
            match = await self.search_one("media", search, guild_id)
            return [match] if match is not None else []
        return []

    async def characters(
        self,
        *,
        ids: list[str] | None = None,
        search: str | None = None,
        guild_id: str | None = None,
    ) -> list[Entity]:
        if ids:
            return list((await self.find_by_id("characters", ids, guild_id)).values())
        if search:
            match = await self.search_one("characters", search, guild_id)
            return [match] if match is not None else []
        return []

    async def media_characters(self, media_id: str, guild_id: str | None, index: int) -> MediaCharacterPage:
        pack_id, local_id = parse_id(media_id)

        if not pack_id or not local_id or await self.registry.is_disabled(media_id, guild_id):
            raise PackNotFoundError(media_id)

        if pack_id == anilist.PACK_ID:
            # catalog ids are numeric
            if not local_id.isdigit():
                raise PackNotFoundError(media_id)
            return await self.catalog.media_characters(local_id, index)

        manifests = await self.registry.manifests(guild_id)
        match = next((m for m in _section(manifests.get(pack_id), "media") if m.id == local_id), None)
        if match is None:
            return MediaCharacterPage()

        total = len(match.characters)
        media = await self.aggregator.aggregate(media=match, start=index, end=1, guild_id=guild_id)

        return MediaCharacterPage(
            media=media,
            character=media.characters[0].node if media.characters else None,
            total=total,
            next=index + 1 < total,
        )
