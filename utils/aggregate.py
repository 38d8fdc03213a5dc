from __future__ import annotations

"""One-hop aggregation: replace a media/character's id references with edges.

- Aggregated input is never re-fetched; only edges whose node became disabled
  are dropped. This is what stops recursion: nodes coming back from a lookup
  are not aggregated themselves.
- Disaggregated input resolves its (optionally sliced) references in one
  batch per kind. Unresolvable references are dropped. Repeated targets with
  different tags each become their own edge.
"""

import asyncio
from dataclasses import fields, replace

from utils.ids import format_id, parse_id
from utils.media_types import (
    AggregatedCharacter,
    AggregatedMedia,
    Character,
    DisaggregatedCharacter,
    DisaggregatedMedia,
    Media,
    RelationEdge,
    RoleEdge,
    _CharacterBase,
    _MediaBase,
    compound_id,
)


def _slice(refs: list, start: int, end: int | None) -> list:
    if end:
        return refs[start : start + end]
    return refs[start:]


def _base_fields(obj, base) -> dict:
    return {f.name: getattr(obj, f.name) for f in fields(base)}


class Aggregator:
    def __init__(self, registry, resolver) -> None:
        self.registry = registry
        self.resolver = resolver

    def _keep(self, refs: list, attr: str, pack_id: str | None, disabled: frozenset[str]) -> list[tuple]:
        """(ref, normalized id) pairs for refs that parse and aren't disabled."""
        out = []
        for ref in refs:
            pid, lid = parse_id(getattr(ref, attr), pack_id)
            if not pid or not lid:
                continue
            cid = format_id(pid, lid)
            if cid in disabled:
                continue
            out.append((ref, cid))
        return out

    async def aggregate(
        self,
        *,
        media: Media | None = None,
        character: Character | None = None,
        start: int = 0,
        end: int | None = None,
        guild_id: str | None = None,
    ) -> AggregatedMedia | AggregatedCharacter:
        start = start or 0
        disabled = await self.registry.disabled_ids(guild_id)

        if media is not None:
            if isinstance(media, AggregatedMedia):
                return replace(
                    media,
                    relations=[e for e in media.relations if compound_id(e.node) not in disabled],
                    characters=[e for e in media.characters if compound_id(e.node) not in disabled],
                )

            if not isinstance(media, DisaggregatedMedia):
                raise TypeError(f"cannot aggregate {type(media).__name__}")

            relations = self._keep(_slice(media.relations, start, end), "media_id", media.pack_id, disabled)
            characters = self._keep(_slice(media.characters, start, end), "character_id", media.pack_id, disabled)

            media_refs, character_refs = await asyncio.gather(
                self.resolver.find_by_id("media", [cid for _, cid in relations], guild_id),
                self.resolver.find_by_id("characters", [cid for _, cid in characters], guild_id),
            )

            return AggregatedMedia(
                **_base_fields(media, _MediaBase),
                relations=[
                    RelationEdge(relation=ref.relation, node=media_refs[cid])
                    for ref, cid in relations
                    if cid in media_refs
                ],
                characters=[
                    RoleEdge(role=ref.role, node=character_refs[cid])
                    for ref, cid in characters
                    if cid in character_refs
                ],
            )

        if character is not None:
            if isinstance(character, AggregatedCharacter):
                return replace(
                    character,
                    media=[e for e in character.media if compound_id(e.node) not in disabled],
                )

            if not isinstance(character, DisaggregatedCharacter):
                raise TypeError(f"cannot aggregate {type(character).__name__}")

            refs = self._keep(_slice(character.media, start, end), "media_id", character.pack_id, disabled)
            media_refs = await self.resolver.find_by_id("media", [cid for _, cid in refs], guild_id)

            return AggregatedCharacter(
                **_base_fields(character, _CharacterBase),
                media=[RoleEdge(role=ref.role, node=media_refs[cid]) for ref, cid in refs if cid in media_refs],
            )

        raise ValueError("aggregate() needs media or character")
