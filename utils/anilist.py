from __future__ import annotations

"""Public media catalog (AniList GraphQL).

Only three lookups are needed by the core:
- resolve by id list,
- fuzzy search by string,
- one page (one character) of a media's cast.

Catalog entities come back already aggregated (one hop) and are tagged with
pack id ``anilist``. When the catalog rate-limits us (429) the "catalog"
circuit breaker is tripped; while it is open every lookup returns nothing.
"""

import logging
from typing import Any

import config
from utils import backpressure
from utils import graphql
from utils.graphql import GraphQLError
from utils.media_types import (
    Alias,
    AggregatedCharacter,
    AggregatedMedia,
    CharacterRole,
    ExternalLink,
    Image,
    MediaCharacterPage,
    MediaFormat,
    MediaRelation,
    MediaType,
    RelationEdge,
    RoleEdge,
    Trailer,
)

logger = logging.getLogger("bot.anilist")

PACK_ID = "anilist"
BREAKER = "catalog"


class CatalogRateLimitError(GraphQLError):
    """The catalog answered 429."""


# ----------------------------
# Queries
# ----------------------------

_MEDIA_NODE = """
  id
  type
  format
  popularity
  description
  title { romaji english native }
  synonyms
  coverImage { extraLarge }
"""

_CHARACTER_NODE = """
  id
  age
  gender
  description
  name { full native alternative }
  image { large }
"""

_MEDIA_FIELDS = f"""
  {_MEDIA_NODE}
  externalLinks {{ site url }}
  trailer {{ id site }}
  relations {{ edges {{ relationType node {{ {_MEDIA_NODE} }} }} }}
  characters(perPage: 25, sort: [ROLE, RELEVANCE, ID]) {{
    edges {{ role node {{ {_CHARACTER_NODE} }} }}
  }}
"""

_CHARACTER_FIELDS = f"""
  {_CHARACTER_NODE}
  media(sort: POPULARITY_DESC) {{
    edges {{ characterRole node {{ {_MEDIA_NODE} }} }}
  }}
"""

_MEDIA_BY_IDS = f"""
query ($ids: [Int]) {{
  Page {{ media(id_in: $ids) {{ {_MEDIA_FIELDS} }} }}
}}
"""

_MEDIA_SEARCH = f"""
query ($search: String) {{
  Page {{ media(search: $search, sort: [SEARCH_MATCH]) {{ {_MEDIA_FIELDS} }} }}
}}
"""

_CHARACTERS_BY_IDS = f"""
query ($ids: [Int]) {{
  Page {{ characters(id_in: $ids) {{ {_CHARACTER_FIELDS} }} }}
}}
"""

_CHARACTERS_SEARCH = f"""
query ($search: String) {{
  Page {{ characters(search: $search, sort: [SEARCH_MATCH]) {{ {_CHARACTER_FIELDS} }} }}
}}
"""

_MEDIA_CHARACTERS = f"""
query ($id: Int, $page: Int) {{
  Media(id: $id) {{
    {_MEDIA_NODE}
    characters(page: $page, perPage: 1, sort: [ROLE, RELEVANCE, ID]) {{
      pageInfo {{ total hasNextPage }}
      edges {{ role node {{ {_CHARACTER_FIELDS} }} }}
    }}
  }}
}}
"""


# ----------------------------
# Transport
# ----------------------------

def _url() -> str:
    return (getattr(config, "ANILIST_URL", None) or "https://graphql.anilist.co").strip()


def _timeout_s() -> float:
    return float(getattr(config, "ANILIST_TIMEOUT_S", 10.0) or 10.0)


async def _request(query: str, variables: dict[str, Any]) -> dict[str, Any] | None:
    """Returns None while the breaker is open."""
    remaining = await backpressure.is_open(BREAKER)
    if remaining:
        logger.debug("Catalog breaker open (%ss left); skipping request", remaining)
        return None

    try:
        return await graphql.request(_url(), query, variables, timeout_s=_timeout_s())
    except GraphQLError as e:
        if e.status_code == 429:
            await backpressure.trip(int(e.retry_after or 60), BREAKER)
            raise CatalogRateLimitError(
                e.url, e.query, e.variables, e.text,
                status_code=e.status_code, retry_after=e.retry_after,
            ) from e
        raise


def _int_ids(ids: list[str | int]) -> list[int]:
    out: list[int] = []
    for i in ids:
        try:
            out.append(int(i))
        except (TypeError, ValueError):
            continue
    return out


# ----------------------------
# Transform (catalog shape -> aggregated entities)
# ----------------------------

def _enum(cls, v):
    if v is None:
        return None
    try:
        return cls(str(v).upper())
    except ValueError:
        return None


def _title(d: dict) -> Alias:
    t = d.get("title") or {}
    return Alias(
        english=t.get("english"),
        romaji=t.get("romaji"),
        native=t.get("native"),
        alternative=[s for s in (d.get("synonyms") or []) if s],
    )


def _name(d: dict) -> Alias:
    n = d.get("name") or {}
    return Alias(
        english=n.get("full"),
        native=n.get("native"),
        alternative=[s for s in (n.get("alternative") or []) if s],
    )


def _media_node(d: dict) -> AggregatedMedia:
    cover = (d.get("coverImage") or {}).get("extraLarge")
    trailer = d.get("trailer") or None
    return AggregatedMedia(
        id=str(d.get("id")),
        pack_id=PACK_ID,
        type=_enum(MediaType, d.get("type")),
        format=_enum(MediaFormat, d.get("format")),
        title=_title(d),
        description=d.get("description"),
        popularity=d.get("popularity"),
        images=[Image(url=cover)] if cover else [],
        external_links=[
            ExternalLink(site=str(x.get("site") or ""), url=str(x["url"]))
            for x in (d.get("externalLinks") or [])
            if isinstance(x, dict) and x.get("url")
        ],
        trailer=Trailer(id=str(trailer["id"]), site=str(trailer.get("site") or "")) if trailer and trailer.get("id") else None,
    )


def _character_node(d: dict) -> AggregatedCharacter:
    image = (d.get("image") or {}).get("large")
    return AggregatedCharacter(
        id=str(d.get("id")),
        pack_id=PACK_ID,
        name=_name(d),
        description=d.get("description"),
        gender=d.get("gender"),
        age=d.get("age"),
        images=[Image(url=image)] if image else [],
    )


def transform_media(d: dict) -> AggregatedMedia:
    media = _media_node(d)
    media.relations = [
        RelationEdge(relation=_enum(MediaRelation, e.get("relationType")), node=_media_node(e["node"]))
        for e in ((d.get("relations") or {}).get("edges") or [])
        if e.get("node")
    ]
    media.characters = [
        RoleEdge(role=_enum(CharacterRole, e.get("role")), node=_character_node(e["node"]))
        for e in ((d.get("characters") or {}).get("edges") or [])
        if e.get("node")
    ]
    return media


def transform_character(d: dict) -> AggregatedCharacter:
    character = _character_node(d)
    character.media = [
        RoleEdge(role=_enum(CharacterRole, e.get("characterRole")), node=_media_node(e["node"]))
        for e in ((d.get("media") or {}).get("edges") or [])
        if e.get("node")
    ]
    return character


# ----------------------------
# Public API
# ----------------------------

async def media(*, ids: list[str | int] | None = None, search: str | None = None) -> list[AggregatedMedia]:
    if ids is not None:
        int_ids = _int_ids(ids)
        if not int_ids:
            return []
        data = await _request(_MEDIA_BY_IDS, {"ids": int_ids})
    elif search:
        data = await _request(_MEDIA_SEARCH, {"search": search})
    else:
        return []

    items = ((data or {}).get("Page") or {}).get("media") or []
    return [transform_media(x) for x in items if isinstance(x, dict)]


async def characters(*, ids: list[str | int] | None = None, search: str | None = None) -> list[AggregatedCharacter]:
    if ids is not None:
        int_ids = _int_ids(ids)
        if not int_ids:
            return []
        data = await _request(_CHARACTERS_BY_IDS, {"ids": int_ids})
    elif search:
        data = await _request(_CHARACTERS_SEARCH, {"search": search})
    else:
        return []

    items = ((data or {}).get("Page") or {}).get("characters") or []
    return [transform_character(x) for x in items if isinstance(x, dict)]


async def media_characters(media_id: str | int, index: int) -> MediaCharacterPage:
    """The character at ``index`` of a media's cast (catalog pages are 1-based)."""
    int_ids = _int_ids([media_id])
    if not int_ids:
        return MediaCharacterPage()
    data = await _request(_MEDIA_CHARACTERS, {"id": int_ids[0], "page": int(index) + 1})
    raw = (data or {}).get("Media")
    if not raw:
        return MediaCharacterPage()

    chars = raw.get("characters") or {}
    page_info = chars.get("pageInfo") or {}
    edges = chars.get("edges") or []

    media_item = _media_node(raw)
    character = transform_character(edges[0]["node"]) if edges and edges[0].get("node") else None
    if character is not None:
        media_item.characters = [RoleEdge(role=_enum(CharacterRole, edges[0].get("role")), node=character)]

    return MediaCharacterPage(
        media=media_item,
        character=character,
        total=int(page_info.get("total") or 0),
        next=bool(page_info.get("hasNextPage")),
    )
