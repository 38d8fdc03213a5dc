from __future__ import annotations

"""Media / character data model.

Entities come in two shapes:

- *Disaggregated*: relations are references by compound id (how manifests store them).
- *Aggregated*: relations are edges carrying the resolved node, one hop deep
  (how the catalog returns them and what rendering consumes).

The shape is part of the type: use ``isinstance`` against the concrete classes,
never probe for fields.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class MediaType(str, Enum):
    ANIME = "ANIME"
    MANGA = "MANGA"
    OTHER = "OTHER"


class MediaFormat(str, Enum):
    TV = "TV"
    TV_SHORT = "TV_SHORT"
    MOVIE = "MOVIE"
    SPECIAL = "SPECIAL"
    OVA = "OVA"
    ONA = "ONA"
    MUSIC = "MUSIC"
    MANGA = "MANGA"
    NOVEL = "NOVEL"
    ONE_SHOT = "ONE_SHOT"
    INTERNET = "INTERNET"


class MediaRelation(str, Enum):
    ADAPTATION = "ADAPTATION"
    PREQUEL = "PREQUEL"
    SEQUEL = "SEQUEL"
    PARENT = "PARENT"
    CONTAINS = "CONTAINS"
    SIDE_STORY = "SIDE_STORY"
    SPIN_OFF = "SPIN_OFF"
    OTHER = "OTHER"


class CharacterRole(str, Enum):
    MAIN = "MAIN"
    SUPPORTING = "SUPPORTING"
    BACKGROUND = "BACKGROUND"


class PackType(str, Enum):
    BUILTIN = "builtin"
    COMMUNITY = "community"


@dataclass
class Alias:
    english: str | None = None
    romaji: str | None = None
    native: str | None = None
    alternative: list[str] = field(default_factory=list)


@dataclass
class Image:
    url: str
    artist: str | None = None
    artist_url: str | None = None


@dataclass
class ExternalLink:
    site: str
    url: str


@dataclass
class Trailer:
    id: str
    site: str


# ---------------------------------------------------------------------------
# Relation references (disaggregated) and edges (aggregated)
# ---------------------------------------------------------------------------

@dataclass
class MediaRelationRef:
    relation: MediaRelation | None
    media_id: str


@dataclass
class MediaCharacterRef:
    role: CharacterRole | None
    character_id: str


@dataclass
class CharacterMediaRef:
    role: CharacterRole | None
    media_id: str


@dataclass
class RelationEdge:
    relation: MediaRelation | None
    node: "Media"


@dataclass
class RoleEdge:
    """Edge tagged by character role; node is a media or a character."""

    role: CharacterRole | None
    node: Any


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

@dataclass
class _MediaBase:
    id: str
    pack_id: str | None = None
    type: MediaType | None = None
    format: MediaFormat | None = None
    title: Alias = field(default_factory=Alias)
    description: str | None = None
    popularity: int | None = None
    images: list[Image] = field(default_factory=list)
    external_links: list[ExternalLink] = field(default_factory=list)
    trailer: Trailer | None = None


@dataclass
class DisaggregatedMedia(_MediaBase):
    relations: list[MediaRelationRef] = field(default_factory=list)
    characters: list[MediaCharacterRef] = field(default_factory=list)


@dataclass
class AggregatedMedia(_MediaBase):
    relations: list[RelationEdge] = field(default_factory=list)
    characters: list[RoleEdge] = field(default_factory=list)


@dataclass
class _CharacterBase:
    id: str
    pack_id: str | None = None
    name: Alias = field(default_factory=Alias)
    description: str | None = None
    popularity: int | None = None
    gender: str | None = None
    age: str | None = None
    images: list[Image] = field(default_factory=list)
    external_links: list[ExternalLink] = field(default_factory=list)


@dataclass
class DisaggregatedCharacter(_CharacterBase):
    media: list[CharacterMediaRef] = field(default_factory=list)


@dataclass
class AggregatedCharacter(_CharacterBase):
    media: list[RoleEdge] = field(default_factory=list)


Media = Union[DisaggregatedMedia, AggregatedMedia]
Character = Union[DisaggregatedCharacter, AggregatedCharacter]
Entity = Union[Media, Character]


def entity_aliases(item: Entity) -> Alias:
    if isinstance(item, (DisaggregatedCharacter, AggregatedCharacter)):
        return item.name
    return item.title


def compound_id(item: Entity) -> str:
    return f"{item.pack_id}:{item.id}"


# ---------------------------------------------------------------------------
# Manifests / packs
# ---------------------------------------------------------------------------

@dataclass
class ManifestSection:
    new: list[Any] = field(default_factory=list)
    conflicts: list[str] = field(default_factory=list)


@dataclass
class Manifest:
    id: str
    title: str | None = None
    description: str | None = None
    author: str | None = None
    image: str | None = None
    url: str | None = None
    nsfw: bool = False
    depends: list[str] = field(default_factory=list)
    conflicts: list[str] = field(default_factory=list)
    media: ManifestSection = field(default_factory=ManifestSection)
    characters: ManifestSection = field(default_factory=ManifestSection)


@dataclass
class Pack:
    manifest: Manifest
    type: PackType
    installed_by: str | None = None


# ---------------------------------------------------------------------------
# Wire (JSON) parsing
# ---------------------------------------------------------------------------

def _enum(cls: type[Enum], v: object) -> Any:
    if v is None:
        return None
    try:
        return cls(str(v).strip().upper())
    except ValueError:
        return None


def _opt_str(d: dict, key: str) -> str | None:
    v = d.get(key)
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def _opt_int(d: dict, key: str) -> int | None:
    v = d.get(key)
    if v is None or isinstance(v, bool):
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        return None


def _str_list(v: object) -> list[str]:
    if not isinstance(v, list):
        return []
    return [str(x).strip() for x in v if str(x).strip()]


def alias_from_dict(d: object) -> Alias:
    if not isinstance(d, dict):
        return Alias()
    return Alias(
        english=_opt_str(d, "english") or _opt_str(d, "full"),
        romaji=_opt_str(d, "romaji"),
        native=_opt_str(d, "native"),
        alternative=_str_list(d.get("alternative")),
    )


def _images_from_list(v: object) -> list[Image]:
    out: list[Image] = []
    for img in v if isinstance(v, list) else []:
        if not isinstance(img, dict) or not img.get("url"):
            continue
        artist = img.get("artist") if isinstance(img.get("artist"), dict) else {}
        out.append(
            Image(
                url=str(img["url"]),
                artist=_opt_str(artist, "username"),
                artist_url=_opt_str(artist, "url"),
            )
        )
    return out


def _links_from_list(v: object) -> list[ExternalLink]:
    return [
        ExternalLink(site=str(x.get("site") or ""), url=str(x["url"]))
        for x in (v if isinstance(v, list) else [])
        if isinstance(x, dict) and x.get("url")
    ]


def media_from_dict(d: dict, pack_id: str | None = None) -> DisaggregatedMedia:
    trailer = d.get("trailer")
    return DisaggregatedMedia(
        id=str(d.get("id") or ""),
        pack_id=pack_id or _opt_str(d, "packId"),
        type=_enum(MediaType, d.get("type")),
        format=_enum(MediaFormat, d.get("format")),
        title=alias_from_dict(d.get("title")),
        description=_opt_str(d, "description"),
        popularity=_opt_int(d, "popularity"),
        images=_images_from_list(d.get("images")),
        external_links=_links_from_list(d.get("externalLinks")),
        trailer=(
            Trailer(id=str(trailer["id"]), site=str(trailer.get("site") or ""))
            if isinstance(trailer, dict) and trailer.get("id")
            else None
        ),
        relations=[
            MediaRelationRef(relation=_enum(MediaRelation, r.get("relation")), media_id=str(r["mediaId"]))
            for r in (d.get("relations") or [])
            if isinstance(r, dict) and r.get("mediaId")
        ],
        characters=[
            MediaCharacterRef(role=_enum(CharacterRole, c.get("role")), character_id=str(c["characterId"]))
            for c in (d.get("characters") or [])
            if isinstance(c, dict) and c.get("characterId")
        ],
    )


def character_from_dict(d: dict, pack_id: str | None = None) -> DisaggregatedCharacter:
    return DisaggregatedCharacter(
        id=str(d.get("id") or ""),
        pack_id=pack_id or _opt_str(d, "packId"),
        name=alias_from_dict(d.get("name")),
        description=_opt_str(d, "description"),
        popularity=_opt_int(d, "popularity"),
        gender=_opt_str(d, "gender"),
        age=_opt_str(d, "age"),
        images=_images_from_list(d.get("images")),
        external_links=_links_from_list(d.get("externalLinks")),
        media=[
            CharacterMediaRef(role=_enum(CharacterRole, m.get("role")), media_id=str(m["mediaId"]))
            for m in (d.get("media") or [])
            if isinstance(m, dict) and m.get("mediaId")
        ],
    )


def _section_from_dict(d: object, parse, pack_id: str) -> ManifestSection:
    if not isinstance(d, dict):
        return ManifestSection()
    return ManifestSection(
        new=[parse(x, pack_id) for x in (d.get("new") or []) if isinstance(x, dict) and x.get("id")],
        conflicts=_str_list(d.get("conflicts")),
    )


def manifest_from_dict(d: dict) -> Manifest:
    mid = str(d.get("id") or "").strip()
    if not mid:
        raise ValueError("missing 'id'")
    return Manifest(
        id=mid,
        title=_opt_str(d, "title"),
        description=_opt_str(d, "description"),
        author=_opt_str(d, "author"),
        image=_opt_str(d, "image"),
        url=_opt_str(d, "url"),
        nsfw=bool(d.get("nsfw", False)),
        depends=_str_list(d.get("depends")),
        conflicts=_str_list(d.get("conflicts")),
        media=_section_from_dict(d.get("media"), media_from_dict, mid),
        characters=_section_from_dict(d.get("characters"), character_from_dict, mid),
    )


@dataclass
class MediaCharacterPage:
    """One character of a media's cast, for page-by-page browsing."""

    media: Media | None = None
    character: Character | None = None
    total: int = 0
    next: bool = False
