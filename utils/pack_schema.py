from __future__ import annotations

"""Manifest schema validation (install boundary).

Pass/fail only: ``validate()`` returns a ValidationResult whose ``error`` is a
human-readable explanation when the manifest cannot be installed.
"""

from dataclasses import dataclass
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from utils.media_types import CharacterRole, MediaFormat, MediaRelation, MediaType

RESERVED_IDS = ("anilist", "vtubers")

_ID_PATTERN = r"^[-_a-z0-9]+$"
_REF_PATTERN = r"^([-_a-z0-9]+:)?[-_a-z0-9]+$"
_COMPOUND_PATTERN = r"^[-_a-z0-9]+:[-_a-z0-9]+$"


class _Alias(BaseModel):
    english: Optional[str] = Field(default=None, max_length=128)
    romaji: Optional[str] = Field(default=None, max_length=128)
    native: Optional[str] = Field(default=None, max_length=128)
    alternative: list[str] = Field(default_factory=list)


class _Artist(BaseModel):
    username: str
    url: Optional[str] = None


class _Image(BaseModel):
    url: str
    artist: Optional[_Artist] = None


class _ExternalLink(BaseModel):
    site: str
    url: str


class _Trailer(BaseModel):
    id: str
    site: Literal["youtube"] = "youtube"


class _RelationRef(BaseModel):
    relation: MediaRelation
    mediaId: str = Field(pattern=_REF_PATTERN)


class _CharacterRef(BaseModel):
    role: CharacterRole
    characterId: str = Field(pattern=_REF_PATTERN)


class _MediaRef(BaseModel):
    role: CharacterRole
    mediaId: str = Field(pattern=_REF_PATTERN)


class _Media(BaseModel):
    id: str = Field(pattern=_ID_PATTERN)
    type: MediaType
    format: MediaFormat
    title: _Alias
    description: Optional[str] = Field(default=None, max_length=2048)
    popularity: Optional[int] = Field(default=None, ge=0)
    images: list[_Image] = Field(default_factory=list)
    externalLinks: list[_ExternalLink] = Field(default_factory=list)
    trailer: Optional[_Trailer] = None
    relations: list[_RelationRef] = Field(default_factory=list)
    characters: list[_CharacterRef] = Field(default_factory=list)


class _Character(BaseModel):
    id: str = Field(pattern=_ID_PATTERN)
    name: _Alias
    description: Optional[str] = Field(default=None, max_length=2048)
    popularity: Optional[int] = Field(default=None, ge=0)
    gender: Optional[str] = None
    age: Optional[str] = None
    images: list[_Image] = Field(default_factory=list)
    externalLinks: list[_ExternalLink] = Field(default_factory=list)
    media: list[_MediaRef] = Field(default_factory=list)


class _MediaSection(BaseModel):
    new: list[_Media] = Field(default_factory=list)
    conflicts: list[str] = Field(default_factory=list)


class _CharacterSection(BaseModel):
    new: list[_Character] = Field(default_factory=list)
    conflicts: list[str] = Field(default_factory=list)


class ManifestSchema(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(pattern=_ID_PATTERN, min_length=1, max_length=20)
    title: Optional[str] = Field(default=None, max_length=128)
    description: Optional[str] = Field(default=None, max_length=2048)
    author: Optional[str] = Field(default=None, max_length=128)
    image: Optional[str] = None
    url: Optional[str] = None
    nsfw: bool = False
    depends: list[str] = Field(default_factory=list)
    conflicts: list[str] = Field(default_factory=list)
    media: Optional[_MediaSection] = None
    characters: Optional[_CharacterSection] = None


@dataclass(frozen=True)
class ValidationResult:
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def purge_reserved_props(data: dict[str, Any]) -> dict[str, Any]:
    """Drop editor-only keys such as ``$schema``."""
    return {k: v for k, v in data.items() if not str(k).startswith("$")}


def _format_errors(err: ValidationError) -> str:
    lines: list[str] = []
    for e in err.errors():
        loc = "/".join(str(p) for p in e.get("loc") or ()) or "(root)"
        lines.append(f"{loc}: {e.get('msg')}")
    return "\n".join(lines)


def validate(data: Any) -> ValidationResult:
    if not isinstance(data, dict):
        return ValidationResult(error="manifest must be a JSON object")

    data = purge_reserved_props(data)

    if data.get("id") in RESERVED_IDS:
        return ValidationResult(error=f"{data['id']} is a reserved id")

    try:
        ManifestSchema.model_validate(data)
    except ValidationError as e:
        return ValidationResult(error=_format_errors(e))

    return ValidationResult()
