from __future__ import annotations

from dataclasses import dataclass

from utils.media_types import AggregatedCharacter, CharacterRole


@dataclass(frozen=True)
class Rating:
    """Star tier (1..5) derived from popularity and role. 0 means un-rateable."""

    stars: int

    @classmethod
    def from_popularity(cls, popularity: int, role: CharacterRole | None = None) -> "Rating":
        popularity = int(popularity or 0)

        if role == CharacterRole.BACKGROUND or popularity < 50_000:
            return cls(1)
        if popularity < 200_000:
            return cls(3 if role == CharacterRole.MAIN else 2)
        if popularity < 400_000:
            return cls(4 if role == CharacterRole.MAIN else 3)
        if role == CharacterRole.SUPPORTING:
            return cls(4)
        return cls(5)

    @classmethod
    def from_character(cls, character) -> "Rating":
        """Own popularity wins; otherwise the first media edge's popularity and role."""
        if character.popularity:
            return cls.from_popularity(character.popularity)

        if isinstance(character, AggregatedCharacter) and character.media:
            edge = character.media[0]
            popularity = getattr(edge.node, "popularity", None)
            if popularity:
                return cls.from_popularity(popularity, edge.role)

        return cls(0)

    @property
    def emotes(self) -> str:
        return "★" * self.stars + "☆" * (5 - self.stars)
