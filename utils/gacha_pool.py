from __future__ import annotations

"""Candidate pools for a pull.

A range pull draws a popularity range (and, above the floor, a role) from a
weighted table, then takes every indexed catalog character in that range plus
every character of every installed pack. Pack characters are not
popularity-indexed; they are always included and the returned ``validate``
predicate sorts them out once the candidate is resolved.
"""

import logging
import math
import random
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

import config
from utils.errors import ConfigError
from utils.media_types import AggregatedCharacter, CharacterRole, DisaggregatedCharacter
from utils.pool_index import PoolEntry, PoolIndex
from utils.rating import Rating

logger = logging.getLogger("bot.gacha_pool")

T = TypeVar("T")

# popularity floor; a range starting here spans every role
LOWEST = 1000

INF = math.inf

VARIABLES: dict[str, dict[int, Any]] = {
    "roles": {
        10: CharacterRole.MAIN,
        70: CharacterRole.SUPPORTING,
        20: CharacterRole.BACKGROUND,
    },
    "ranges": {
        65: (LOWEST, 50_000),
        22: (50_000, 100_000),
        9: (100_000, 200_000),
        3: (200_000, 400_000),
        1: (400_000, INF),
    },
}

# special events (XMAS_EVENT)
BOOSTED_VARIABLES: dict[str, dict[int, Any]] = {
    "roles": {
        35: CharacterRole.MAIN,
        65: CharacterRole.SUPPORTING,
        0: CharacterRole.BACKGROUND,
    },
    "ranges": {
        20: (LOWEST, 50_000),
        40: (50_000, 100_000),
        25: (100_000, 200_000),
        10: (200_000, 400_000),
        5: (400_000, INF),
    },
}


@dataclass(frozen=True)
class WeightedDraw(Generic[T]):
    value: T
    chance: int


def rng(table: dict[int, T], rand: Callable[[], float] = random.random) -> WeightedDraw[T]:
    """Draw one value from a {chance%: value} table.

    Zero-chance entries are never drawn. Raises ConfigError unless the chances sum to 100.
    """
    total = sum(table.keys())
    if total != 100:
        raise ConfigError(f"Sum of {total} is not equal to 100")

    roll = rand() * 100
    cumulative = 0
    last: WeightedDraw[T] | None = None
    for chance, value in table.items():
        if chance <= 0:
            continue
        cumulative += chance
        last = WeightedDraw(value=value, chance=chance)
        if roll < cumulative:
            return last

    if last is None:
        raise ConfigError("No entry has a positive chance")
    # float edge (roll == 100.0)
    return last


def _in_range(popularity: int, rng_range: tuple[float, float]) -> bool:
    lo, hi = rng_range
    return popularity >= lo and (math.isinf(hi) or popularity <= hi)


def _first_edge(character) -> Any:
    if isinstance(character, AggregatedCharacter) and character.media:
        return character.media[0]
    return None


Validate = Callable[[Any], bool]


@dataclass
class PoolDraw:
    pool: list[PoolEntry]
    validate: Validate
    range: tuple[float, float] | None = None
    role: CharacterRole | None = None


def _accept_all(_character: Any) -> bool:
    return True


class GachaPoolBuilder:
    def __init__(
        self,
        registry,
        index: PoolIndex,
        *,
        boosted: bool | None = None,
        rand: Callable[[], float] = random.random,
    ) -> None:
        self.registry = registry
        self.index = index
        self.boosted = bool(getattr(config, "XMAS_EVENT", False)) if boosted is None else boosted
        self.rand = rand

    @property
    def variables(self) -> dict[str, dict[int, Any]]:
        return BOOSTED_VARIABLES if self.boosted else VARIABLES

    async def _with_packs(self, entries: list[PoolEntry], guild_id: str | None) -> list[PoolEntry]:
        """Append every pack character, then drop disabled ids."""
        pool = list(entries)
        for pack in await self.registry.list_packs(guild_id):
            pool.extend(PoolEntry(id=f"{pack.manifest.id}:{c.id}") for c in pack.manifest.characters.new)

        disabled = await self.registry.disabled_ids(guild_id)
        return [e for e in pool if e.id not in disabled]

    async def range_pool(self, guild_id: str | None) -> PoolDraw:
        rng_range = rng(self.variables["ranges"], self.rand).value

        # the floor range includes every role
        role: CharacterRole | None = None
        if rng_range[0] > LOWEST:
            role = rng(self.variables["roles"], self.rand).value

        pool = await self._with_packs(self.index.pool(role=role, popularity=rng_range), guild_id)

        def validate(character) -> bool:
            if character.popularity is not None and not _in_range(character.popularity, rng_range):
                return False

            if role is not None and isinstance(character, DisaggregatedCharacter):
                if not character.media or character.media[0].role != role:
                    return False

            edge = _first_edge(character)
            if edge is not None:
                popularity = character.popularity or getattr(edge.node, "popularity", None) or LOWEST
                if not _in_range(popularity, rng_range):
                    return False
                if role is not None and edge.role != role:
                    return False

            return True

        logger.debug("Range pool %s role=%s -> %d candidates", rng_range, role, len(pool))
        return PoolDraw(pool=pool, validate=validate, range=rng_range, role=role)

    async def guaranteed_pool(self, guild_id: str | None, guarantee: int) -> PoolDraw:
        pool = await self._with_packs(self.index.pool(rating=guarantee), guild_id)

        def validate(character) -> bool:
            if character.popularity is not None and Rating.from_popularity(character.popularity).stars != guarantee:
                return False

            edge = _first_edge(character)
            if edge is not None:
                popularity = character.popularity or getattr(edge.node, "popularity", None) or LOWEST
                if Rating.from_popularity(popularity, edge.role).stars != guarantee:
                    return False

            return True

        return PoolDraw(pool=pool, validate=validate)

    async def range_fallback_pool(self, guild_id: str | None) -> list[PoolEntry]:
        return await self._with_packs(self.index.pool(), guild_id)

    async def fallback(self, guild_id: str | None) -> PoolDraw:
        return PoolDraw(pool=await self.range_fallback_pool(guild_id), validate=_accept_all)
