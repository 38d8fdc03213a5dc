from __future__ import annotations

"""Pull engine.

One pull samples candidates from a pool until one passes every check, all
within a wall-clock budget:

    sample -> resolve -> aggregate (first media only) -> validate
           -> media not disabled -> rating > 0 -> persist (optional) -> done

Any rejection loops back to sampling. Sampling is strictly sequential: each
attempt may write to the inventory store and must not race with itself.
The budget is a Deadline value checked at the top of every iteration; a
lookup already in flight when it passes is allowed to finish.
"""

import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Callable

import config
from utils import inventory_store
from utils.errors import PoolError
from utils.gacha_pool import GachaPoolBuilder
from utils.media_types import AggregatedCharacter, AggregatedMedia, compound_id
from utils.rating import Rating

logger = logging.getLogger("bot.gacha")


class Deadline:
    """A point on the monotonic clock."""

    def __init__(self, seconds: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._at = clock() + float(seconds)

    @property
    def remaining(self) -> float:
        return max(0.0, self._at - self._clock())

    @property
    def expired(self) -> bool:
        return self._clock() >= self._at


@dataclass
class Pull:
    character: AggregatedCharacter
    media: AggregatedMedia
    rating: Rating


class PullEngine:
    def __init__(
        self,
        *,
        registry,
        resolver,
        pools: GachaPoolBuilder,
        inventory: Any = inventory_store,
        timeout_s: float | None = None,
        rand: random.Random | None = None,
    ) -> None:
        self.registry = registry
        self.resolver = resolver
        self.pools = pools
        self.inventory = inventory
        self.timeout_s = float(getattr(config, "PULL_TIMEOUT_S", 60.0)) if timeout_s is None else float(timeout_s)
        self.rand = rand or random.Random()

    async def rng_pull(
        self,
        guild_id: str | None,
        user_id: str | None = None,
        *,
        guarantee: int | None = None,
        sacrifices: list[str] | None = None,
        deadline: Deadline | None = None,
    ) -> Pull:
        if guarantee is not None:
            draw = await self.pools.guaranteed_pool(guild_id, guarantee)
        else:
            draw = await self.pools.range_pool(guild_id)
            if not draw.pool:
                draw = await self.pools.fallback(guild_id)

        if not draw.pool:
            raise PoolError()

        deadline = deadline or Deadline(self.timeout_s)
        attempts = 0

        while not deadline.expired:
            attempts += 1
            entry = draw.pool[self.rand.randrange(len(draw.pool))]

            results = await self.resolver.characters(ids=[entry.id], guild_id=guild_id)
            if not results:
                continue

            # aggregation drops disabled media
            candidate = await self.resolver.aggregator.aggregate(character=results[0], end=1, guild_id=guild_id)

            edge = candidate.media[0] if candidate.media else None
            if edge is None or not draw.validate(candidate):
                continue

            media_id = compound_id(edge.node)
            if await self.registry.is_disabled(media_id, guild_id):
                continue

            rating = Rating.from_character(candidate)
            if not rating.stars:
                continue

            if user_id:
                outcome = await self.inventory.add_character(
                    guild_id=str(guild_id),
                    user_id=str(user_id),
                    character_id=compound_id(candidate),
                    media_id=media_id,
                    guaranteed=guarantee is not None,
                    star_rating=rating.stars,
                    sacrifices=sacrifices,
                )
                if outcome.retryable:
                    logger.debug("Pull attempt %d: %s for %s, retrying", attempts, outcome.value, entry.id)
                    continue

            media = await self.resolver.aggregator.aggregate(media=edge.node, guild_id=guild_id)
            logger.info(
                "Pulled %s (%d★) in guild %s after %d attempt(s)",
                compound_id(candidate), rating.stars, guild_id, attempts,
            )
            return Pull(character=candidate, media=media, rating=rating)

        logger.info("Pull budget spent in guild %s after %d attempt(s)", guild_id, attempts)
        raise PoolError()
