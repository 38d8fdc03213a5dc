from __future__ import annotations

"""Popularity/role index of catalog characters.

The catalog cannot be queried by popularity range, so the pool of candidate
character ids is precomputed offline (scripts/build_pool_index.py) into a JSON
list of ``{"id", "mediaId", "popularity", "role"}`` rows.
"""

import json
import logging
import math
from dataclasses import dataclass
from pathlib import Path

import config
from utils.media_types import CharacterRole
from utils.rating import Rating

logger = logging.getLogger("bot.pool_index")


@dataclass(frozen=True)
class PoolEntry:
    id: str
    media_id: str | None = None
    popularity: int | None = None
    role: CharacterRole | None = None


def _default_path() -> Path:
    raw = (getattr(config, "POOL_INDEX_PATH", None) or "").strip()
    if raw:
        return Path(raw)
    return Path(__file__).resolve().parent.parent / "data" / "packs" / "anilist" / "pool.json"


def _entry(d: dict) -> PoolEntry | None:
    if not isinstance(d, dict) or not d.get("id"):
        return None
    role = d.get("role")
    try:
        role = CharacterRole(str(role).upper()) if role else None
    except ValueError:
        role = None
    pop = d.get("popularity")
    return PoolEntry(
        id=str(d["id"]),
        media_id=str(d["mediaId"]) if d.get("mediaId") else None,
        popularity=int(pop) if isinstance(pop, (int, float)) else None,
        role=role,
    )


class PoolIndex:
    def __init__(self, entries: list[PoolEntry]) -> None:
        self.entries = list(entries)

    @classmethod
    def load(cls, path: str | Path | None = None) -> "PoolIndex":
        p = Path(path) if path else _default_path()
        try:
            with open(p, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Pool index %s unavailable: %s", p, e)
            return cls([])

        entries = [e for e in (_entry(x) for x in (raw if isinstance(raw, list) else [])) if e is not None]
        logger.info("Loaded pool index %s (%d entries)", p, len(entries))
        return cls(entries)

    def pool(
        self,
        *,
        role: CharacterRole | None = None,
        popularity: tuple[float, float] | None = None,
        rating: int | None = None,
    ) -> list[PoolEntry]:
        """Entries matching every given filter; no filters returns everything."""
        out: list[PoolEntry] = []
        for e in self.entries:
            if role is not None and e.role != role:
                continue
            if popularity is not None:
                lo, hi = popularity
                pop = e.popularity or 0
                if pop < lo or (not math.isinf(hi) and pop > hi):
                    continue
            if rating is not None and Rating.from_popularity(e.popularity or 0, e.role).stars != rating:
                continue
            out.append(e)
        return out
