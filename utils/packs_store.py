from __future__ import annotations

"""Guild pack storage (community packs).

Storage:
- Redis JSON blobs (simple + durable across deploys).
  - String: pack:{manifest_id} -> manifest JSON (last installed version)
  - String: pack:source:{source_id} -> manifest id first registered for that source
  - Hash:   guild:{guild_id}:packs -> manifest_id -> {"installed_by", "installed_at"}

Results are symbolic (StoreResult.error) so callers can map them to user
messages: PACK_ID_CHANGED, PACK_NOT_FOUND, PACK_NOT_INSTALLED, STORE_UNAVAILABLE.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any

from utils.backpressure import get_redis_or_none
from utils.media_types import Pack, PackType, manifest_from_dict
from utils.redis_kv import hdel, hget_json, hgetall_json, hset_json, kv_get_json, kv_get_str, kv_set_json, kv_set_str

logger = logging.getLogger("bot.packs_store")

PACK_ID_CHANGED = "PACK_ID_CHANGED"
PACK_NOT_FOUND = "PACK_NOT_FOUND"
PACK_NOT_INSTALLED = "PACK_NOT_INSTALLED"
STORE_UNAVAILABLE = "STORE_UNAVAILABLE"


@dataclass(frozen=True)
class StoreResult:
    ok: bool
    error: str | None = None
    manifest: dict[str, Any] | None = None


def _pack_key(manifest_id: str) -> str:
    return f"pack:{manifest_id}"


def _source_key(source_id: str) -> str:
    return f"pack:source:{source_id}"


def _guild_key(guild_id: str | int) -> str:
    return f"guild:{guild_id}:packs"


async def get_guild_packs(guild_id: str | int) -> list[Pack]:
    """Community packs installed in a guild, oldest install first."""
    installed = await hgetall_json(_guild_key(guild_id))

    rows: list[tuple[int, str, Pack]] = []
    for manifest_id, meta in installed.items():
        data = await kv_get_json(_pack_key(manifest_id))
        if not isinstance(data, dict):
            logger.warning("Guild %s lists pack %s but its manifest is missing", guild_id, manifest_id)
            continue
        try:
            manifest = manifest_from_dict(data)
        except ValueError as e:
            logger.warning("Skipping malformed manifest %s: %s", manifest_id, e)
            continue
        meta = meta if isinstance(meta, dict) else {}
        installed_by = str(meta["installed_by"]) if meta.get("installed_by") is not None else None
        rows.append((int(meta.get("installed_at") or 0), manifest_id, Pack(manifest, PackType.COMMUNITY, installed_by)))

    rows.sort(key=lambda t: (t[0], t[1]))
    return [p for _, _, p in rows]


async def install_pack(
    guild_id: str | int,
    manifest: dict[str, Any],
    installer_id: str | int,
    source_id: str | int | None = None,
) -> StoreResult:
    """Persist a (validated) manifest and mark it installed in the guild."""
    if await get_redis_or_none() is None:
        return StoreResult(ok=False, error=STORE_UNAVAILABLE)

    manifest_id = str(manifest.get("id") or "")

    # A source (e.g. a GitHub repository) is bound to the first manifest id it shipped.
    if source_id is not None:
        existing = await kv_get_str(_source_key(str(source_id)))
        if existing and existing != manifest_id:
            return StoreResult(ok=False, error=PACK_ID_CHANGED, manifest={"id": existing})
        if not existing:
            await kv_set_str(_source_key(str(source_id)), manifest_id)

    await kv_set_json(_pack_key(manifest_id), manifest)
    await hset_json(
        _guild_key(guild_id),
        manifest_id,
        {"installed_by": str(installer_id), "installed_at": int(time.time())},
    )
    return StoreResult(ok=True, manifest=manifest)


async def remove_pack(guild_id: str | int, manifest_id: str) -> StoreResult:
    if await get_redis_or_none() is None:
        return StoreResult(ok=False, error=STORE_UNAVAILABLE)

    manifest = await kv_get_json(_pack_key(manifest_id))
    if not isinstance(manifest, dict):
        return StoreResult(ok=False, error=PACK_NOT_FOUND)

    if await hget_json(_guild_key(guild_id), manifest_id) is None:
        return StoreResult(ok=False, error=PACK_NOT_INSTALLED, manifest=manifest)

    await hdel(_guild_key(guild_id), manifest_id)
    return StoreResult(ok=True, manifest=manifest)
