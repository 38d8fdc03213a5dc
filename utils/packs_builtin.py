from __future__ import annotations

"""Built-in packs.

Two manifests ship with the bot and exist for the whole process lifetime:
- `anilist`: the public catalog (entities come from the remote API, not the manifest),
- `vtubers`: a curated static catalog.

Community packs are stored per guild in Redis (see utils.packs_store).
"""

import json
import logging
import os
from functools import lru_cache
from pathlib import Path

from utils.media_types import Manifest, Pack, PackType, manifest_from_dict

logger = logging.getLogger("bot.packs_builtin")

BUILTIN_PACK_IDS = ("anilist", "vtubers")


def _packs_dir() -> Path:
    override = (os.getenv("BUILTIN_PACKS_DIR") or "").strip()
    if override:
        return Path(override)
    return Path(__file__).resolve().parent.parent / "data" / "packs"


def _load_manifest(pack_id: str) -> Manifest:
    path = _packs_dir() / pack_id / "manifest.json"
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return manifest_from_dict(data)
    except (OSError, ValueError) as e:
        # A missing builtin catalog should not take the bot down; it simply has no entries.
        logger.warning("Failed to load builtin manifest %s: %s", path, e)
        return Manifest(id=pack_id)


@lru_cache(maxsize=1)
def _builtin_manifests() -> tuple[Manifest, ...]:
    return tuple(_load_manifest(pid) for pid in BUILTIN_PACK_IDS)


def list_builtin_packs() -> list[Pack]:
    return [Pack(manifest=m, type=PackType.BUILTIN) for m in _builtin_manifests()]
