from __future__ import annotations

"""Source registry: which packs a guild has, and which ids they disable.

Design goals:
- Builtin packs are global and always listed first.
- Community packs are per guild, fetched from the pack store once and cached
  for the process lifetime. Install/remove invalidate that guild's entry.
- The disabled-id index is derived from the *full* installed list (builtin +
  community) and cached next to it, so it is invalidated together.

The cache is an explicit object owned by the registry; every component that
needs pack data receives the registry instance.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import config
from utils import github
from utils import packs_store
from utils.errors import NonFatalError, PackNotFoundError
from utils.media_types import Manifest, Pack, PackType, manifest_from_dict
from utils.pack_schema import purge_reserved_props, validate
from utils.packs_builtin import list_builtin_packs

logger = logging.getLogger("bot.packs")


class GuildPackCache:
    """Guild-scoped cache of community packs and the derived disabled-id index."""

    def __init__(self) -> None:
        self._packs: dict[str, list[Pack]] = {}
        self._disabled: dict[str, frozenset[str]] = {}

    def get(self, guild_id: str) -> list[Pack] | None:
        return self._packs.get(str(guild_id))

    def set(self, guild_id: str, packs: list[Pack]) -> None:
        self._packs[str(guild_id)] = list(packs)
        self._disabled.pop(str(guild_id), None)

    def get_disabled(self, guild_id: str) -> frozenset[str] | None:
        return self._disabled.get(str(guild_id))

    def set_disabled(self, guild_id: str, ids: frozenset[str]) -> None:
        self._disabled[str(guild_id)] = ids

    def invalidate(self, guild_id: str) -> None:
        self._packs.pop(str(guild_id), None)
        self._disabled.pop(str(guild_id), None)

    def clear(self) -> None:
        self._packs.clear()
        self._disabled.clear()


@dataclass
class InstallResult:
    ok: bool
    manifest: Manifest | None = None
    error: str | None = None
    conflicts: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    shallow: bool = False

    def explanation(self) -> str:
        """Human-readable reason, one offending id per line."""
        if self.ok:
            return "Valid" if self.shallow else "INSTALLED"

        lines: list[str] = []
        if self.error:
            lines.append(self.error)
        if self.conflicts:
            lines.append("__Conflicts must be removed before you can install this pack__.")
            lines.extend(f"This pack conflicts with {c}" for c in self.conflicts)
        if self.missing:
            lines.append("__Dependencies must be installed before you can install this pack__.")
            lines.extend(f"This pack requires {d}" for d in self.missing)
        return "\n".join(lines)


@dataclass(frozen=True)
class PackPage:
    pack: Pack | None
    index: int
    total: int

    @property
    def next(self) -> bool:
        return self.total > self.index + 1


class PackRegistry:
    def __init__(
        self,
        *,
        store: Any = packs_store,
        cache: GuildPackCache | None = None,
        community_packs: bool | None = None,
    ) -> None:
        self.store = store
        self.cache = cache or GuildPackCache()
        self.community_packs = (
            bool(getattr(config, "COMMUNITY_PACKS", True)) if community_packs is None else community_packs
        )

    # -----------------------------
    # Listing
    # -----------------------------

    async def _community(self, guild_id: str | None) -> list[Pack]:
        if not guild_id or not self.community_packs:
            return []

        cached = self.cache.get(guild_id)
        if cached is not None:
            return cached

        packs = [
            Pack(manifest=p.manifest, type=PackType.COMMUNITY, installed_by=p.installed_by)
            for p in await self.store.get_guild_packs(guild_id)
        ]
        self.cache.set(guild_id, packs)
        logger.debug("Loaded %d community pack(s) for guild %s", len(packs), guild_id)
        return packs

    async def list_packs(self, guild_id: str | None = None, type: PackType | None = None) -> list[Pack]:
        if type == PackType.BUILTIN:
            return list_builtin_packs()
        if type == PackType.COMMUNITY:
            return list(await self._community(guild_id))
        return list_builtin_packs() + await self._community(guild_id)

    async def manifests(self, guild_id: str | None) -> dict[str, Manifest]:
        return {p.manifest.id: p.manifest for p in await self.list_packs(guild_id)}

    async def pages(self, guild_id: str | None, type: PackType | None, index: int) -> PackPage:
        packs = await self.list_packs(guild_id, type)
        if not packs:
            return PackPage(pack=None, index=0, total=0)
        index = max(0, min(int(index), len(packs) - 1))
        return PackPage(pack=packs[index], index=index, total=len(packs))

    # -----------------------------
    # Disabled ids
    # -----------------------------

    async def disabled_ids(self, guild_id: str | None) -> frozenset[str]:
        if guild_id:
            cached = self.cache.get_disabled(guild_id)
            if cached is not None:
                return cached

        disabled: set[str] = set()
        for pack in await self.list_packs(guild_id):
            disabled.update(pack.manifest.media.conflicts)
            disabled.update(pack.manifest.characters.conflicts)

        ids = frozenset(disabled)
        if guild_id:
            self.cache.set_disabled(guild_id, ids)
        return ids

    async def is_disabled(self, compound_id: str, guild_id: str | None) -> bool:
        return compound_id in await self.disabled_ids(guild_id)

    # -----------------------------
    # Install / remove
    # -----------------------------

    async def install(
        self,
        manifest: dict[str, Any],
        guild_id: str,
        user_id: str,
        *,
        source_id: str | int | None = None,
        shallow: bool = False,
    ) -> InstallResult:
        """Validate, check conflicts/dependencies, then persist.

        Nothing is written unless every check passes. ``shallow`` stops after
        schema validation.
        """
        valid = validate(manifest)
        if not valid.ok:
            return InstallResult(ok=False, error=valid.error, shallow=shallow)

        data = purge_reserved_props(manifest)
        candidate = manifest_from_dict(data)

        if shallow:
            return InstallResult(ok=True, manifest=candidate, shallow=True)

        installed = await self.list_packs(guild_id)
        ids = [p.manifest.id for p in installed]

        # candidate conflicts with an installed pack, or an installed pack conflicts with it
        conflicts = [c for c in candidate.conflicts if c in ids]
        conflicts += [
            p.manifest.id
            for p in installed
            if candidate.id in p.manifest.conflicts and p.manifest.id not in conflicts
        ]
        missing = [d for d in candidate.depends if d not in ids]

        if conflicts or missing:
            logger.info(
                "Install of %s refused in guild %s (conflicts=%s missing=%s)",
                candidate.id, guild_id, conflicts, missing,
            )
            return InstallResult(ok=False, manifest=candidate, conflicts=conflicts, missing=missing)

        response = await self.store.install_pack(guild_id, data, user_id, source_id)

        if not response.ok:
            if response.error == packs_store.PACK_ID_CHANGED:
                expected = (response.manifest or {}).get("id")
                raise NonFatalError(
                    f"Pack id changed. Found `{candidate.id}` but it should be `{expected}`"
                )
            raise RuntimeError(response.error or "pack install failed")

        self.cache.invalidate(guild_id)
        logger.info("Installed pack %s in guild %s (by %s)", candidate.id, guild_id, user_id)
        return InstallResult(ok=True, manifest=manifest_from_dict(response.manifest or data))

    async def install_from_github(
        self,
        url: str,
        guild_id: str,
        user_id: str,
        *,
        ref: str | None = None,
        shallow: bool = False,
    ) -> InstallResult:
        repo_id, manifest = await github.fetch_manifest(url, ref=ref)
        return await self.install(manifest, guild_id, user_id, source_id=repo_id, shallow=shallow)

    async def remove(self, manifest_id: str, guild_id: str) -> Manifest:
        response = await self.store.remove_pack(guild_id, manifest_id)

        if not response.ok:
            if response.error in (packs_store.PACK_NOT_FOUND, packs_store.PACK_NOT_INSTALLED):
                raise PackNotFoundError(manifest_id)
            raise RuntimeError(response.error or "pack remove failed")

        self.cache.invalidate(guild_id)
        logger.info("Removed pack %s from guild %s", manifest_id, guild_id)
        return manifest_from_dict(response.manifest or {"id": manifest_id})
