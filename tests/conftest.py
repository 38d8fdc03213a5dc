"""Pytest configuration and fixtures. Run without real Redis/DB/catalog by default."""
from __future__ import annotations

import os
import sys

import pytest

# Ensure project root is on path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Avoid loading .env that might point at prod
os.environ.setdefault("ENVIRONMENT", "dev")


@pytest.fixture(autouse=True)
def _no_redis(monkeypatch):
    """By default, make get_redis_or_none return None so tests don't need Redis."""
    from utils import backpressure, packs_store, redis_kv

    async def _none():
        return None

    monkeypatch.setattr(backpressure, "get_redis_or_none", _none)
    monkeypatch.setattr(redis_kv, "get_redis_or_none", _none)
    monkeypatch.setattr(packs_store, "get_redis_or_none", _none)


@pytest.fixture
def empty_builtins(monkeypatch):
    """Builtin packs without content, so only the packs a test installs are searchable."""
    from utils import packs as packs_mod
    from utils.media_types import Manifest, Pack, PackType

    def _builtins():
        return [Pack(Manifest(id="anilist"), PackType.BUILTIN), Pack(Manifest(id="vtubers"), PackType.BUILTIN)]

    monkeypatch.setattr(packs_mod, "list_builtin_packs", _builtins)


class FakePackStore:
    """In-memory stand-in for utils.packs_store (same functions, same symbolic errors)."""

    def __init__(self):
        self.manifests: dict[str, dict] = {}
        self.installed: dict[str, list[str]] = {}
        self.sources: dict[str, str] = {}
        self.get_calls = 0

    async def get_guild_packs(self, guild_id):
        from utils.media_types import Pack, PackType, manifest_from_dict

        self.get_calls += 1
        return [
            Pack(manifest_from_dict(self.manifests[mid]), PackType.COMMUNITY, "installer")
            for mid in self.installed.get(str(guild_id), [])
        ]

    async def install_pack(self, guild_id, manifest, installer_id, source_id=None):
        from utils import packs_store

        mid = manifest["id"]
        if source_id is not None:
            existing = self.sources.setdefault(str(source_id), mid)
            if existing != mid:
                return packs_store.StoreResult(ok=False, error=packs_store.PACK_ID_CHANGED, manifest={"id": existing})
        self.manifests[mid] = manifest
        ids = self.installed.setdefault(str(guild_id), [])
        if mid not in ids:
            ids.append(mid)
        return packs_store.StoreResult(ok=True, manifest=manifest)

    async def remove_pack(self, guild_id, manifest_id):
        from utils import packs_store

        if manifest_id not in self.manifests:
            return packs_store.StoreResult(ok=False, error=packs_store.PACK_NOT_FOUND)
        ids = self.installed.get(str(guild_id), [])
        if manifest_id not in ids:
            return packs_store.StoreResult(ok=False, error=packs_store.PACK_NOT_INSTALLED)
        ids.remove(manifest_id)
        return packs_store.StoreResult(ok=True, manifest=self.manifests[manifest_id])


class FakeCatalog:
    """Catalog that knows nothing unless a test says otherwise."""

    def __init__(self, media=None, characters=None):
        self._media = list(media or [])
        self._characters = list(characters or [])

    async def media(self, *, ids=None, search=None):
        if ids is not None:
            return [m for m in self._media if m.id in {str(i) for i in ids}]
        return list(self._media) if search else []

    async def characters(self, *, ids=None, search=None):
        if ids is not None:
            return [c for c in self._characters if c.id in {str(i) for i in ids}]
        return list(self._characters) if search else []

    async def media_characters(self, media_id, index):
        from utils.media_types import MediaCharacterPage

        return MediaCharacterPage()


@pytest.fixture
def pack_store():
    return FakePackStore()


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def registry(pack_store, empty_builtins):
    from utils.packs import PackRegistry

    return PackRegistry(store=pack_store, community_packs=True)


@pytest.fixture
def resolver(registry, catalog):
    from utils.resolver import EntityResolver

    return EntityResolver(registry, catalog=catalog)


@pytest.fixture
async def async_db_session():
    """Yield an in-memory async SQLite session with all tables created."""
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
    from utils.models import Base

    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    Session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with Session() as session:
        yield session

    await engine.dispose()
