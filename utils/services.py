from __future__ import annotations

"""Wiring of the core components.

One Services object is built at startup and attached to the bot; every
component receives the same PackRegistry (and therefore the same guild pack
cache) by reference.
"""

from dataclasses import dataclass
from typing import Any

from utils import inventory_store, packs_store
from utils.gacha import PullEngine
from utils.gacha_pool import GachaPoolBuilder
from utils.packs import GuildPackCache, PackRegistry
from utils.pool_index import PoolIndex
from utils.resolver import EntityResolver


@dataclass
class Services:
    registry: PackRegistry
    resolver: EntityResolver
    pools: GachaPoolBuilder
    engine: PullEngine
    inventory: Any


def build_services(
    *,
    store: Any = packs_store,
    catalog: Any = None,
    index: PoolIndex | None = None,
    inventory: Any = inventory_store,
    boosted: bool | None = None,
    timeout_s: float | None = None,
) -> Services:
    registry = PackRegistry(store=store, cache=GuildPackCache())
    resolver = EntityResolver(registry) if catalog is None else EntityResolver(registry, catalog=catalog)
    pools = GachaPoolBuilder(registry, index if index is not None else PoolIndex.load(), boosted=boosted)
    engine = PullEngine(
        registry=registry,
        resolver=resolver,
        pools=pools,
        inventory=inventory,
        timeout_s=timeout_s,
    )
    return Services(registry=registry, resolver=resolver, pools=pools, engine=engine, inventory=inventory)
