"""Tests for weighted draws and candidate pools (utils/gacha_pool.py)."""
from __future__ import annotations

import pytest

from utils.errors import ConfigError
from utils.gacha_pool import (
    BOOSTED_VARIABLES,
    INF,
    LOWEST,
    VARIABLES,
    GachaPoolBuilder,
    rng,
)
from utils.media_types import (
    AggregatedCharacter,
    AggregatedMedia,
    CharacterRole,
    RoleEdge,
)
from utils.pool_index import PoolEntry, PoolIndex

GUILD = "guild-1"


def _const(value: float):
    return lambda: value


def _character(popularity=None, media_popularity=None, role=None) -> AggregatedCharacter:
    media = AggregatedMedia(id="10", pack_id="anilist", popularity=media_popularity)
    return AggregatedCharacter(
        id="1",
        pack_id="anilist",
        popularity=popularity,
        media=[RoleEdge(role=role, node=media)],
    )


INDEX = PoolIndex(
    [
        PoolEntry(id="anilist:1", media_id="10", popularity=10_000, role=CharacterRole.MAIN),
        PoolEntry(id="anilist:2", media_id="10", popularity=150_000, role=CharacterRole.BACKGROUND),
        PoolEntry(id="anilist:3", media_id="11", popularity=150_000, role=CharacterRole.MAIN),
        PoolEntry(id="anilist:4", media_id="12", popularity=450_000, role=CharacterRole.MAIN),
    ]
)


class TestRng:

    def test_draws_by_cumulative_chance(self):
        table = {30: "a", 70: "b"}
        assert rng(table, _const(0.1)).value == "a"
        assert rng(table, _const(0.5)).value == "b"
        assert rng(table, _const(0.5)).chance == 70

    def test_bad_sum_names_the_sum(self):
        with pytest.raises(ConfigError, match="Sum of 90 is not equal to 100"):
            rng({30: "a", 60: "b"})

    def test_zero_chance_never_drawn(self):
        table = {0: "never", 100: "always"}
        for roll in (0.0, 0.5, 0.999):
            assert rng(table, _const(roll)).value == "always"

    @pytest.mark.parametrize("variables", [VARIABLES, BOOSTED_VARIABLES])
    def test_tables_sum_to_100(self, variables):
        for table in variables.values():
            assert sum(table) == 100
            rng(table)

    def test_ranges_cover_floor_to_infinity(self):
        ranges = sorted(VARIABLES["ranges"].values())
        assert ranges[0][0] == LOWEST
        assert ranges[-1][1] == INF


class TestRangePool:

    @pytest.mark.asyncio
    async def test_floor_range_ignores_role(self, registry):
        builder = GachaPoolBuilder(registry, INDEX, boosted=False, rand=_const(0.1))
        draw = await builder.range_pool(GUILD)
        assert draw.range == (LOWEST, 50_000)
        assert draw.role is None
        assert [e.id for e in draw.pool] == ["anilist:1"]

    @pytest.mark.asyncio
    async def test_higher_range_draws_a_role(self, registry):
        # roll 90 -> (100k, 200k) and BACKGROUND
        builder = GachaPoolBuilder(registry, INDEX, boosted=False, rand=_const(0.9))
        draw = await builder.range_pool(GUILD)
        assert draw.range == (100_000, 200_000)
        assert draw.role == CharacterRole.BACKGROUND
        assert [e.id for e in draw.pool] == ["anilist:2"]

    @pytest.mark.asyncio
    async def test_validate_checks_range_and_role(self, registry):
        builder = GachaPoolBuilder(registry, INDEX, boosted=False, rand=_const(0.9))
        draw = await builder.range_pool(GUILD)
        assert draw.validate(_character(media_popularity=150_000, role=CharacterRole.BACKGROUND))
        assert not draw.validate(_character(media_popularity=150_000, role=CharacterRole.MAIN))
        assert not draw.validate(_character(media_popularity=10_000, role=CharacterRole.BACKGROUND))
        assert not draw.validate(_character(popularity=500_000, role=CharacterRole.BACKGROUND))

    @pytest.mark.asyncio
    async def test_pack_characters_always_included(self, registry):
        await registry.install(
            {"id": "pack-a", "characters": {"new": [{"id": "hero", "name": {"english": "Hero"}}]}},
            GUILD,
            "u1",
        )
        builder = GachaPoolBuilder(registry, INDEX, boosted=False, rand=_const(0.9))
        draw = await builder.range_pool(GUILD)
        assert "pack-a:hero" in [e.id for e in draw.pool]

    @pytest.mark.asyncio
    async def test_disabled_ids_excluded(self, registry):
        await registry.install({"id": "overrides", "characters": {"conflicts": ["anilist:1"]}}, GUILD, "u1")
        builder = GachaPoolBuilder(registry, INDEX, boosted=False, rand=_const(0.1))
        draw = await builder.range_pool(GUILD)
        assert draw.pool == []

    @pytest.mark.asyncio
    async def test_boosted_tables(self, registry):
        builder = GachaPoolBuilder(registry, INDEX, boosted=True, rand=_const(0.1))
        assert builder.variables is BOOSTED_VARIABLES
        draw = await builder.range_pool(GUILD)
        assert draw.range == (LOWEST, 50_000)


class TestGuaranteedPool:

    @pytest.mark.asyncio
    async def test_only_matching_rating(self, registry):
        builder = GachaPoolBuilder(registry, INDEX, boosted=False)
        draw = await builder.guaranteed_pool(GUILD, 5)
        assert [e.id for e in draw.pool] == ["anilist:4"]

    @pytest.mark.asyncio
    async def test_validate_uses_edge_role(self, registry):
        builder = GachaPoolBuilder(registry, INDEX, boosted=False)
        draw = await builder.guaranteed_pool(GUILD, 5)
        assert draw.validate(_character(media_popularity=450_000, role=CharacterRole.MAIN))
        assert not draw.validate(_character(media_popularity=450_000, role=CharacterRole.SUPPORTING))
        assert not draw.validate(_character(popularity=60_000))


class TestFallback:

    @pytest.mark.asyncio
    async def test_everything_accepted(self, registry):
        builder = GachaPoolBuilder(registry, INDEX, boosted=False)
        draw = await builder.fallback(GUILD)
        assert len(draw.pool) == 4
        assert draw.validate(_character())
