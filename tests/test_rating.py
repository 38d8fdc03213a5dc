"""Tests for star ratings (utils/rating.py)."""
from __future__ import annotations

import pytest

from utils.media_types import (
    AggregatedCharacter,
    AggregatedMedia,
    CharacterRole,
    DisaggregatedCharacter,
    RoleEdge,
)
from utils.rating import Rating


class TestFromPopularity:

    @pytest.mark.parametrize(
        "popularity,role,stars",
        [
            (10_000, None, 1),
            (49_999, CharacterRole.MAIN, 1),
            (500_000, CharacterRole.BACKGROUND, 1),
            (60_000, CharacterRole.MAIN, 3),
            (60_000, CharacterRole.SUPPORTING, 2),
            (60_000, None, 2),
            (250_000, CharacterRole.MAIN, 4),
            (250_000, CharacterRole.SUPPORTING, 3),
            (450_000, CharacterRole.MAIN, 5),
            (450_000, None, 5),
            (450_000, CharacterRole.SUPPORTING, 4),
        ],
    )
    def test_tiers(self, popularity, role, stars):
        assert Rating.from_popularity(popularity, role).stars == stars


class TestFromCharacter:

    def test_own_popularity_wins(self):
        c = DisaggregatedCharacter(id="a", pack_id="p", popularity=450_000)
        assert Rating.from_character(c).stars == 5

    def test_media_edge_fallback(self):
        media = AggregatedMedia(id="m", pack_id="p", popularity=250_000)
        c = AggregatedCharacter(id="a", pack_id="p", media=[RoleEdge(role=CharacterRole.MAIN, node=media)])
        assert Rating.from_character(c).stars == 4

    def test_no_popularity_is_zero(self):
        assert Rating.from_character(DisaggregatedCharacter(id="a", pack_id="p")).stars == 0
        media = AggregatedMedia(id="m", pack_id="p")
        c = AggregatedCharacter(id="a", pack_id="p", media=[RoleEdge(role=CharacterRole.MAIN, node=media)])
        assert Rating.from_character(c).stars == 0

    def test_emotes(self):
        assert Rating(3).emotes == "★★★☆☆"
