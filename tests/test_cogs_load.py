"""Verify all registered cogs can be imported (no Discord connection)."""
from __future__ import annotations

import pytest


EXTENSIONS = [
    "commands.slash.gacha",
    "commands.slash.packs",
]


@pytest.mark.parametrize("ext", EXTENSIONS)
def test_extension_imports(ext: str):
    """Each extension module must import without error."""
    import importlib
    mod = importlib.import_module(ext)
    assert mod is not None
    assert callable(getattr(mod, "setup", None))


def test_matches_bot_extensions():
    import bot

    assert sorted(bot.EXTENSIONS) == sorted(EXTENSIONS)


class TestGachaCogErrors:

    @pytest.fixture
    def cog_and_replies(self, monkeypatch):
        from unittest.mock import AsyncMock, MagicMock

        from commands.slash import gacha

        replies = AsyncMock()
        monkeypatch.setattr(gacha, "send_reply", replies)
        return gacha.SlashGacha(MagicMock()), replies

    @staticmethod
    def _invoke_error(original):
        from types import SimpleNamespace

        from discord import app_commands

        return app_commands.CommandInvokeError(SimpleNamespace(name="character", qualified_name="character"), original)

    @pytest.mark.asyncio
    async def test_rate_limit_answered(self, cog_and_replies):
        from unittest.mock import MagicMock

        from utils.anilist import CatalogRateLimitError

        cog, replies = cog_and_replies
        err = CatalogRateLimitError("u", "q", None, "slow down", status_code=429, retry_after=30)

        await cog.cog_app_command_error(MagicMock(), self._invoke_error(err))

        embed = replies.await_args.kwargs["embed"]
        assert "Try again in 30s." in embed.description
        assert replies.await_args.kwargs["ephemeral"] is True

    @pytest.mark.asyncio
    async def test_other_errors_answered(self, cog_and_replies):
        from unittest.mock import MagicMock

        cog, replies = cog_and_replies

        await cog.cog_app_command_error(MagicMock(), self._invoke_error(ValueError("boom")))

        assert "Something went wrong" in replies.await_args.kwargs["embed"].description
