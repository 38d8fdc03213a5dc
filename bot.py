# bot.py
import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

import discord
from discord.ext import commands
from dotenv import load_dotenv
from pythonjsonlogger.json import JsonFormatter

# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

load_dotenv()

import config  # noqa: E402  (reads env at import)
from utils.backpressure import get_redis_or_none  # noqa: E402
from utils.db import aclose_db, init_db  # noqa: E402
from utils.graphql import aclose_client  # noqa: E402
from utils.services import build_services  # noqa: E402


async def ensure_redis_best_effort() -> bool:
    """Best-effort Redis readiness.

    The bot degrades (builtin packs only) if Redis is down/misconfigured
    instead of crash-looping. Returns True if Redis appears reachable.
    """
    r = await get_redis_or_none()
    if r is None:
        return False
    for _ in range(1, 6):
        try:
            await r.ping()
            return True
        except Exception:
            await asyncio.sleep(1.0)
    return False


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

LOG_DIR = Path(__file__).parent / "logs"

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

root_logger = logging.getLogger()
root_logger.setLevel(logging.INFO)


def _make_json_formatter() -> logging.Formatter:
    return JsonFormatter(
        "{asctime}{levelname}{name}{message}",
        style="{",
        rename_fields={"asctime": "timestamp", "levelname": "level"},
    )


def setup_logging() -> None:
    """Configure logging once (safe for reloads)."""
    for handler in root_logger.handlers:
        if getattr(handler, "_fable_handler", False):
            return

    LOG_DIR.mkdir(exist_ok=True)

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(LOG_FORMAT))
    console._fable_handler = True  # type: ignore[attr-defined]
    root_logger.addHandler(console)

    json_fmt = _make_json_formatter()

    file = RotatingFileHandler(LOG_DIR / "bot.log", maxBytes=5_000_000, backupCount=5, encoding="utf-8")
    file.setFormatter(json_fmt)
    file._fable_handler = True  # type: ignore[attr-defined]
    root_logger.addHandler(file)

    errors = RotatingFileHandler(LOG_DIR / "errors.log", maxBytes=2_000_000, backupCount=3, encoding="utf-8")
    errors.setLevel(logging.ERROR)
    errors.setFormatter(json_fmt)
    errors._fable_handler = True  # type: ignore[attr-defined]
    root_logger.addHandler(errors)


logger = logging.getLogger("bot")

# ---------------------------------------------------------------------------
# Extensions
# ---------------------------------------------------------------------------

EXTENSIONS = [
    "commands.slash.gacha",
    "commands.slash.packs",
]


class FableBot(commands.AutoShardedBot):
    async def setup_hook(self) -> None:
        redis_ok = await ensure_redis_best_effort()
        if not redis_ok:
            logger.warning("Redis unavailable at startup; community packs disabled until it recovers.")

        await init_db()

        # one registry (and guild pack cache) shared by every cog
        self.services = build_services()

        await load_extensions(self)
        await sync_commands(self)


async def load_extensions(bot: commands.Bot) -> None:
    """Load all extensions. Log failures but keep going so one broken cog doesn't take the bot down."""
    failed: list[str] = []
    for ext in EXTENSIONS:
        try:
            await bot.load_extension(ext)
            logger.info("Loaded extension: %s", ext)
        except Exception:
            logger.exception("FAILED loading extension: %s", ext)
            failed.append(ext)
    if failed:
        logger.error("Extensions that failed to load: %s", failed)


async def sync_commands(bot: commands.Bot) -> None:
    if config.ENVIRONMENT == "dev":
        if not config.SYNC_GUILD_IDS:
            logger.warning("No SYNC_GUILD_ID/DEV_GUILD_ID set; skipping dev guild slash-command sync")
            return
        for guild_id in config.SYNC_GUILD_IDS:
            guild = discord.Object(id=int(guild_id))
            bot.tree.copy_global_to(guild=guild)
            await bot.tree.sync(guild=guild)
            logger.info("✅ Synced slash commands to guild=%s", guild_id)
    else:
        await bot.tree.sync()
        logger.info("✅ Synced slash commands globally (prod)")


def _get_env_int(name: str) -> int | None:
    raw = (os.getenv(name) or "").strip()
    return int(raw) if raw.isdigit() and int(raw) > 0 else None


def create_bot() -> FableBot:
    bot = FableBot(
        command_prefix="__NO_PREFIX__",
        intents=discord.Intents.default(),
        shard_count=_get_env_int("SHARD_COUNT"),
    )

    @bot.event
    async def on_ready():
        logger.info("%s is ready. Logged in as %s", config.BOT_NAME, bot.user)

    return bot


# ---------------------------------------------------------------------------
# Run
# ---------------------------------------------------------------------------

async def main():
    setup_logging()
    bot = create_bot()
    try:
        await bot.start(config.DISCORD_TOKEN)
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Received shutdown signal")
    finally:
        if not bot.is_closed():
            logger.info("Closing bot connection...")
            await bot.close()
        await aclose_client()
        await aclose_db()
        logger.info("Shutdown complete")


if __name__ == "__main__":
    import signal

    def _handle_signal(sig, _frame):
        logger.info("Signal %s received, initiating graceful shutdown...", signal.Signals(sig).name)
        raise KeyboardInterrupt

    signal.signal(signal.SIGINT, _handle_signal)
    try:
        signal.signal(signal.SIGTERM, _handle_signal)
    except (OSError, AttributeError):
        pass  # SIGTERM not available on Windows

    asyncio.run(main())
