import logging
import os
import sys

_config_log = logging.getLogger("config")


def _as_bool(name: str, default: str = "false") -> bool:
    return str(os.getenv(name, default)).strip().lower() in {"1", "true", "yes", "y", "on"}


def _as_float(name: str, default: str) -> float:
    raw = (os.getenv(name, default) or default).strip()
    try:
        return float(raw)
    except ValueError:
        _config_log.warning("CONFIG WARNING: %s=%r is not a number; using %s", name, raw, default)
        return float(default)


# ---- Discord ----
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN") or os.getenv("TOKEN")

# ---- Environment ----
ENVIRONMENT = os.getenv("ENVIRONMENT", "prod").strip().lower()
BOT_NAME = os.getenv("BOT_NAME", "Fable")


# ---- Guild sync ----
def _parse_id_list(raw: str | None) -> list[int]:
    if not raw:
        return []
    out: list[int] = []
    for part in str(raw).split(","):
        p = part.strip()
        if p.isdigit() and int(p) not in out:
            out.append(int(p))
    return out


SYNC_GUILD_IDS = _parse_id_list(os.getenv("SYNC_GUILD_ID") or os.getenv("DEV_GUILD_ID"))

# ---- Media catalog (GraphQL) ----
ANILIST_URL = (os.getenv("ANILIST_URL") or "https://graphql.anilist.co").strip()
ANILIST_TIMEOUT_S = _as_float("ANILIST_TIMEOUT_S", "10")

# ---- GitHub (community pack install) ----
GITHUB_API_URL = (os.getenv("GITHUB_API_URL") or "https://api.github.com").strip()
GITHUB_TOKEN = (os.getenv("GITHUB_TOKEN") or "").strip() or None

# ---- Packs ----
# When false, community packs are never fetched (builtin packs only).
COMMUNITY_PACKS = _as_bool("COMMUNITY_PACKS", "true")

# ---- Gacha ----
# Maintenance switch for pulls.
GACHA_ENABLED = _as_bool("GACHA_ENABLED", "true")
# Event-boosted weighted tables.
XMAS_EVENT = _as_bool("XMAS_EVENT", "false")
# Wall-clock budget of a single pull.
PULL_TIMEOUT_S = _as_float("PULL_TIMEOUT_S", "60")
POOL_INDEX_PATH = (os.getenv("POOL_INDEX_PATH") or "").strip() or None


# ---------------------------------------------------------------------------
# Startup validation
# ---------------------------------------------------------------------------

def validate_config() -> None:
    """Check for required and recommended environment variables.

    Called at import time. In production, missing critical vars cause a hard
    exit so the problem is obvious (instead of a cryptic error 5 minutes later).
    """
    is_prod = ENVIRONMENT != "dev"
    errors: list[str] = []
    warnings: list[str] = []

    if not DISCORD_TOKEN:
        errors.append("DISCORD_TOKEN (or TOKEN) is not set. The bot cannot start.")

    if is_prod and not os.getenv("DATABASE_URL"):
        errors.append("DATABASE_URL is not set. Postgres is required in production.")

    if not (os.getenv("REDIS_URL") or os.getenv("REDIS_PRIVATE_URL")):
        warnings.append("REDIS_URL is not set. Community packs cannot be installed or listed.")
    if PULL_TIMEOUT_S <= 0:
        warnings.append("PULL_TIMEOUT_S must be positive; every pull will fail immediately.")
    if XMAS_EVENT:
        warnings.append("XMAS_EVENT is on: pulls use the boosted tables.")

    for w in warnings:
        _config_log.warning("CONFIG WARNING: %s", w)

    if errors:
        for e in errors:
            _config_log.critical("CONFIG ERROR: %s", e)
        if is_prod:
            sys.exit(1)


validate_config()
