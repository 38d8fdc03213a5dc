from __future__ import annotations

"""Fetch a community pack manifest straight from a GitHub repository."""

import json
import logging
import re
from typing import Any

import httpx

import config
from utils.errors import NonFatalError

logger = logging.getLogger("bot.github")

_REPO_RE = re.compile(r"^(?:https?://)?(?:www\.)?github\.com/([-_.a-zA-Z0-9]+)/([-_.a-zA-Z0-9]+?)(?:\.git)?/?$")

_RAW_URL = "https://raw.githubusercontent.com"


def parse_repo_url(url: str) -> tuple[str, str]:
    m = _REPO_RE.match((url or "").strip())
    if not m:
        raise NonFatalError("Invalid GitHub URL")
    return m.group(1), m.group(2)


def _headers() -> dict[str, str]:
    h = {"Accept": "application/vnd.github+json", "User-Agent": "discord-bot/1.0 (utils/github.py)"}
    token = (getattr(config, "GITHUB_TOKEN", None) or "").strip()
    if token:
        h["Authorization"] = f"Bearer {token}"
    return h


async def fetch_manifest(url: str, *, ref: str | None = None) -> tuple[int, dict[str, Any]]:
    """Returns (repository id, manifest dict) for a repo's root manifest.json."""
    owner, repo = parse_repo_url(url)
    api = (getattr(config, "GITHUB_API_URL", None) or "https://api.github.com").rstrip("/")

    async with httpx.AsyncClient(follow_redirects=True, timeout=15.0) as client:
        r = await client.get(f"{api}/repos/{owner}/{repo}", headers=_headers())
        if r.status_code == 404:
            raise NonFatalError("Repository not found")
        r.raise_for_status()
        info = r.json()

        branch = ref or info.get("default_branch") or "main"

        r = await client.get(f"{_RAW_URL}/{owner}/{repo}/{branch}/manifest.json", headers=_headers())
        if r.status_code == 404:
            raise NonFatalError("Repository has no manifest.json")
        r.raise_for_status()

    try:
        manifest = json.loads(r.text)
    except ValueError as e:
        raise NonFatalError("manifest.json is not valid JSON") from e

    if not isinstance(manifest, dict):
        raise NonFatalError("manifest.json must be an object")

    logger.info("Fetched manifest from %s/%s@%s", owner, repo, branch)
    return int(info["id"]), manifest
