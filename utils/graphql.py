# utils/graphql.py
from __future__ import annotations

import asyncio
import json
from typing import Any, Optional

import httpx


class GraphQLError(RuntimeError):
    """Non-OK HTTP status or an `errors` array in the GraphQL response."""

    def __init__(
        self,
        url: str,
        query: str,
        variables: dict[str, Any] | None,
        text: str,
        *,
        status_code: int = 0,
        retry_after: float | None = None,
    ):
        super().__init__(f"GraphQL request to {url} failed ({status_code}): {text[:300]}")
        self.url = url
        self.query = query
        self.variables = variables or {}
        self.text = text
        self.status_code = int(status_code)
        self.retry_after = retry_after


# ----------------------------
# Shared AsyncClient
# ----------------------------
_client: Optional[httpx.AsyncClient] = None
_client_lock = asyncio.Lock()


async def _get_client() -> httpx.AsyncClient:
    global _client
    if _client is not None:
        return _client

    async with _client_lock:
        if _client is not None:
            return _client
        limits = httpx.Limits(max_connections=20, max_keepalive_connections=10, keepalive_expiry=30.0)
        _client = httpx.AsyncClient(limits=limits)
        return _client


async def aclose_client() -> None:
    global _client
    async with _client_lock:
        if _client is not None:
            await _client.aclose()
            _client = None


def _retry_after(r: httpx.Response) -> float | None:
    ra = (r.headers.get("Retry-After") or "").strip()
    if not ra:
        return None
    try:
        return float(int(ra))
    except ValueError:
        return None


async def request(
    url: str,
    query: str,
    variables: dict[str, Any] | None = None,
    *,
    headers: dict[str, str] | None = None,
    timeout_s: float = 10.0,
) -> dict[str, Any]:
    """POST a GraphQL query and return its `data` object."""
    client = await _get_client()

    r = await client.post(
        url,
        headers={
            "Content-Type": "application/json",
            "Accept": "application/json",
            **(headers or {}),
        },
        content=json.dumps({"query": query, "variables": variables or {}}),
        timeout=httpx.Timeout(timeout_s),
    )

    if r.status_code < 200 or r.status_code >= 300:
        raise GraphQLError(
            url, query, variables, r.text or "",
            status_code=r.status_code,
            retry_after=_retry_after(r),
        )

    try:
        body = r.json()
    except ValueError as e:
        raise GraphQLError(url, query, variables, r.text or "", status_code=r.status_code) from e

    if not isinstance(body, dict):
        raise GraphQLError(url, query, variables, r.text or "", status_code=r.status_code)

    if body.get("errors"):
        raise GraphQLError(url, query, variables, json.dumps(body["errors"]), status_code=r.status_code)

    return body.get("data") or {}
