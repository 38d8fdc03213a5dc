from __future__ import annotations

import re

# Compound ids look like "source:local"; both halves share the same alphabet.
_COMPOUND_RE = re.compile(r"^([-_a-z0-9]+):([-_a-z0-9]+)$")
_LOCAL_RE = re.compile(r"^[-_a-z0-9]+$")


def parse_id(literal: str | None, default_pack_id: str | None = None) -> tuple[str | None, str | None]:
    """Split a compound id into (pack_id, local_id).

    A bare local id is only accepted when ``default_pack_id`` is given.
    Anything else returns (None, None).
    """
    s = str(literal or "")
    m = _COMPOUND_RE.match(s)
    if m:
        return m.group(1), m.group(2)
    if default_pack_id and _LOCAL_RE.match(s):
        return default_pack_id, s
    return None, None


def format_id(pack_id: str | None, local_id: str | None) -> str:
    return f"{pack_id}:{local_id}"


def is_valid_source_id(source_id: str | None) -> bool:
    return bool(source_id) and bool(_LOCAL_RE.match(str(source_id)))
