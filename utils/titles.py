from __future__ import annotations

"""Alias flattening, fuzzy matching and short display strings for media/characters."""

from rapidfuzz.distance import Levenshtein

from utils.media_types import Alias, MediaFormat, MediaRelation


def truncate(s: str, max_len: int) -> str:
    if len(s) <= max_len:
        return s
    # cut on a word boundary when possible
    cut = s[: max_len - 3]
    if " " in cut:
        cut = cut[: cut.rindex(" ")]
    return cut.rstrip() + "..."


def alias_to_array(alias: Alias | None, max_len: int | None = None) -> list[str]:
    """Unique, non-empty aliases in priority order (english, romaji, native, alternatives)."""
    if alias is None:
        return []
    out: list[str] = []
    for s in [alias.english, alias.romaji, alias.native, *(alias.alternative or [])]:
        if not s:
            continue
        if max_len:
            s = truncate(s, max_len)
        if s not in out:
            out.append(s)
    return out


def similarity(a: str, b: str) -> int:
    """Case-insensitive Levenshtein similarity as a 0..100 percentage."""
    return int(round(Levenshtein.normalized_similarity(a.lower(), b.lower()) * 100))


def capitalize(s: str) -> str:
    return " ".join(w[:1].upper() + w[1:].lower() for w in s.replace("_", " ").split())


def format_to_string(fmt: MediaFormat | None) -> str:
    if fmt is None or fmt == MediaFormat.MUSIC:
        return ""
    if fmt in (MediaFormat.TV_SHORT, MediaFormat.OVA, MediaFormat.ONA):
        return "Short"
    if fmt == MediaFormat.TV:
        return "Anime"
    return capitalize(fmt.value)


def media_to_string(media, relation: MediaRelation | None = None) -> str:
    titles = alias_to_array(media.title, 40)
    title = titles[0] if titles else ""

    if relation in (
        MediaRelation.PREQUEL,
        MediaRelation.SEQUEL,
        MediaRelation.SPIN_OFF,
        MediaRelation.SIDE_STORY,
    ):
        return f"{title} ({capitalize(relation.value)})"

    fmt = format_to_string(media.format)
    if not fmt:
        return title
    return f"{title} ({fmt})"
