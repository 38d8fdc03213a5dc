# scripts/build_pool_index.py
from __future__ import annotations

"""Build the catalog popularity/role index used by range pulls.

Walks the catalog's most popular media and writes one row per
(character, first media) to data/packs/anilist/pool.json:

    python scripts/build_pool_index.py --pages 20
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# --- Ensure project root is on sys.path ---
BASE_DIR = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(BASE_DIR))

import config  # noqa: E402
from utils import graphql  # noqa: E402

OUT = BASE_DIR / "data" / "packs" / "anilist" / "pool.json"

QUERY = """
query ($page: Int) {
  Page(page: $page, perPage: 50) {
    pageInfo { hasNextPage }
    media(sort: [POPULARITY_DESC]) {
      id
      popularity
      characters(perPage: 25, sort: [ROLE, RELEVANCE, ID]) {
        edges { role node { id } }
      }
    }
  }
}
"""


async def build(pages: int) -> list[dict]:
    rows: list[dict] = []
    seen: set[str] = set()

    for page in range(1, pages + 1):
        data = await graphql.request(config.ANILIST_URL, QUERY, {"page": page}, timeout_s=config.ANILIST_TIMEOUT_S)
        p = data.get("Page") or {}

        for media in p.get("media") or []:
            for edge in (media.get("characters") or {}).get("edges") or []:
                cid = f"anilist:{edge['node']['id']}"
                # media are walked most popular first; keep a character's first media only
                if cid in seen:
                    continue
                seen.add(cid)
                rows.append({
                    "id": cid,
                    "mediaId": f"anilist:{media['id']}",
                    "popularity": int(media.get("popularity") or 0),
                    "role": edge.get("role"),
                })

        print(f"page {page}: {len(rows)} characters")
        if not (p.get("pageInfo") or {}).get("hasNextPage"):
            break

    await graphql.aclose_client()
    return rows


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--pages", type=int, default=20)
    parser.add_argument("--out", type=Path, default=OUT)
    args = parser.parse_args()

    rows = asyncio.run(build(args.pages))
    args.out.parent.mkdir(parents=True, exist_ok=True)
    args.out.write_text(json.dumps(rows, indent=2, ensure_ascii=False), encoding="utf-8")
    print(f"wrote {len(rows)} rows to {args.out}")


if __name__ == "__main__":
    main()
