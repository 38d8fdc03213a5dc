# scripts/validate_manifest.py
from __future__ import annotations

"""Validate a pack manifest.json locally before publishing it.

    python scripts/validate_manifest.py path/to/manifest.json
"""

import json
import sys
from pathlib import Path

# --- Ensure project root is on sys.path ---
BASE_DIR = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(BASE_DIR))

from utils.pack_schema import validate  # noqa: E402


def main(argv: list[str]) -> int:
    if len(argv) != 2:
        print("usage: validate_manifest.py <manifest.json>")
        return 2

    path = Path(argv[1])
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        print(f"Cannot read {path}: {e}")
        return 1

    result = validate(data)
    if not result.ok:
        print(result.error)
        return 1

    print(f"{path}: valid")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
