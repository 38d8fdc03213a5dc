"""tools/check_import_boundaries.py

Run this locally / in CI to enforce architecture boundaries.

Goal:
  - All catalog traffic goes through utils.anilist (it owns the "catalog" circuit breaker).
  - Commands never touch the stores directly; they go through the Services on the bot.

Usage:
  python -m tools.check_import_boundaries
"""

from __future__ import annotations

import ast
import pathlib
import sys


REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]

# Files that are allowed to reference forbidden symbols (the boundary modules themselves).
ALLOWLIST = {
    REPO_ROOT / "utils" / "anilist.py",
    REPO_ROOT / "utils" / "graphql.py",
    REPO_ROOT / "utils" / "backpressure.py",
    REPO_ROOT / "scripts" / "build_pool_index.py",
}

FORBIDDEN_BACKPRESSURE_NAMES = {"is_open", "trip"}
FORBIDDEN_GRAPHQL_NAMES = {"request"}
STORE_MODULES = {"utils.inventory_store", "utils.packs_store"}


def _should_scan(path: pathlib.Path) -> bool:
    if path in ALLOWLIST:
        return False
    if path.name.startswith("."):
        return False
    if "venv" in path.parts or ".venv" in path.parts or "tests" in path.parts:
        return False
    return path.suffix == ".py"


def _offenders_in(py: pathlib.Path, tree: ast.AST) -> list[tuple[pathlib.Path, int, str]]:
    rel = py.relative_to(REPO_ROOT)
    in_commands = rel.parts[0] == "commands"
    out: list[tuple[pathlib.Path, int, str]] = []

    for node in ast.walk(tree):
        if isinstance(node, ast.ImportFrom):
            # from utils.backpressure import is_open / trip
            if node.module == "utils.backpressure":
                for alias in node.names:
                    if alias.name in FORBIDDEN_BACKPRESSURE_NAMES:
                        out.append((rel, node.lineno, f"from utils.backpressure import {alias.name}"))

            # from utils.graphql import request
            if node.module == "utils.graphql":
                for alias in node.names:
                    if alias.name in FORBIDDEN_GRAPHQL_NAMES:
                        out.append((rel, node.lineno, f"from utils.graphql import {alias.name}"))

            if in_commands and node.module in STORE_MODULES:
                out.append((rel, node.lineno, f"from {node.module} import ..."))

            if in_commands and node.module == "utils":
                for alias in node.names:
                    if f"utils.{alias.name}" in STORE_MODULES:
                        out.append((rel, node.lineno, f"from utils import {alias.name}"))

        # graphql.request(...)
        if (
            isinstance(node, ast.Call)
            and isinstance(node.func, ast.Attribute)
            and node.func.attr == "request"
            and isinstance(node.func.value, ast.Name)
            and node.func.value.id == "graphql"
        ):
            out.append((rel, node.lineno, "graphql.request(...)"))

    return out


def find_offenders() -> list[tuple[pathlib.Path, int, str]]:
    offenders: list[tuple[pathlib.Path, int, str]] = []

    for py in REPO_ROOT.rglob("*.py"):
        if not _should_scan(py):
            continue

        try:
            text = py.read_text(encoding="utf-8", errors="replace")
        except OSError:
            continue

        try:
            tree = ast.parse(text)
        except SyntaxError:
            continue

        offenders.extend(_offenders_in(py, tree))

    return offenders


def main() -> int:
    offenders = find_offenders()

    if offenders:
        print("\n❌ Import boundary violations found:\n")
        for p, ln, src in offenders:
            print(f"- {p}:{ln}: {src}")
        print("\nFix: go through utils.anilist for catalog calls and bot.services for stores.")
        return 1

    print("✅ Import boundaries look good.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
