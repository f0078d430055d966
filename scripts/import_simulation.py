from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.catalog.store import get_simulation, init_db, slugify, upsert_simulation  # noqa: E402


def _load(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, dict) or not str(data.get("title") or "").strip():
        raise ValueError(f"{path}: expected a JSON object with a non-empty 'title'")
    return data


def import_simulation(path: Path, *, update: bool = False) -> bool:
    data = _load(path)
    title = str(data["title"]).strip()
    slug = slugify(str(data.get("slug_suggestion") or title))
    if not slug:
        raise ValueError(f"{path}: could not derive a slug from '{title}'")

    steps = data.get("steps") if isinstance(data.get("steps"), list) else []
    rubric = data.get("rubric") if isinstance(data.get("rubric"), list) else []
    print(f"Importing simulation:\n  Title: {title}\n  Slug: {slug}\n  Steps: {len(steps)}\n  Rubric items: {len(rubric)}")

    existing = get_simulation(slug)
    if existing is not None and not update:
        print(f"Simulation with slug '{slug}' already exists (title: {existing.title}). Use --update to overwrite.")
        return False

    upsert_simulation(slug=slug, title=title, active=bool(data.get("active", True)))
    print(f"{'Updated' if existing else 'Created'} simulation '{slug}'.")
    return True


def main() -> None:
    parser = argparse.ArgumentParser(description="Import simulation JSON files into the role catalog.")
    parser.add_argument("paths", nargs="+", help="Simulation JSON files")
    parser.add_argument("--update", action="store_true", help="Overwrite simulations whose slug already exists.")
    args = parser.parse_args()

    init_db()
    failures = 0
    for raw_path in args.paths:
        try:
            import_simulation(Path(raw_path), update=args.update)
        except (OSError, ValueError) as exc:
            failures += 1
            print(f"Failed to import {raw_path}: {exc}", file=sys.stderr)
    if failures:
        sys.exit(1)


if __name__ == "__main__":
    main()
