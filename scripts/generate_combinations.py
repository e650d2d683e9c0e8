#!/usr/bin/env python3
"""
Generate the valid subject combination table from stream rules.

Expands every stream rule in the reference data into the explicit list
of subject triples it accepts, resolving overlaps by stream priority,
and writes the table as JSON for review or for loading into another
system.

Usage:
    python scripts/generate_combinations.py
    python scripts/generate_combinations.py --seed path/to/reference_data.json \
        --output build/valid_combinations.json

Output:
    build/valid_combinations.json
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Final

from stream_classifier.classifiers.exceptions import ReferenceDataError
from stream_classifier.classifiers.store import CombinationStore
from stream_classifier.core.config import DEFAULT_SEED_PATH

# =============================================================================
# Constants
# =============================================================================

PROJECT_ROOT: Final[Path] = Path(__file__).parent.parent
OUTPUT_FILE: Final[Path] = PROJECT_ROOT / "build" / "valid_combinations.json"
SAMPLE_SIZE: Final[int] = 5


# =============================================================================
# Table Building
# =============================================================================


def build_table(store: CombinationStore) -> list[dict[str, Any]]:
    """
    Flatten the store into JSON-ready combination rows.

    Rows are ordered by stream id, then by sorted subject ids.
    """
    rows: list[dict[str, Any]] = []
    for stream in store.list_streams():
        for combination in store.combinations_for_stream(stream.id):
            rows.append(
                {
                    "subjectIds": list(combination.sorted_ids),
                    "streamId": stream.id,
                    "rule": combination.rule,
                    "courseIds": list(combination.course_ids),
                }
            )
    return rows


def summarize(store: CombinationStore) -> dict[str, int]:
    """Number of combinations per stream name, fallback stream excluded."""
    return {
        stream.name: len(store.combinations_for_stream(stream.id))
        for stream in store.list_streams()
        if not stream.is_fallback
    }


def save_table(rows: list[dict[str, Any]], output_path: Path, seed_path: Path) -> None:
    """Save the combination table with a metadata header."""
    output_path.parent.mkdir(parents=True, exist_ok=True)

    output_data = {
        "_metadata": {
            "generated": datetime.now(tz=timezone.utc).isoformat(),
            "source": str(seed_path),
            "total_combinations": len(rows),
            "generator": "generate_combinations.py",
        },
        "combinations": rows,
    }

    with output_path.open("w", encoding="utf-8") as f:
        json.dump(output_data, f, indent=2)


def print_summary(store: CombinationStore) -> None:
    counts = summarize(store)
    print("\nSUMMARY OF GENERATED COMBINATIONS")
    print("=" * 50)
    for name, count in counts.items():
        print(f"{name:<32} : {count:>5} combinations")
    print("-" * 50)
    print(f"{'TOTAL':<32} : {sum(counts.values()):>5} combinations")
    print("=" * 50)

    print("\nSample combinations:")
    for row in build_table(store)[:SAMPLE_SIZE]:
        names = [
            subject.name
            for subject in (store.get_subject(i) for i in row["subjectIds"])
            if subject is not None
        ]
        stream = store.get_stream(row["streamId"])
        print(f"  {stream.name if stream else row['streamId']}: {' + '.join(names)}")


# =============================================================================
# Main Script
# =============================================================================


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--seed", type=Path, default=DEFAULT_SEED_PATH)
    parser.add_argument("--output", type=Path, default=OUTPUT_FILE)
    parser.add_argument(
        "--quiet", action="store_true", help="Skip the per-stream summary"
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point; returns a process exit code."""
    args = parse_args(argv)

    print(f"Loading: {args.seed}")
    try:
        store = CombinationStore.from_seed(args.seed)
    except ReferenceDataError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    rows = build_table(store)
    save_table(rows, args.output, args.seed)
    print(f"Saved {len(rows):,} combinations to: {args.output}")

    if not args.quiet:
        print_summary(store)

    return 0


if __name__ == "__main__":
    sys.exit(main())
