#!/usr/bin/env python
"""
Print a learner's learning paths from a dataset.

Usage:
  python scripts/render_roadmap.py --learner u1 [--data data/] [--json]

Exit codes:
  0 = roadmap printed (possibly empty)
  1 = dataset could not be loaded
"""

import argparse
import json
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "backend"))

from data_loader import enrollments_for, load_data
from feed import collect_recommendation_sets, table_feed
from roadmap import build_roadmap, roadmap_to_payload

_STATUS_MARKS = {
    "completed": "✓",
    "enrolled": "…",
    "recommended": "→",
    "locked": "✗",
}


def format_path(path) -> str:
    """'1 Python Basics ✓ > 2 Data Structures …'"""
    return " > ".join(
        f"{node.course_id} {node.course.name} {_STATUS_MARKS.get(node.status, '?')}"
        for node in path
    )


def render(data: dict, learner_id: str, as_json: bool = False) -> str:
    enrollments = enrollments_for(data, learner_id)
    recommendation_sets = collect_recommendation_sets(
        [record.course_id for record in enrollments],
        table_feed(data["recommendations_df"]),
    )
    roadmap = build_roadmap(data["courses"], enrollments, recommendation_sets)

    if as_json:
        return json.dumps(roadmap_to_payload(roadmap), indent=2)
    if not roadmap.paths:
        return f"No learning paths for learner {learner_id}."
    lines = [f"Learning paths for learner {learner_id}:"]
    lines.extend(f"  {i}. {format_path(path)}" for i, path in enumerate(roadmap.paths, start=1))
    return "\n".join(lines)


def main(argv=None) -> int:
    repo_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    parser = argparse.ArgumentParser(description="Print a learner's course roadmap.")
    parser.add_argument("--learner", required=True, help="Learner id as it appears in enrollments")
    parser.add_argument(
        "--data",
        default=os.path.join(repo_root, "data"),
        help="CSV directory or xlsx workbook",
    )
    parser.add_argument("--json", action="store_true", help="Print the full JSON payload")
    args = parser.parse_args(argv)

    try:
        data = load_data(args.data)
    except Exception as exc:
        print(f"[FATAL] Failed to load data: {exc}", file=sys.stderr)
        return 1

    print(render(data, args.learner, as_json=args.json))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
