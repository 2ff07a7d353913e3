import argparse
import json
from collections import Counter
from pathlib import Path


def analyze_dashboards(jsonl_file="dashboard.jsonl"):
    dashboards_file = Path(jsonl_file)

    # Check if file exists
    if not dashboards_file.exists():
        print(f"Error: {jsonl_file} not found. Check the spelling.")
        print("\nRender dashboards first:")
        print("  python main.py preferences.json")
        return

    # Check if file is empty
    if dashboards_file.stat().st_size == 0:
        print(f"Error: {jsonl_file} is empty.")
        print("\nRender dashboards first:")
        print("  python main.py preferences.json")
        return

    dashboards = []
    with open(dashboards_file) as f:
        for line_number, line in enumerate(f, 1):
            if not line.strip():
                continue
            try:
                dashboards.append(json.loads(line))
            except json.JSONDecodeError as e:
                print(f"Warning: Skipping malformed line {line_number}: {e}")

    total = len(dashboards)
    if total == 0:
        print("No dashboards rendered yet.")
        print("\nThe file exists but contains no dashboard records.")
        return

    required_fields = ["company_id", "page_classification", "regions", "items"]
    missing = [f for f in required_fields if f not in dashboards[0]]
    if missing:
        print(f"Error: File is missing required fields: {', '.join(missing)}")
        print("\nThe file may be corrupted or from an older version.")
        print(f"Render again to regenerate {jsonl_file}:")
        print("  python main.py preferences.json")
        return

    print(f"\n{'═' * 50}")
    print(f"ALIGNMENT SUMMARY - {jsonl_file}")
    print(f"({total} dashboards)")
    print(f"{'═' * 50}")

    # Page badges
    pages = Counter(d["page_classification"] or "none" for d in dashboards)
    for classification in ("conflict", "mixed", "aligned", "none"):
        count = pages.get(classification, 0)
        print(f"Page {classification + ':':<10} {count}/{total} ({100*count/total:.1f}%)")

    # Region markers
    print(f"\n{'─' * 50}")
    print("REGION MARKERS (by company)")
    print(f"{'─' * 50}")

    for d in dashboards:
        markers = Counter()
        for marker in d["regions"].values():
            if marker["classification"]:
                markers[marker["classification"]] += 1
            elif marker.get("flagged"):
                markers["flagged"] += 1
        if markers:
            counts = ", ".join(f"{k}: {v}" for k, v in markers.most_common())
            print(f"  {d['company_id']}: {counts}")
        else:
            print(f"  {d['company_id']}: no relevant regions")

    # Most frequent conflicting regions
    print(f"\n{'─' * 50}")
    print("MOST CONFLICTING REGIONS")
    print(f"{'─' * 50}")

    conflicts = Counter(
        region_id
        for d in dashboards
        for region_id, marker in d["regions"].items()
        if marker["classification"] == "conflict"
    )

    if conflicts:
        for region_id, count in conflicts.most_common(5):
            print(f"  {region_id}: {count}x")
    else:
        print("  None! No region conflicts with the selected issues.")

    return {"pages": dict(pages), "conflicting_regions": dict(conflicts)}


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Summarize rendered dashboards and their alignment markers.",
        epilog="""
Examples:
  python analyze.py                    # Analyzes dashboard.jsonl (default)
  python analyze.py out.jsonl          # Analyzes out.jsonl
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        'jsonl_file',
        nargs='?',
        default='dashboard.jsonl',
        help='JSONL file containing rendered dashboards (default: dashboard.jsonl)'
    )

    args = parser.parse_args()
    analyze_dashboards(args.jsonl_file)
