import json
import os
import sys
from dotenv import load_dotenv

load_dotenv()

from pydantic import ValidationError
from src.graph import create_graph
from src.catalog import load_catalog
from src.models import UserPreferences, MARKER_LABELS, FLAGGED_LABEL
from src.logger import log, warn, log_session_start, log_session_end
from settings import DATA_DIR_ENV_VAR, DEFAULT_OUTPUT_FILE

MARKER_SYMBOLS = {"conflict": "✕", "mixed": "∼", "aligned": "✓"}


def load_preferences(preferences_path: str) -> UserPreferences:
    """
    Load and validate the preferences file written by onboarding.

    Exits with status 1 and a clear message if the file is unusable.
    """
    try:
        with open(preferences_path) as f:
            raw = json.load(f)
    except FileNotFoundError:
        log(f"Error: Preferences file not found: {preferences_path}")
        sys.exit(1)
    except json.JSONDecodeError as e:
        log(f"Error: Invalid JSON in {preferences_path}: {e}")
        sys.exit(1)

    if not isinstance(raw, dict):
        log(f"Error: {preferences_path} must contain a JSON object with your selected issues")
        sys.exit(1)

    required_fields = ["selected_issues"]
    missing_fields = [field for field in required_fields if field not in raw]
    if missing_fields:
        log(f"Error: {preferences_path} missing required fields: {missing_fields}")
        log(f"Required fields: {required_fields}")
        sys.exit(1)

    selected = raw["selected_issues"]
    if not isinstance(selected, list) or not all(isinstance(i, str) for i in selected):
        log(f"Error: 'selected_issues' in {preferences_path} must be an array of issue ids")
        sys.exit(1)

    stances = raw.get("stances")
    if stances is not None and not isinstance(stances, dict):
        log(f"Error: 'stances' in {preferences_path} must be an object keyed by issue id")
        sys.exit(1)

    try:
        return UserPreferences.model_validate({"selected_issues": selected, "stances": stances})
    except ValidationError as e:
        log(f"Error: Invalid preferences in {preferences_path}: {e}")
        sys.exit(1)


def display_dashboard(state: dict, catalog) -> None:
    """Print the navigation badges and flagged rows for one rendered company."""
    company = catalog.company(state["company_id"])
    name = company.name if company else state["company_id"]

    log(f"\n{'─' * 60}")
    log(f"{name}")

    if not state["preferences"].selected_issues:
        log("  No issues selected. Showing the unpersonalized page.")
        return

    page = state.get("page_classification")
    log(f"  Page: {MARKER_LABELS[page] if page else 'No alignment signal'}")

    log(f"\nRegions:")
    for region_id, marker in (state.get("regions") or {}).items():
        if marker["classification"]:
            symbol = MARKER_SYMBOLS[marker["classification"]]
            log(f"  {symbol} {region_id}: {marker['label']} ({', '.join(marker['active_issues'])})")
        elif marker["flagged"]:
            log(f"  • {region_id}: {FLAGGED_LABEL} ({', '.join(marker['active_issues'])})")

    items = state.get("items") or []
    if items:
        log(f"\nFlagged items:")
        for item in items:
            symbol = MARKER_SYMBOLS.get(item["classification"], "•")
            log(f"  {symbol} [{item['region_id']}] {item['label']}")


def main():
    import argparse

    parser = argparse.ArgumentParser(
        description="Render personalized issue alignment markers for company pages",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Render every company in the catalog
  python main.py preferences.json

  # Render one company without writing output
  python main.py preferences.json --company meta --dry-run

  # Custom output file and catalog directory
  python main.py preferences.json out.jsonl --data-dir ./my_data
        """
    )
    parser.add_argument("preferences_file", help="JSON file with selected_issues and optional stances")
    parser.add_argument("output_file", nargs="?", default=DEFAULT_OUTPUT_FILE,
                       help=f"Output JSONL file (default: {DEFAULT_OUTPUT_FILE})")
    parser.add_argument("--company", action="append", dest="companies",
                       help="Company id to render (repeatable; default: all companies)")
    parser.add_argument("--data-dir",
                       help=f"Catalog directory (default: ${DATA_DIR_ENV_VAR} or ./data)")
    parser.add_argument("--dry-run", action="store_true",
                       help="Render and display only, do not write the output file")

    args = parser.parse_args()

    log_session_start()

    if args.data_dir:
        os.environ[DATA_DIR_ENV_VAR] = args.data_dir

    preferences = load_preferences(args.preferences_file)

    catalog = load_catalog()
    if not catalog.companies:
        log("Error: No company records found in the catalog")
        log(f"  Check the catalog directory or set {DATA_DIR_ENV_VAR}")
        sys.exit(1)

    company_ids = args.companies or list(catalog.companies)
    unknown = [c for c in company_ids if catalog.company(c) is None]
    if unknown:
        log(f"Error: Unknown company id(s): {unknown}")
        log(f"Available: {list(catalog.companies)}")
        sys.exit(1)

    # Unknown issue ids are kept; they simply never match anything
    unknown_issues = [i for i in preferences.selected_issues if catalog.issue(i) is None]
    if unknown_issues:
        warn(f"Selected issues not in the catalog: {unknown_issues}")

    # Configure output path for the save node
    from nodes import save
    save.OUTPUT_FILE = args.output_file

    graph = create_graph(persist=not args.dry_run)

    log(f"\nRendering {len(company_ids)} compan{'y' if len(company_ids) == 1 else 'ies'} "
        f"for {len(preferences.selected_issues)} selected issue(s)...")

    for company_id in company_ids:
        initial_state = {
            "company_id": company_id,
            "preferences": preferences,
            "items": None,
            "regions": None,
            "overview": None,
            "page_classification": None,
            "status": "pending",
        }
        result = graph.invoke(initial_state)
        display_dashboard(result, catalog)

    log(f"\n{'═' * 60}")
    if args.dry_run:
        log("Done! Dry run, nothing written.")
    else:
        log(f"Done! Results saved to {args.output_file}")
    log(f"{'═' * 60}")

    log_session_end(len(company_ids))


if __name__ == "__main__":
    main()
