import json
from datetime import datetime, timezone

from src.models import RenderState, DashboardRecord, MARKER_LABELS
from src.logger import log

OUTPUT_FILE = "dashboard.jsonl"


def _save_targets(company_id: str) -> list[tuple[str, str, bool]]:
    """(path, status, append as JSONL) in the order they are tried."""
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return [
        (OUTPUT_FILE, "saved", True),
        (f"{OUTPUT_FILE}.recovery.jsonl", "saved_to_fallback", True),
        (f"emergency_save_{company_id}_{timestamp}.json", "saved_to_emergency", False),
    ]


def _write(path: str, record: DashboardRecord, append: bool) -> None:
    if append:
        with open(path, "a") as f:
            f.write(json.dumps(record) + "\n")
    else:
        with open(path, "w") as f:
            json.dump(record, f, indent=2)


def save(state: RenderState) -> dict:
    """
    Append the rendered dashboard for one company to the output file.

    Falls back to a .recovery.jsonl file, then to a timestamped emergency
    file. If every target fails the record is written to the log so it can
    be recovered by hand, and the status is save_failed.
    """
    company_id = state["company_id"]
    record: DashboardRecord = {
        "company_id": company_id,
        "rendered_at": datetime.now(timezone.utc).isoformat(),
        "selected_issues": list(state["preferences"].selected_issues),
        "page_classification": state.get("page_classification"),
        "regions": state.get("regions") or {},
        "items": state.get("items") or [],
        "overview": state.get("overview") or [],
    }

    errors = []
    for path, status, append in _save_targets(company_id):
        try:
            _write(path, record, append)
        except IOError as e:
            log(f"    Save to {path} failed: {e}")
            errors.append(e)
            continue

        if status == "saved":
            page = record["page_classification"]
            log(f"✓ Saved: {company_id} → {MARKER_LABELS[page] if page else 'No alignment signal'}")
        else:
            log(f"    ✓ Saved to {path}")
            log(f"    Merge this file into {OUTPUT_FILE} before analyzing")
        return {"status": status}

    log(f"\n CRITICAL: All save attempts failed for {company_id} ({len(errors)} errors)")
    log(f"    Data to recover manually:")
    log(f"    {json.dumps(record, indent=2)}")
    return {"status": "save_failed"}
