from src.models import RenderState, RegionMarker
from src.aggregate import page_badge


def badge_page(state: RenderState) -> dict:
    """
    Reduce the region markers to one page-level classification.

    Uses the same dominance rule as every level below it, so a conflict in
    any region always reaches the page badge.
    """
    markers = {
        region_id: RegionMarker.model_validate(marker)
        for region_id, marker in (state.get("regions") or {}).items()
    }

    return {"page_classification": page_badge(markers), "status": "badged"}
