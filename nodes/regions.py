from src.models import RenderState
from src.catalog import load_catalog
from src.aggregate import resolve_page, overview_cards


def mark_regions(state: RenderState) -> dict:
    """
    Resolve every region of the company page, plus the overview cards.

    Returns:
        Dict with regions, overview, status
    """
    catalog = load_catalog()
    markers = resolve_page(state["company_id"], state["preferences"], catalog)

    return {
        "regions": {region_id: marker.to_dict() for region_id, marker in markers.items()},
        "overview": overview_cards(state["company_id"], state["preferences"], catalog),
        "status": "regions_marked",
    }
