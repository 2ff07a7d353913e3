from src.models import RenderState
from src.catalog import load_catalog
from src.matching import match_tags
from src.aggregate import region_active_issues, resolve_item, issue_pills


def mark_items(state: RenderState) -> dict:
    """
    Compute the marker for every data item the user's issues touch.

    Tags are matched against the active issues of the item's region, so an
    item never carries a marker its region cannot show. Untagged and
    unmatched items carry no marker and are left out.

    Returns:
        Dict with items, status
    """
    catalog = load_catalog()
    preferences = state["preferences"]
    company_id = state["company_id"]
    record = catalog.company(company_id)

    items = []
    if record is not None:
        for region_id, region_items in record.regions.items():
            active = region_active_issues(region_id, preferences.selected_issues, catalog)
            if not active:
                continue
            for item in region_items:
                tags = item.all_tags()
                matched = match_tags(tags, active)
                if not matched:
                    continue
                items.append({
                    "region_id": region_id,
                    "label": item.label,
                    "matched": matched,
                    "classification": resolve_item(item, company_id, preferences, catalog, active),
                    "pills": issue_pills(tags, company_id, preferences, catalog, active),
                })

    return {"items": items, "status": "items_marked"}
