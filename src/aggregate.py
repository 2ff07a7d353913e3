"""
Region aggregation for IssueLens.

Applies the item matcher, the alignment lookup and the dominance resolver at
each level of a company page: data item -> region (tab or panel) -> page.
Every level reduces with the same resolve_dominant, so a level can never show
a softer signal than any of its children.
"""

from typing import Any, Iterable, Mapping, Optional

from src.models import DataItem, RegionMarker, UserPreferences
from src.matching import match_tags
from src.dominance import resolve_dominant
from src.rules import get_alignment, get_alignment_note
from src.catalog import Catalog, load_catalog


def _catalog(catalog: Optional[Catalog]) -> Catalog:
    return catalog if catalog is not None else load_catalog()


def _classify(issue_ids: Iterable[str], company_id: str, stances: Mapping[str, Any],
              catalog: Catalog) -> list[Optional[str]]:
    return [get_alignment(issue_id, company_id, stances.get(issue_id), catalog.rules)
            for issue_id in issue_ids]


# --- Item level ---

def _match_set(preferences: UserPreferences, within: Optional[Iterable[str]]) -> Iterable[str]:
    return preferences.selected_issues if within is None else within


def resolve_tags(tags: Iterable[str], company_id: str, preferences: UserPreferences,
                 catalog: Optional[Catalog] = None,
                 within: Optional[Iterable[str]] = None) -> Optional[str]:
    """Dominant classification over the tags matched against `within` (default: the selection)."""
    cat = _catalog(catalog)
    matched = match_tags(tags, _match_set(preferences, within))
    return resolve_dominant(_classify(matched, company_id, preferences.stances, cat))


def resolve_item(item: DataItem, company_id: str, preferences: UserPreferences,
                 catalog: Optional[Catalog] = None,
                 within: Optional[Iterable[str]] = None) -> Optional[str]:
    """
    Marker for one data item: its own matched tags, then its nested items.

    Inside a region, pass the region's active issues as `within` so a tag the
    region can never surface does not mark the item either.

    Returns:
        Dominant classification, or None (no marker)
    """
    cat = _catalog(catalog)
    if within is not None:
        within = tuple(within)
    own = resolve_tags(item.issues, company_id, preferences, cat, within)
    nested = [resolve_item(child, company_id, preferences, cat, within) for child in item.children]
    return resolve_dominant([own, *nested])


def issue_pills(tags: Iterable[str], company_id: str, preferences: UserPreferences,
                catalog: Optional[Catalog] = None,
                within: Optional[Iterable[str]] = None) -> list[dict]:
    """One pill per matched tag known to the issue catalog, each with its own classification."""
    cat = _catalog(catalog)
    pills = []
    for issue_id in dict.fromkeys(match_tags(tags, _match_set(preferences, within))):
        issue = cat.issue(issue_id)
        if issue is None:
            continue
        pills.append({
            "issue_id": issue_id,
            "label": issue.label,
            "icon": issue.icon,
            "classification": get_alignment(
                issue_id, company_id, preferences.stance_for(issue_id), cat.rules
            ),
        })
    return pills


# --- Region level ---

def region_active_issues(region_id: str, selected_issues: Iterable[str],
                         catalog: Optional[Catalog] = None) -> tuple[str, ...]:
    """The region's fixed relevance list intersected with the selection, in list order."""
    cat = _catalog(catalog)
    return tuple(match_tags(cat.region_issues(region_id), list(selected_issues or ())))


def region_marker(region_id: str, company_id: str, selected_issues: Iterable[str],
                  stances: Optional[Mapping[str, Any]] = None,
                  catalog: Optional[Catalog] = None) -> RegionMarker:
    """Resolve a region to a marker that also tells "not relevant" from "flagged"."""
    cat = _catalog(catalog)
    active = region_active_issues(region_id, selected_issues, cat)
    classification = resolve_dominant(_classify(active, company_id, stances or {}, cat))
    return RegionMarker(region_id=region_id, active_issues=active, classification=classification)


def resolve_region(region_id: str, company_id: str, selected_issues: Iterable[str],
                   stances: Optional[Mapping[str, Any]] = None,
                   catalog: Optional[Catalog] = None) -> Optional[str]:
    """Dominant classification for a region, or None."""
    return region_marker(region_id, company_id, selected_issues, stances, catalog).classification


# --- Page level ---

def page_region_ids(company_id: str, catalog: Optional[Catalog] = None) -> list[str]:
    """Regions of the relevance map, then any extra region the company record has."""
    cat = _catalog(catalog)
    region_ids = list(cat.regions)
    record = cat.company(company_id)
    if record is not None:
        region_ids.extend(r for r in record.regions if r not in cat.regions)
    return region_ids


def resolve_page(company_id: str, preferences: UserPreferences,
                 catalog: Optional[Catalog] = None) -> dict[str, RegionMarker]:
    """One marker per region of the company page (e.g. navigation badges)."""
    cat = _catalog(catalog)
    return {
        region_id: region_marker(
            region_id, company_id, preferences.selected_issues, preferences.stances, cat
        )
        for region_id in page_region_ids(company_id, cat)
    }


def page_badge(markers: Mapping[str, RegionMarker]) -> Optional[str]:
    """Top-level indicator: the same dominance rule over every region's marker."""
    return resolve_dominant(marker.classification for marker in markers.values())


# --- Overview ---

def overview_cards(company_id: str, preferences: UserPreferences,
                   catalog: Optional[Catalog] = None) -> list[dict]:
    """
    Overview cards, one per selected issue the company has an editorial note on.

    Cards follow the order the user picked their issues in.
    """
    cat = _catalog(catalog)
    record = cat.company(company_id)
    if record is None:
        return []

    cards = []
    for issue_id in preferences.selected_issues:
        issue = cat.issue(issue_id)
        note = record.issue_notes.get(issue_id)
        if issue is None or note is None:
            continue
        cards.append({
            "issue_id": issue_id,
            "label": issue.label,
            "icon": issue.icon,
            "classification": get_alignment(
                issue_id, company_id, preferences.stance_for(issue_id), cat.rules
            ),
            "note": get_alignment_note(issue_id, company_id, cat.rules),
            "headline": note.headline,
            "data_points": list(note.data_points),
            "regions": list(note.regions),
        })
    return cards
