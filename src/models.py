from typing import TypedDict, Optional, Literal, Union, Any
from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.stance import resolve_side


Classification = Literal["conflict", "mixed", "aligned"]

# Most severe first. Imported by src/dominance.py and src/rules.py
SEVERITY_ORDER = ("conflict", "mixed", "aligned")

MARKER_LABELS = {
    "conflict": "Conflicts with your values",
    "mixed": "Mixed record",
    "aligned": "Aligns with your values",
}

# Region has selected issues but no company rule engaged for any of them
FLAGGED_LABEL = "Your issues"


# --- Static catalogs ---

class Issue(BaseModel):
    """One issue a user can select during onboarding."""
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    icon: str = ""
    regions: tuple[str, ...] = Field(
        default=(),
        description="Region ids that can surface this issue (builds the region relevance map)"
    )


class IssueNote(BaseModel):
    """Editorial summary of a company's record on one issue."""
    model_config = ConfigDict(frozen=True)

    headline: str
    data_points: tuple[str, ...] = ()
    regions: tuple[str, ...] = ()


class DataItem(BaseModel):
    """A row, card or metric in a company record, optionally with nested items."""
    model_config = ConfigDict(frozen=True)

    label: str
    value: Optional[str] = None
    note: Optional[str] = None
    issues: tuple[str, ...] = ()
    children: tuple["DataItem", ...] = ()

    def all_tags(self) -> list[str]:
        """Tags on this item and every nested item, depth first, without duplicates."""
        tags = list(self.issues)
        for child in self.children:
            tags.extend(child.all_tags())
        return list(dict.fromkeys(tags))


DataItem.model_rebuild()


class CompanyRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    regions: dict[str, tuple[DataItem, ...]] = Field(default_factory=dict)
    issue_notes: dict[str, IssueNote] = Field(default_factory=dict)


# --- Alignment rules ---

class Unconditional(BaseModel):
    """Company's record reads the same whichever side of the issue the user is on."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["unconditional"] = "unconditional"
    value: Classification
    note: Optional[str] = None

    def classify(self, stance: Any = None) -> Optional[str]:
        return self.value


class Bipolar(BaseModel):
    """Company's record reads differently depending on the user's side of the issue."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["bipolar"] = "bipolar"
    left: Optional[Classification] = None
    right: Optional[Classification] = None
    note: Optional[str] = None

    def classify(self, stance: Any = None) -> Optional[str]:
        side = resolve_side(stance)
        if side is None:
            return None
        return getattr(self, side)


AlignmentRule = Union[Unconditional, Bipolar]


# --- User input ---

class UserPreferences(BaseModel):
    """Issues picked during onboarding, plus optional stances on bipolar issues."""
    model_config = ConfigDict(frozen=True)

    selected_issues: tuple[str, ...] = ()
    stances: dict[str, Any] = Field(default_factory=dict)

    @field_validator("selected_issues", mode="before")
    @classmethod
    def _drop_duplicates(cls, value):
        if value is None:
            return ()
        # Keeps the order the user picked
        return tuple(dict.fromkeys(value))

    @field_validator("stances", mode="before")
    @classmethod
    def _none_is_empty(cls, value):
        return {} if value is None else value

    def stance_for(self, issue_id: str) -> Any:
        return self.stances.get(issue_id)


# --- Engine output ---

class RegionMarker(BaseModel):
    """Resolved signal for one region (tab or panel) of a company page."""
    model_config = ConfigDict(frozen=True)

    region_id: str
    active_issues: tuple[str, ...] = ()
    classification: Optional[Classification] = None

    @property
    def relevant(self) -> bool:
        return bool(self.active_issues)

    @property
    def flagged(self) -> bool:
        """Relevant to the user, but no company rule engaged for any active issue."""
        return self.relevant and self.classification is None

    @property
    def label(self) -> Optional[str]:
        if self.classification is not None:
            return MARKER_LABELS[self.classification]
        if self.flagged:
            return FLAGGED_LABEL
        return None

    def to_dict(self) -> dict:
        return {
            "region_id": self.region_id,
            "active_issues": list(self.active_issues),
            "classification": self.classification,
            "flagged": self.flagged,
            "label": self.label,
        }


class RenderState(TypedDict):
    # Input
    company_id: str
    preferences: UserPreferences

    # Item markers (from mark_items node)
    items: Optional[list[dict]]            # [{"region_id", "label", "matched", "classification", "pills"}]

    # Region markers (from mark_regions node)
    regions: Optional[dict[str, dict]]     # region_id -> RegionMarker.to_dict()
    overview: Optional[list[dict]]         # one card per selected issue with an editorial note

    # Page badge (from badge_page node)
    page_classification: Optional[str]     # dominant classification over all regions

    # Workflow status
    status: str  # "pending" | "items_marked" | "regions_marked" | "badged" | "saved"


class DashboardRecord(TypedDict):
    """Schema for one line in dashboard.jsonl."""
    company_id: str
    rendered_at: str
    selected_issues: list[str]
    page_classification: Optional[str]
    regions: dict[str, dict]
    items: list[dict]
    overview: list[dict]
