from types import MappingProxyType
from typing import Any, Mapping, Optional

from src.models import AlignmentRule, Bipolar, Unconditional, SEVERITY_ORDER
from src.logger import warn


def _checked(value: Any, where: str) -> Optional[str]:
    """Return value if it is a known classification, else warn and drop it."""
    if value is None or value in SEVERITY_ORDER:
        return value
    warn(f"Ignoring unknown classification {value!r} in {where}")
    return None


def parse_rule(raw: Any, where: str = "alignment rules") -> Optional[AlignmentRule]:
    """
    Turn one raw rule table entry into an AlignmentRule.

    Accepted shapes:
        "conflict"                                   -> Unconditional
        {"value": "mixed", "note": "..."}            -> Unconditional
        {"left": "conflict", "right": "aligned"}     -> Bipolar

    Entries that carry no usable classification are dropped (None), which
    reads as "no classification" at lookup time.
    """
    if isinstance(raw, str):
        value = _checked(raw, where)
        return Unconditional(value=value) if value else None

    if not isinstance(raw, dict):
        warn(f"Ignoring malformed rule {raw!r} in {where}")
        return None

    note = raw.get("note")
    if "left" in raw or "right" in raw:
        left = _checked(raw.get("left"), f"{where} (left)")
        right = _checked(raw.get("right"), f"{where} (right)")
        if left is None and right is None:
            return None
        return Bipolar(left=left, right=right, note=note)

    value = _checked(raw.get("value"), where)
    if value is None:
        warn(f"Rule in {where} has no classification")
        return None
    return Unconditional(value=value, note=note)


class RuleTable:
    """
    Immutable (issue id -> company id -> AlignmentRule) lookup.

    Built once when the catalog loads; rule shapes are decided there so
    lookups never inspect raw data.
    """

    def __init__(self, rules: Optional[Mapping[str, Mapping[str, AlignmentRule]]] = None):
        self._rules = MappingProxyType({
            issue_id: MappingProxyType(dict(by_company))
            for issue_id, by_company in (rules or {}).items()
        })

    @classmethod
    def from_raw(cls, raw: Any) -> "RuleTable":
        """Build a table from the nested JSON structure in alignment_rules.json."""
        if not isinstance(raw, dict):
            warn("Alignment rules must be a JSON object keyed by issue id")
            return cls()

        rules = {}
        for issue_id, by_company in raw.items():
            if not isinstance(by_company, dict):
                warn(f"Rules for issue '{issue_id}' must be keyed by company id")
                continue
            parsed = {}
            for company_id, entry in by_company.items():
                rule = parse_rule(entry, where=f"{issue_id}/{company_id}")
                if rule is not None:
                    parsed[company_id] = rule
            rules[issue_id] = parsed
        return cls(rules)

    def get(self, issue_id: str, company_id: str) -> Optional[AlignmentRule]:
        by_company = self._rules.get(issue_id)
        if by_company is None:
            return None
        return by_company.get(company_id)

    def issue_ids(self) -> list[str]:
        return list(self._rules)

    def __contains__(self, issue_id) -> bool:
        return issue_id in self._rules

    def __len__(self) -> int:
        return sum(len(by_company) for by_company in self._rules.values())


def _default_rules() -> RuleTable:
    from src.catalog import load_catalog
    return load_catalog().rules


def get_alignment(issue_id: str, company_id: str, stance: Any = None,
                  rules: Optional[RuleTable] = None) -> Optional[str]:
    """
    Look up how a company's record on an issue reads for this user.

    Args:
        issue_id: Issue identifier
        company_id: Company identifier
        stance: The user's stance on this issue (1-5, "left"/"right", or None)
        rules: Rule table to use (defaults to the loaded catalog's table)

    Returns:
        "conflict" | "mixed" | "aligned", or None when no rule applies.
        A bipolar rule gives None until the user has taken a side.
    """
    table = rules if rules is not None else _default_rules()
    rule = table.get(issue_id, company_id)
    if rule is None:
        return None
    return rule.classify(stance)


def get_alignment_note(issue_id: str, company_id: str,
                       rules: Optional[RuleTable] = None) -> Optional[str]:
    """Editorial note attached to the (issue, company) rule, if any."""
    table = rules if rules is not None else _default_rules()
    rule = table.get(issue_id, company_id)
    return rule.note if rule is not None else None
