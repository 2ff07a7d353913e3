import json
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.models import Issue, CompanyRecord
from src.rules import RuleTable
from src.logger import warn
from settings import (
    DATA_DIR_ENV_VAR, DEFAULT_DATA_DIR,
    ISSUES_FILE, RULES_FILE, COMPANIES_FILE,
)

# Catalog cache with modification time tracking
_CATALOG_CACHE = {
    "key": None,
    "data": None,
}


class Catalog(BaseModel):
    """Static configuration the engine reads: issues, region map, rules, company records."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    issues: dict[str, Issue] = Field(default_factory=dict)
    regions: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    rules: RuleTable = Field(default_factory=RuleTable)
    companies: dict[str, CompanyRecord] = Field(default_factory=dict)

    def issue(self, issue_id: str) -> Optional[Issue]:
        return self.issues.get(issue_id)

    def company(self, company_id: str) -> Optional[CompanyRecord]:
        return self.companies.get(company_id)

    def region_issues(self, region_id: str) -> tuple[str, ...]:
        return self.regions.get(region_id, ())


def resolve_data_dir(data_dir: Optional[str] = None) -> Path:
    """CLI argument wins, then the environment, then the default."""
    return Path(data_dir or os.environ.get(DATA_DIR_ENV_VAR) or DEFAULT_DATA_DIR)


def _read_json(path: Path, expected: type, default: Any) -> Any:
    """
    Read one catalog file, degrading to `default` on any problem.

    Missing files are normal (catalogs may be incomplete); malformed ones are
    reported but never stop rendering.
    """
    if not path.exists():
        warn(f"Catalog file not found: {path}")
        return default

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        warn(f"Malformed catalog file {path}: {e}")
        return default
    except (OSError, IOError) as e:
        warn(f"Cannot read catalog file {path}: {e}")
        return default

    if not isinstance(data, expected):
        warn(f"Invalid structure in {path} (expected a JSON {expected.__name__})")
        return default

    return data


def _parse_issues(raw: list) -> dict[str, Issue]:
    issues = {}
    for i, entry in enumerate(raw):
        try:
            issue = Issue.model_validate(entry)
        except ValidationError as e:
            warn(f"Skipping issue at index {i}: {e.error_count()} validation error(s)")
            continue
        issues[issue.id] = issue
    return issues


def _region_map(issues: dict[str, Issue]) -> dict[str, tuple[str, ...]]:
    """Invert each issue's region list into region id -> issue ids, in catalog order."""
    regions = {}
    for issue in issues.values():
        for region_id in issue.regions:
            regions.setdefault(region_id, {})[issue.id] = None
    return {region_id: tuple(issue_ids) for region_id, issue_ids in regions.items()}


def _parse_companies(raw: dict) -> dict[str, CompanyRecord]:
    companies = {}
    for company_id, entry in raw.items():
        if not isinstance(entry, dict):
            warn(f"Skipping company '{company_id}': record must be an object")
            continue
        try:
            record = CompanyRecord.model_validate({"id": company_id, **entry})
        except ValidationError as e:
            warn(f"Skipping company '{company_id}': {e.error_count()} validation error(s)")
            continue
        companies[record.id] = record
    return companies


def _cache_key(root: Path) -> tuple:
    """Directory plus each file's mtime (None if absent)."""
    mtimes = []
    for name in (ISSUES_FILE, RULES_FILE, COMPANIES_FILE):
        try:
            mtimes.append((root / name).stat().st_mtime)
        except OSError:
            mtimes.append(None)
    return (str(root.resolve()), tuple(mtimes))


def load_catalog(data_dir: Optional[str] = None) -> Catalog:
    """
    Load the static catalogs with caching and modification time checking.

    - Loads on first use
    - Reloads if any catalog file has changed since the last load
    - Each missing or malformed file degrades to an empty section

    Returns:
        Catalog (possibly empty, never None)
    """
    root = resolve_data_dir(data_dir)
    key = _cache_key(root)

    if _CATALOG_CACHE["data"] is not None and _CATALOG_CACHE["key"] == key:
        return _CATALOG_CACHE["data"]

    issues = _parse_issues(_read_json(root / ISSUES_FILE, list, []))
    catalog = Catalog(
        issues=issues,
        regions=_region_map(issues),
        rules=RuleTable.from_raw(_read_json(root / RULES_FILE, dict, {})),
        companies=_parse_companies(_read_json(root / COMPANIES_FILE, dict, {})),
    )

    _CATALOG_CACHE["key"] = key
    _CATALOG_CACHE["data"] = catalog

    return catalog


def clear_catalog_cache() -> None:
    _CATALOG_CACHE["key"] = None
    _CATALOG_CACHE["data"] = None
