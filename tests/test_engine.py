"""
Tests for the alignment engine primitives and their composition.

Covers:
- Stance resolution (scale positions, side tokens, unrecognized input)
- Alignment lookup (unconditional vs bipolar rules, misses)
- Tag matching and dominance resolution
- Region and page aggregation, including the "never weaker than a child" property
"""

import unittest
import itertools
import os
import random
import sys
from unittest.mock import patch

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from src.catalog import Catalog, load_catalog
from src.models import CompanyRecord, DataItem, Issue, UserPreferences, FLAGGED_LABEL
from src.rules import RuleTable, get_alignment
from src.stance import resolve_side
from src.matching import match_tags
from src.dominance import resolve_dominant
from src.aggregate import (
    resolve_item, resolve_region, region_marker, resolve_page, page_badge,
    issue_pills, overview_cards,
)

DATA_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "data")


def shipped_catalog():
    return load_catalog(DATA_DIR)


class TestStanceResolver(unittest.TestCase):
    """Map raw stance input to a side"""

    def test_scale_positions(self):
        self.assertEqual(resolve_side(1), "left")
        self.assertEqual(resolve_side(2), "left")
        self.assertIsNone(resolve_side(3))
        self.assertEqual(resolve_side(4), "right")
        self.assertEqual(resolve_side(5), "right")

    def test_side_tokens(self):
        self.assertEqual(resolve_side("left"), "left")
        self.assertEqual(resolve_side("right"), "right")

    def test_unrecognized_input_has_no_side(self):
        for value in (None, "center", "LEFT", "2", True, False, 0, 6, -1, [], {}):
            self.assertIsNone(resolve_side(value), f"Expected no side for {value!r}")

    def test_fractional_positions(self):
        self.assertEqual(resolve_side(1.5), "left")
        self.assertIsNone(resolve_side(2.5))
        self.assertIsNone(resolve_side(3.0))
        self.assertEqual(resolve_side(4.5), "right")


class TestAlignmentLookup(unittest.TestCase):
    """Look up (issue, company, stance) -> classification"""

    STANCES = [None, 1, 2, 3, 4, 5, "left", "right", "bogus"]

    def setUp(self):
        self.rules = RuleTable.from_raw({
            "data_privacy": {"meta": "conflict"},
            "dei": {"meta": {"left": "conflict", "right": "aligned"}},
            "lgbtq": {"meta": {"left": "mixed"}},
        })

    def test_unconditional_ignores_stance(self):
        for stance in self.STANCES:
            self.assertEqual(get_alignment("data_privacy", "meta", stance, self.rules), "conflict")

    def test_bipolar_follows_side(self):
        self.assertEqual(get_alignment("dei", "meta", 2, self.rules), "conflict")
        self.assertEqual(get_alignment("dei", "meta", 4, self.rules), "aligned")
        self.assertEqual(get_alignment("dei", "meta", "left", self.rules), "conflict")
        self.assertEqual(get_alignment("dei", "meta", "right", self.rules), "aligned")

    def test_bipolar_without_side_has_no_signal(self):
        self.assertIsNone(get_alignment("dei", "meta", 3, self.rules))
        self.assertIsNone(get_alignment("dei", "meta", None, self.rules))
        self.assertIsNone(get_alignment("dei", "meta", "bogus", self.rules))

    def test_bipolar_missing_branch(self):
        self.assertEqual(get_alignment("lgbtq", "meta", 1, self.rules), "mixed")
        self.assertIsNone(get_alignment("lgbtq", "meta", 5, self.rules))

    def test_lookup_misses(self):
        self.assertIsNone(get_alignment("unknown_issue", "meta", None, self.rules))
        self.assertIsNone(get_alignment("data_privacy", "unknown_company", None, self.rules))
        self.assertIsNone(get_alignment("data_privacy", "meta", None, RuleTable()))

    def test_shipped_rules_properties(self):
        """Every shipped rule satisfies the stance equivalences"""
        rules = shipped_catalog().rules
        self.assertGreater(len(rules), 0)

        for issue_id in rules.issue_ids():
            for company_id in ("meta", "amazon", "tesla"):
                rule = rules.get(issue_id, company_id)
                if rule is None:
                    continue
                if rule.kind == "unconditional":
                    values = {get_alignment(issue_id, company_id, s, rules) for s in self.STANCES}
                    self.assertEqual(values, {rule.value})
                else:
                    self.assertEqual(get_alignment(issue_id, company_id, 1, rules),
                                     get_alignment(issue_id, company_id, "left", rules))
                    self.assertEqual(get_alignment(issue_id, company_id, 5, rules),
                                     get_alignment(issue_id, company_id, "right", rules))
                    self.assertIsNone(get_alignment(issue_id, company_id, 3, rules))

    def test_default_table_is_loaded_catalog(self):
        """Without an explicit table, lookups use the shipped catalog"""
        with patch.dict(os.environ, {"ISSUELENS_DATA_DIR": DATA_DIR}):
            self.assertEqual(get_alignment("data_privacy", "meta"), "conflict")
            self.assertEqual(get_alignment("dei", "meta", 2), "conflict")
            self.assertEqual(get_alignment("dei", "meta", 4), "aligned")

    def test_rule_table_is_read_only(self):
        with self.assertRaises(TypeError):
            self.rules._rules["dei"] = {}
        with self.assertRaises(TypeError):
            self.rules._rules["dei"]["amazon"] = "aligned"


class TestItemMatcher(unittest.TestCase):
    """Intersect item tags with the user's selection"""

    def test_empty_inputs(self):
        self.assertEqual(match_tags([], ["a", "b"]), [])
        self.assertEqual(match_tags(["a", "b"], []), [])
        self.assertEqual(match_tags(None, ["a"]), [])
        self.assertEqual(match_tags(["a"], None), [])

    def test_intersection(self):
        self.assertEqual(match_tags(["a", "b", "c"], ["b", "d"]), ["b"])

    def test_keeps_item_tag_order(self):
        self.assertEqual(match_tags(["c", "a", "b"], ["a", "b", "c"]), ["c", "a", "b"])

    def test_unknown_tags_never_match_unselected(self):
        self.assertEqual(match_tags(["safety", "shareholder"], ["worker_treatment"]), [])

    def test_repeated_tags_stay_repeated(self):
        self.assertEqual(match_tags(["a", "b", "a"], ["a"]), ["a", "a"])


class TestDominanceResolver(unittest.TestCase):
    """Reduce classifications to the most severe"""

    def test_empty(self):
        self.assertIsNone(resolve_dominant([]))
        self.assertIsNone(resolve_dominant([None, None]))

    def test_all_permutations_resolve_to_conflict(self):
        for order in itertools.permutations(["aligned", "conflict", "mixed"]):
            self.assertEqual(resolve_dominant(list(order)), "conflict", f"Failed for {order}")

    def test_severity_order(self):
        self.assertEqual(resolve_dominant(["aligned", "mixed"]), "mixed")
        self.assertEqual(resolve_dominant(["aligned"]), "aligned")
        self.assertEqual(resolve_dominant(["conflict", "aligned"]), "conflict")
        self.assertEqual(resolve_dominant([None, "aligned", None]), "aligned")

    def test_ignores_values_outside_closed_set(self):
        self.assertIsNone(resolve_dominant(["neutral", "none", ""]))
        self.assertEqual(resolve_dominant(["neutral", "mixed"]), "mixed")

    def test_accepts_any_iterable(self):
        self.assertEqual(resolve_dominant(c for c in ["aligned", "mixed"]), "mixed")


class TestRegionAggregator(unittest.TestCase):
    """Item, region and page levels built from the same primitives"""

    def setUp(self):
        self.catalog = shipped_catalog()

    def test_item_scenario(self):
        """Item tagged data_privacy + corporate_power with only data_privacy selected"""
        prefs = UserPreferences(selected_issues=["data_privacy"])
        item = DataItem(label="EU GDPR Fine", issues=["data_privacy", "corporate_power"])

        self.assertEqual(match_tags(item.issues, prefs.selected_issues), ["data_privacy"])
        self.assertEqual(resolve_item(item, "meta", prefs, self.catalog), "conflict")

    def test_item_uses_stance_of_each_issue(self):
        item = DataItem(label="Women on Board", issues=["dei"])
        left = UserPreferences(selected_issues=["dei"], stances={"dei": 2})
        right = UserPreferences(selected_issues=["dei"], stances={"dei": 4})
        neutral = UserPreferences(selected_issues=["dei"], stances={"dei": 3})

        self.assertEqual(resolve_item(item, "meta", left, self.catalog), "conflict")
        self.assertEqual(resolve_item(item, "meta", right, self.catalog), "aligned")
        self.assertIsNone(resolve_item(item, "meta", neutral, self.catalog))

    def test_nested_item_takes_worst_child(self):
        item = DataItem(label="Lobbying", children=[
            DataItem(label="Speech", issues=["free_speech"]),
            DataItem(label="Section 230", issues=["fact_checking"]),
        ])
        prefs = UserPreferences(selected_issues=["free_speech", "fact_checking"])

        self.assertEqual(resolve_item(item.children[0], "meta", prefs, self.catalog), "aligned")
        self.assertEqual(resolve_item(item, "meta", prefs, self.catalog), "conflict")

    def test_labor_region_scenario(self):
        """worker_treatment (mixed) + dei at stance 2 (conflict) -> conflict"""
        selected = ["worker_treatment", "dei"]
        marker = region_marker("labor", "meta", selected, {"dei": 2}, self.catalog)

        self.assertEqual(marker.active_issues, ("worker_treatment", "dei"))
        self.assertEqual(marker.classification, "conflict")
        self.assertEqual(resolve_region("labor", "meta", selected, {"dei": 2}, self.catalog), "conflict")
        self.assertEqual(resolve_region("labor", "meta", selected, {"dei": 4}, self.catalog), "mixed")

    def test_region_ignores_tagged_items_outside_map(self):
        """Only the region's fixed relevance list decides what it surfaces"""
        # CEO pay ratio row in labor is tagged corporate_power, which labor never surfaces
        marker = region_marker("labor", "meta", ["corporate_power"], {}, self.catalog)
        self.assertEqual(marker.active_issues, ())
        self.assertFalse(marker.relevant)
        self.assertIsNone(marker.classification)
        self.assertIsNone(resolve_region("labor", "meta", ["corporate_power"], {}, self.catalog))

        # Harassment case in Tesla's legal tab is tagged dei, which legal never surfaces
        self.assertIsNone(resolve_region("legal", "tesla", ["dei"], {"dei": 1}, self.catalog))
        self.assertFalse(region_marker("legal", "tesla", ["dei"], {"dei": 1}, self.catalog).relevant)

        # Items rendered inside the region are matched against its active issues
        prefs = UserPreferences(selected_issues=["corporate_power"])
        for item in self.catalog.company("meta").regions["labor"]:
            self.assertIsNone(resolve_item(item, "meta", prefs, self.catalog, marker.active_issues))
            self.assertEqual(issue_pills(item.issues, "meta", prefs, self.catalog, marker.active_issues), [])

    def test_region_map_built_from_issue_catalog(self):
        self.assertEqual(self.catalog.region_issues("labor"),
                         ("worker_treatment", "immigrant_rights", "dei", "lgbtq"))
        for issue in self.catalog.issues.values():
            for region_id in issue.regions:
                self.assertIn(issue.id, self.catalog.region_issues(region_id))
        for region_id, issue_ids in self.catalog.regions.items():
            for issue_id in issue_ids:
                self.assertIn(region_id, self.catalog.issue(issue_id).regions)

    def test_not_relevant_vs_flagged(self):
        catalog = Catalog(
            issues={"x": Issue(id="x", label="X")},
            regions={"legal": ("x",), "labor": ("y",)},
            rules=RuleTable(),
            companies={},
        )
        flagged = region_marker("legal", "acme", ["x"], catalog=catalog)
        not_relevant = region_marker("labor", "acme", ["x"], catalog=catalog)

        self.assertTrue(flagged.relevant)
        self.assertTrue(flagged.flagged)
        self.assertIsNone(flagged.classification)
        self.assertEqual(flagged.label, FLAGGED_LABEL)

        self.assertFalse(not_relevant.relevant)
        self.assertFalse(not_relevant.flagged)
        self.assertIsNone(not_relevant.classification)
        self.assertIsNone(not_relevant.label)

    def test_unknown_region_and_company(self):
        self.assertIsNone(resolve_region("nowhere", "meta", ["dei"], {"dei": 1}, self.catalog))
        self.assertIsNone(resolve_region("labor", "nobody", ["worker_treatment"], None, self.catalog))
        self.assertTrue(region_marker("labor", "nobody", ["worker_treatment"], None, self.catalog).flagged)

    def test_randomized_conflict_always_dominates(self):
        """Any region with a conflict among its active issues resolves to conflict"""
        rng = random.Random(20251019)
        values = ["conflict", "mixed", "aligned", None]

        for trial in range(200):
            n = rng.randint(1, 10)
            issue_ids = [f"issue_{i}" for i in range(n)]
            assigned = [rng.choice(values) for _ in issue_ids]
            assigned[rng.randrange(n)] = "conflict"

            raw_rules = {
                issue_id: {"acme": value}
                for issue_id, value in zip(issue_ids, assigned) if value is not None
            }
            catalog = Catalog(
                regions={"region": tuple(issue_ids)},
                rules=RuleTable.from_raw(raw_rules),
            )
            selected = rng.sample(issue_ids, rng.randint(1, n))
            conflict_ids = [i for i, v in zip(issue_ids, assigned) if v == "conflict"]
            selected.append(rng.choice(conflict_ids))

            self.assertEqual(resolve_region("region", "acme", selected, None, catalog), "conflict",
                             f"Trial {trial}: {dict(zip(issue_ids, assigned))}, selected {selected}")

    def test_randomized_region_never_weaker_than_items(self):
        """Items tagged beyond the region's list never outrank the region"""
        rng = random.Random(7)
        values = ["conflict", "mixed", "aligned", None]

        for trial in range(150):
            issue_ids = [f"issue_{i}" for i in range(rng.randint(2, 10))]
            raw_rules = {}
            for issue_id in issue_ids:
                value = rng.choice(values)
                if value is not None:
                    raw_rules[issue_id] = {"acme": value}

            # The region surfaces a strict subset; items may carry any tag
            region_list = tuple(rng.sample(issue_ids, rng.randint(0, len(issue_ids) - 1)))
            outside = [i for i in issue_ids if i not in region_list]
            items = tuple(
                DataItem(
                    label=f"row {k}",
                    issues=[rng.choice(outside)] + rng.sample(issue_ids, rng.randint(0, min(3, len(issue_ids)))),
                    children=[DataItem(label=f"row {k}.1", issues=rng.sample(issue_ids, rng.randint(0, min(3, len(issue_ids)))))],
                )
                for k in range(rng.randint(1, 5))
            )
            catalog = Catalog(
                issues={i: Issue(id=i, label=i.title()) for i in issue_ids},
                regions={"region": region_list},
                rules=RuleTable.from_raw(raw_rules),
                companies={"acme": CompanyRecord(id="acme", name="Acme", regions={"region": items})},
            )
            prefs = UserPreferences(selected_issues=rng.sample(issue_ids, rng.randint(1, len(issue_ids))))
            marker = region_marker("region", "acme", prefs.selected_issues, None, catalog)

            self.assertTrue(set(marker.active_issues) <= set(region_list))
            for item in items:
                item_class = resolve_item(item, "acme", prefs, catalog, marker.active_issues)
                self.assertEqual(resolve_dominant([marker.classification, item_class]), marker.classification,
                                 f"Trial {trial}: item {item.label} is {item_class}, region is {marker.classification}")
                for pill in issue_pills(item.all_tags(), "acme", prefs, catalog, marker.active_issues):
                    self.assertIn(pill["issue_id"], marker.active_issues)

    def test_page_badge_keeps_conflict(self):
        prefs = UserPreferences(selected_issues=["environmental_sustainability", "child_safety"])
        markers = resolve_page("meta", prefs, self.catalog)

        self.assertEqual(markers["environment"].classification, "mixed")
        self.assertEqual(markers["privacy"].classification, "conflict")
        self.assertFalse(markers["labor"].relevant)
        self.assertEqual(page_badge(markers), "conflict")

    def test_page_without_selection(self):
        markers = resolve_page("meta", UserPreferences(), self.catalog)
        self.assertTrue(all(not m.relevant for m in markers.values()))
        self.assertIsNone(page_badge(markers))

    def test_issue_pills_skip_unknown_issues(self):
        prefs = UserPreferences(selected_issues=["worker_treatment", "safety"])
        pills = issue_pills(["worker_treatment", "safety"], "amazon", prefs, self.catalog)

        self.assertEqual([p["issue_id"] for p in pills], ["worker_treatment"])
        self.assertEqual(pills[0]["classification"], "conflict")
        self.assertEqual(pills[0]["label"], "Worker Treatment")

    def test_overview_cards_follow_selection_order(self):
        prefs = UserPreferences(
            selected_issues=["data_privacy", "free_speech", "dei", "worker_treatment"],
            stances={"dei": "left"},
        )
        cards = overview_cards("meta", prefs, self.catalog)

        # free_speech has no editorial note for meta
        self.assertEqual([c["issue_id"] for c in cards], ["data_privacy", "dei", "worker_treatment"])
        self.assertEqual(cards[0]["classification"], "conflict")
        self.assertEqual(cards[1]["classification"], "conflict")
        self.assertEqual(cards[1]["note"], "Meta ended DEI programs in 2025")
        self.assertEqual(overview_cards("nobody", prefs, self.catalog), [])


class TestUserPreferences(unittest.TestCase):

    def test_duplicates_dropped_in_order(self):
        prefs = UserPreferences(selected_issues=["dei", "lgbtq", "dei"])
        self.assertEqual(prefs.selected_issues, ("dei", "lgbtq"))

    def test_missing_values(self):
        prefs = UserPreferences(selected_issues=None, stances=None)
        self.assertEqual(prefs.selected_issues, ())
        self.assertIsNone(prefs.stance_for("dei"))


def run_tests():
    """Run all engine tests"""
    print("\n" + "=" * 60)
    print("Running Engine Tests")
    print("=" * 60 + "\n")

    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    suite.addTests(loader.loadTestsFromTestCase(TestStanceResolver))
    suite.addTests(loader.loadTestsFromTestCase(TestAlignmentLookup))
    suite.addTests(loader.loadTestsFromTestCase(TestItemMatcher))
    suite.addTests(loader.loadTestsFromTestCase(TestDominanceResolver))
    suite.addTests(loader.loadTestsFromTestCase(TestRegionAggregator))
    suite.addTests(loader.loadTestsFromTestCase(TestUserPreferences))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    print("\n" + "=" * 60)
    print(f"Results: {result.testsRun} tests, {len(result.failures)} failures, {len(result.errors)} errors")
    print("=" * 60 + "\n")

    return 0 if result.wasSuccessful() else 1


if __name__ == "__main__":
    sys.exit(run_tests())
