import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.schemas.catalog import SimulationEntry  # noqa: E402
from app.services.role_matcher import canonical_phrase, match_role  # noqa: E402


def _entry(title: str, slug: str | None = None, active: bool = True) -> SimulationEntry:
    return SimulationEntry(slug=slug or title.lower().replace(" ", "-"), title=title, active=active)


class RoleMatcherTests(unittest.TestCase):
    def setUp(self):
        self.catalog = [
            _entry("Data & Analytics", "data-analytics-101"),
            _entry("Marketing Fundamentals", "marketing-101"),
            _entry("Project Management", "project-management-101"),
            _entry("Sales / Business Development", "sales-bd-101"),
            _entry("Software Engineering", "software-engineering-101"),
        ]

    def test_exact_match_is_case_insensitive(self):
        match = match_role("software engineering", self.catalog)
        self.assertEqual(match.slug, "software-engineering-101")

    def test_aliases_resolve_to_project_management(self):
        expected = match_role("Project Management", self.catalog)
        self.assertIsNotNone(expected)
        self.assertEqual(match_role("PM", self.catalog), expected)
        self.assertEqual(match_role("Product Management", self.catalog), expected)

    def test_alias_table_lookup(self):
        self.assertEqual(canonical_phrase("  BD "), "sales / business development")
        self.assertEqual(canonical_phrase("Data Science"), "data & analytics")
        self.assertEqual(canonical_phrase("Legal"), "legal")

    def test_substring_prefers_first_entry_in_title_order(self):
        catalog = [_entry("Data & Analytics", "da"), _entry("Data Science Basics", "dsb")]
        match = match_role("data", catalog)
        self.assertEqual(match.slug, "da")

    def test_substring_match_without_alias(self):
        match = match_role("Marketing", self.catalog)
        self.assertEqual(match.slug, "marketing-101")

    def test_catalog_is_ordered_by_title_before_matching(self):
        catalog = [_entry("Design Systems", "ds"), _entry("Brand Design", "bd")]
        match = match_role("design", catalog)
        self.assertEqual(match.slug, "bd")

    def test_keyword_rule_maps_business_development_to_sales(self):
        catalog = [_entry("Enterprise Sales Simulation", "sales-sim")]
        match = match_role("Business Development Representative", catalog)
        self.assertEqual(match.slug, "sales-sim")

    def test_keyword_rules_follow_rule_order(self):
        catalog = [_entry("Data Storytelling", "data"), _entry("Growth Marketing", "growth")]
        match = match_role("Marketing Data Specialist", catalog)
        self.assertEqual(match.slug, "growth")

    def test_no_match_for_unrelated_role(self):
        self.assertIsNone(match_role("Veterinary Medicine", self.catalog))

    def test_empty_inputs_return_none(self):
        self.assertIsNone(match_role("Marketing", []))
        self.assertIsNone(match_role("   ", self.catalog))

    def test_inactive_entries_are_eligible(self):
        catalog = [_entry("Legal Operations", "legal-ops", active=False)]
        self.assertEqual(match_role("Legal", catalog).slug, "legal-ops")

    def test_repeated_calls_return_the_same_match(self):
        first = match_role("Data Science", self.catalog)
        for _ in range(5):
            self.assertEqual(match_role("Data Science", self.catalog), first)


if __name__ == "__main__":
    unittest.main()
