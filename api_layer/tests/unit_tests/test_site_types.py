"""Tests for site-type classification and the per-site-type tables."""

import pytest

from sso_sync_api.enums import SiteType
from sso_sync_api.sync.site_types import CANDIDATE_TABLES
from sso_sync_api.sync.site_types import USER_PROFILES_COLUMNS
from sso_sync_api.sync.site_types import candidate_tables_for
from sso_sync_api.sync.site_types import classify_site_type
from sso_sync_api.sync.site_types import default_columns_for
from sso_sync_api.sync.site_types import default_table_for
from sso_sync_api.sync.site_types import roles_for
from sso_sync_api.sync.site_types import write_target_tables


class TestClassifySiteType:
    """Tests for classify_site_type."""

    @pytest.mark.parametrize(
        "name,category,expected",
        [
            ("anything", "sales", SiteType.SALES),
            ("sales-prod", None, SiteType.SALES),
            ("hrms-main", None, SiteType.HRMS),
            ("acme-hr", None, SiteType.HRMS),
            ("content-cms", None, SiteType.CMS),
            ("city-garage", None, SiteType.GARAGE),
            ("portal", "Internal CMS site", SiteType.CMS),
            ("portal", None, SiteType.GENERIC),
            (None, None, SiteType.GENERIC),
            ("", "  ", SiteType.GENERIC),
        ],
        ids=[
            "category_exact",
            "name_cue_sales",
            "name_cue_hrms",
            "name_cue_hr",
            "name_cue_cms",
            "name_cue_garage",
            "category_cue",
            "no_cue",
            "all_none",
            "blank",
        ],
    )
    def test_classification(self, name, category, expected):
        """Test the documented precedence of category, name and category cues."""
        assert classify_site_type(name, category) == expected

    def test_category_exact_match_beats_name_cue(self):
        """Test an exact category wins over a conflicting name cue."""
        assert classify_site_type("sales-hub", "cms") == SiteType.CMS

    def test_case_and_whitespace_insensitive(self):
        """Test classification ignores case and surrounding whitespace."""
        assert classify_site_type("  SALES-PROD  ", None) == SiteType.SALES
        assert classify_site_type("x", "  Garage ") == SiteType.GARAGE

    def test_hr_is_a_plain_substring_cue(self):
        """Test any name containing "hr" classifies as hrms, even unrelated words."""
        assert classify_site_type("chrome-shop", None) == SiteType.HRMS

    def test_hrms_cue_checked_before_sales(self):
        """Test the first matching cue in order wins."""
        assert classify_site_type("hr-sales", None) == SiteType.HRMS

    def test_deterministic(self):
        """Test identical input always yields the same site type."""
        results = {classify_site_type("garage-sales", "misc") for _ in range(20)}
        assert results == {SiteType.SALES}


class TestSiteTypeTables:
    """Tests for default tables, candidates, roles and default columns."""

    @pytest.mark.parametrize(
        "site_type,expected",
        [
            (SiteType.SALES, "users"),
            (SiteType.HRMS, "employees"),
            (SiteType.CMS, "hr_users"),
            (SiteType.GARAGE, "user_profiles"),
            (SiteType.GENERIC, "user_profiles"),
        ],
    )
    def test_default_table(self, site_type, expected):
        assert default_table_for(site_type) == expected

    def test_every_site_type_has_candidates(self):
        for site_type in SiteType:
            assert candidate_tables_for(site_type)

    def test_candidates_are_copies(self):
        """Test callers cannot mutate the shared candidate lists."""
        candidates = candidate_tables_for(SiteType.SALES)
        candidates.append("mutated")
        assert "mutated" not in CANDIDATE_TABLES[SiteType.SALES]

    def test_write_targets_start_with_default_without_duplicates(self):
        targets = write_target_tables(SiteType.SALES)

        assert targets[0] == "users"
        assert len(targets) == len(set(targets))
        assert set(targets) == set(candidate_tables_for(SiteType.SALES))

    def test_write_targets_garage_default_not_first_candidate(self):
        """Test the fallback default table is tried first even when it is the last candidate."""
        targets = write_target_tables(SiteType.GARAGE)

        assert targets[0] == "user_profiles"
        assert targets[1:] == ["mechanics", "staff", "garage_users", "users"]

    def test_roles(self):
        assert [role.value for role in roles_for(SiteType.SALES)] == ["owner", "manager", "salesman"]
        assert [role.value for role in roles_for(SiteType.GENERIC)] == ["admin", "manager", "user"]

    def test_default_columns_known_table(self):
        columns = default_columns_for(SiteType.HRMS, "employees")

        assert "employee_status" in columns
        assert "id" in columns

    def test_default_columns_fall_back_to_user_profiles(self):
        assert default_columns_for(SiteType.SALES, "sales_team") == USER_PROFILES_COLUMNS
        assert default_columns_for(SiteType.GARAGE, "mechanics") == USER_PROFILES_COLUMNS
