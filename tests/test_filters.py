"""Tests for the runner, kit and user list filters"""
import pytest

from racekit import models
from racekit.filters import filter_runners, filter_kits, filter_profiles
from racekit.schemas import ProfileFilter


@pytest.fixture
def runners():
    return [
        models.Runner(bib_number="101", full_name="Alice Tan", participant_id="P-001"),
        models.Runner(bib_number="2101", full_name="Bala Kumar", participant_id=None),
        models.Runner(bib_number="303", full_name="Chen Wei", participant_id="X-77"),
    ]


@pytest.fixture
def profiles():
    return [
        models.Profile(user=models.User(email="admin@example.com"), full_name="A", role="admin", status="active"),
        models.Profile(user=models.User(email="org@example.com"), full_name="O", role="organizer", status="inactive"),
        models.Profile(user=models.User(email="vol@example.com"), full_name="V", role="user", status=None),
    ]


@pytest.mark.unit
class TestFilterRunners:

    def test_empty_term_returns_everything(self, runners):
        assert filter_runners(runners, "") == runners
        assert filter_runners(runners, None) == runners

    def test_whitespace_is_matched_literally(self, runners):
        assert filter_runners(runners, " ") == runners
        assert filter_runners(runners, "   ") == []
        assert [r.full_name for r in filter_runners(runners, "e t")] == ["Alice Tan"]

    def test_matches_name_case_insensitive(self, runners):
        assert [r.full_name for r in filter_runners(runners, "alice")] == ["Alice Tan"]

    def test_matches_bib_substring(self, runners):
        found = filter_runners(runners, "101")
        assert [r.bib_number for r in found] == ["101", "2101"]

    def test_matches_participant_id(self, runners):
        assert [r.full_name for r in filter_runners(runners, "x-7")] == ["Chen Wei"]

    def test_result_is_subset_and_input_untouched(self, runners):
        before = list(runners)
        found = filter_runners(runners, "a")
        assert all(r in runners for r in found)
        assert runners == before
        assert found is not runners

    def test_no_match(self, runners):
        assert filter_runners(runners, "zzz") == []


@pytest.mark.unit
class TestFilterKits:

    def test_matches_kit_number_and_runner(self, runners):
        kits = [models.RaceKit(kit_number=r.bib_number, runner=r) for r in runners]
        assert [k.kit_number for k in filter_kits(kits, "303")] == ["303"]
        assert [k.kit_number for k in filter_kits(kits, "KUMAR")] == ["2101"]
        assert [k.kit_number for k in filter_kits(kits, "p-001")] == ["101"]

    def test_kit_without_runner(self):
        kit = models.RaceKit(kit_number="9")
        assert filter_kits([kit], "9") == [kit]
        assert filter_kits([kit], "alice") == []


@pytest.mark.unit
class TestFilterProfiles:

    def test_default_filter_keeps_all(self, profiles):
        assert filter_profiles(profiles, ProfileFilter()) == profiles

    def test_search_by_email_or_role(self, profiles):
        assert [p.email for p in filter_profiles(profiles, ProfileFilter(q="ORG"))] == ["org@example.com"]
        assert [p.email for p in filter_profiles(profiles, ProfileFilter(q="admin"))] == ["admin@example.com"]

    def test_missing_status_counts_as_active(self, profiles):
        found = filter_profiles(profiles, ProfileFilter(status="active"))
        assert [p.email for p in found] == ["admin@example.com", "vol@example.com"]

    def test_status_and_role_combine(self, profiles):
        assert filter_profiles(profiles, ProfileFilter(status="inactive", role="admin")) == []
        found = filter_profiles(profiles, ProfileFilter(status="inactive", role="organizer"))
        assert [p.email for p in found] == ["org@example.com"]


@pytest.mark.unit
def test_profile_search_keeps_spaces(profiles):
    assert filter_profiles(profiles, ProfileFilter(q=" ")) == []
