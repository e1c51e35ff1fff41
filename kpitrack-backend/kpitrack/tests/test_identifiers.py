from __future__ import annotations

from kpitrack.services.identifiers import (
    canonical_project_code,
    extract_zone_number,
    join_project_code,
    matches_project,
    normalize_status,
    normalize_zone,
    split_project_code,
    zones_equivalent,
)

from conftest import make_record


def test_canonical_code_keeps_existing_full_code():
    record = make_record(projectCode="X", projectSubCode="99", projectFullCode=" P100-01 ")
    assert canonical_project_code(record) == "P100-01"


def test_canonical_code_joins_parts():
    assert join_project_code("P100", "01") == "P100-01"
    assert join_project_code("P100", "p100-02") == "p100-02"
    assert join_project_code("P100", "-03") == "P100-03"
    assert join_project_code(" P100 ", None) == "P100"
    assert join_project_code(None, None) == ""
    assert canonical_project_code(make_record(projectCode="P200", projectSubCode="A")) == "P200-A"
    assert canonical_project_code(make_record()) == ""


def test_split_project_code_on_first_hyphen():
    assert split_project_code("P100-01-B") == ("P100", "01-B")
    assert split_project_code("P200") == ("P200", "")


def test_project_match_is_exact_first():
    assert matches_project("p100-01", "P100-01")
    assert not matches_project("P100-02", "P100-01")
    assert not matches_project("P100", "")


def test_project_match_folds_bare_base_into_sub_projects():
    assert matches_project("P100", "P100-01", candidate_code="P100")
    assert not matches_project("P200", "P100-01", candidate_code="P200")


def test_project_match_rebuilds_sub_code_variants():
    assert matches_project("P10001", "P100-01", candidate_code="P100", candidate_sub_code="01")
    assert matches_project(None, "P100-01", candidate_code="P100", candidate_sub_code="P100-01")


def test_selected_base_does_not_pull_in_sub_projects():
    assert not matches_project("P100-01", "P100", candidate_code="P100", candidate_sub_code="01")


def test_zone_normalisation_strips_project_prefix():
    assert normalize_zone("P100 - 1", "P100") == "1"
    assert normalize_zone("p100-2", "P100") == "2"
    assert normalize_zone("P100 North", "P100") == "North"
    assert normalize_zone("P100", "P100") == "P100"
    assert normalize_zone("Zone 1", "P100") == "Zone 1"


def test_zone_number_extraction():
    assert extract_zone_number("Zone 01") == "01"
    assert extract_zone_number("P100-01-1") == "100"
    assert extract_zone_number("Zone 12B") == "12"
    assert extract_zone_number(" North ") == "north"


def test_zone_equivalence_across_spellings():
    assert zones_equivalent(normalize_zone("P100 - 1", "P100"), "Zone 1")
    assert zones_equivalent("Zone 01", "1")
    assert zones_equivalent("north", "North Yard")
    assert not zones_equivalent("Zone 2", "Zone 3")
    assert not zones_equivalent("Zone 01", "Zone 1")
    assert not zones_equivalent("", "Zone 3")


def test_status_normalisation():
    for status in ("On-Going", "on going", "ONGOING", "on_going"):
        assert normalize_status(status) == "ongoing"
    assert normalize_status(None) == ""
