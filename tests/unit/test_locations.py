"""Unit tests for location hierarchy types and name helpers."""

import pytest
from pydantic import ValidationError

from app.services.locations import (
    LocationLevel,
    LocationNode,
    breadcrumbs,
    format_location_name,
    names_match,
    normalize_location_name,
    path_within,
    slugify,
)


class TestLocationLevel:
    def test_depth_and_child(self):
        assert LocationLevel.STATE.depth == 1
        assert LocationLevel.POLLING_UNIT.depth == 4
        assert LocationLevel.LGA.child == LocationLevel.WARD
        assert LocationLevel.POLLING_UNIT.child is None

    def test_for_depth(self):
        assert LocationLevel.for_depth(3) == LocationLevel.WARD
        with pytest.raises(ValueError):
            LocationLevel.for_depth(0)
        with pytest.raises(ValueError):
            LocationLevel.for_depth(5)


class TestLocationNode:
    def test_from_path(self):
        node = LocationNode.from_path(("Lagos", "Ikeja", "Ward 3"))

        assert node.level == LocationLevel.WARD
        assert node.name == "Ward 3"
        assert node.state == "Lagos"
        assert node.path == ("Lagos", "Ikeja", "Ward 3")
        assert node.id == "ward-3"
        assert node.path_id == "lagos-ikeja-ward-3"

    def test_rejects_wrong_number_of_ancestors(self):
        with pytest.raises(ValidationError):
            LocationNode(level=LocationLevel.WARD, name="Ward 3", parent_path=("Lagos",))

    def test_child(self):
        lga = LocationNode.from_path(("Lagos", "Ikeja"))
        ward = lga.child("Ward 3")

        assert ward.level == LocationLevel.WARD
        assert ward.parent_path == ("Lagos", "Ikeja")

    def test_polling_unit_has_no_children(self):
        unit = LocationNode.from_path(("Lagos", "Ikeja", "Ward 3", "PU 001"))
        with pytest.raises(ValueError):
            unit.child("anything")


class TestNameHelpers:
    def test_slugify(self):
        assert slugify("Aba North") == "aba-north"
        assert slugify("  Ikeja_North -  ward ") == "ikeja-north-ward"
        assert slugify(None) == ""

    def test_format_location_name_keeps_abbreviations(self):
        assert format_location_name("aba-north") == "Aba North"
        assert format_location_name("ikeja-lga") == "Ikeja LGA"
        assert format_location_name("fct abuja") == "FCT Abuja"

    def test_names_match_across_forms(self):
        assert names_match("Aba North", "aba-north")
        assert names_match("AKWA  IBOM", "akwa_ibom")
        assert not names_match("Aba North", "Aba South")
        assert not names_match("", "")

    def test_normalize_location_name(self):
        assert normalize_location_name(" Ward-3 ") == "ward-3"

    def test_path_within(self):
        root = ("Lagos", "Ikeja")
        assert path_within(("lagos", "ikeja", "Ward 3"), root)
        assert path_within(("Lagos", "Ikeja"), root)
        assert not path_within(("Lagos",), root)
        assert not path_within(("Lagos", "Epe", "Ward 1"), root)
        assert path_within(("Kano",), ())


def test_breadcrumbs():
    trail = breadcrumbs(("Lagos", "Ikeja"))

    assert trail == [
        {"level": "national", "name": "National Overview"},
        {"level": "state", "name": "Lagos", "id": "lagos"},
        {"level": "lga", "name": "Ikeja", "id": "lagos-ikeja"},
    ]
