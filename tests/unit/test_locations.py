"""
Tests for location value objects and destination-code parsing.

Covers:
- Department vs section scope keys
- DEPT / DEPT:slugOrId parsing and malformed codes
- Slug derivation
"""

from uuid import uuid4

import pytest

from inventory_kernel.domain.locations import (
    DEPARTMENT_SCOPE_KEY,
    DepartmentLocation,
    SectionLocation,
    compose_section_code,
    location_for,
    location_scope_key,
    parse_destination_code,
    slugify,
)
from inventory_kernel.exceptions import InvalidDestinationCodeError


class TestLocationVariants:

    def test_department_scope(self):
        dept = uuid4()
        location = location_for(dept)

        assert isinstance(location, DepartmentLocation)
        assert location.section_id is None
        assert location.scope_key == DEPARTMENT_SCOPE_KEY

    def test_section_scope_is_distinct_from_parent(self):
        dept, section = uuid4(), uuid4()
        location = location_for(dept, section)

        assert isinstance(location, SectionLocation)
        assert location.scope_key == str(section)
        assert location != location_for(dept)

    def test_locations_compare_by_value(self):
        dept, section = uuid4(), uuid4()
        assert location_for(dept, section) == SectionLocation(dept, section)
        assert location_for(dept) == DepartmentLocation(dept)

    def test_scope_key_helper(self):
        section = uuid4()
        assert location_scope_key(None) == DEPARTMENT_SCOPE_KEY
        assert location_scope_key(section) == str(section)


class TestParseDestinationCode:

    def test_department_only(self):
        parsed = parse_destination_code("BAR")
        assert parsed.department_code == "BAR"
        assert parsed.section_ref is None
        assert not parsed.is_section

    def test_department_and_section(self):
        parsed = parse_destination_code("BAR:back-shelf")
        assert parsed.department_code == "BAR"
        assert parsed.section_ref == "back-shelf"
        assert parsed.is_section

    def test_surrounding_whitespace_is_ignored(self):
        assert parse_destination_code("  BAR  ").department_code == "BAR"

    def test_splits_on_first_delimiter_only(self):
        parsed = parse_destination_code("BAR:a:b")
        assert parsed.department_code == "BAR"
        assert parsed.section_ref == "a:b"

    @pytest.mark.parametrize("code", ["", "   ", None])
    def test_empty_code_rejected(self, code):
        with pytest.raises(InvalidDestinationCodeError):
            parse_destination_code(code)

    def test_missing_department_rejected(self):
        with pytest.raises(InvalidDestinationCodeError, match="missing department"):
            parse_destination_code(":shelf")

    def test_trailing_delimiter_rejected(self):
        with pytest.raises(InvalidDestinationCodeError) as exc_info:
            parse_destination_code("BAR:")
        assert exc_info.value.code == "INVALID_DESTINATION_CODE"
        assert exc_info.value.destination_code == "BAR:"

    def test_compose_is_inverse_of_parse(self):
        code = compose_section_code("KITCHEN", "cold-room")
        assert code == "KITCHEN:cold-room"
        parsed = parse_destination_code(code)
        assert (parsed.department_code, parsed.section_ref) == ("KITCHEN", "cold-room")


class TestSlugify:

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("Back Shelf", "back-shelf"),
            ("  Cold  Room #2 ", "cold-room-2"),
            ("Wine/Spirits", "wine-spirits"),
            ("---", ""),
        ],
    )
    def test_slugify(self, name, expected):
        assert slugify(name) == expected
