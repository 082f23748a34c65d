"""
Tests for the resource record and name sanitization.
"""

import re

import pytest

from tfadopt.core.resource import Resource, map_fields, sanitize_name

NAME_PATTERN = re.compile(r"^[_a-z][_a-z0-9-]*$")


class TestSanitizeName:
    """Tests for sanitize_name."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("My Bucket.prod", "my_bucket_prod"),
            ("1st-queue", "_1st-queue"),
            ("Z123_example.com", "z123_example_com"),
            ("user@example.com", "user_example_com"),
            ("already_clean", "already_clean"),
        ],
    )
    def test_sanitizes(self, raw, expected):
        """Test the character, digit and case rules."""
        assert sanitize_name(raw) == expected

    @pytest.mark.parametrize(
        "raw", ["", "-edge", "***", "9", "Ünïcode name", "a.b/c:d"]
    )
    def test_output_is_valid_symbol(self, raw):
        """Test that any input yields a valid lowercase symbol."""
        assert NAME_PATTERN.match(sanitize_name(raw))

    @pytest.mark.parametrize("raw", ["My Bucket.prod", "1st", "-x", ""])
    def test_idempotent(self, raw):
        """Test that sanitizing twice changes nothing."""
        once = sanitize_name(raw)
        assert sanitize_name(once) == once


class TestMapFields:
    """Tests for map_fields."""

    def test_maps_in_table_order(self):
        """Test that the mapping table drives names and order."""
        native = {"Type": "HTTP", "Port": 80, "Ignored": True}
        mapped = map_fields(native, {"Port": "port", "Type": "type"})
        assert list(mapped) == ["port", "type"]
        assert mapped == {"port": 80, "type": "HTTP"}

    def test_missing_fields_are_none(self):
        """Test that absent native fields map to None."""
        assert map_fields(None, {"Port": "port"}) == {"port": None}


class TestResource:
    """Tests for the Resource dataclass."""

    def test_short_type_and_address(self, zone_resource):
        """Test derived identifiers."""
        assert zone_resource.short_type == "route53_zone"
        assert zone_resource.address == "aws_route53_zone.z123_example_com"

    def test_merged_fields_additional_wins(self):
        """Test that additional fields override attributes on collision."""
        resource = Resource(
            id="x",
            type="aws_thing",
            name="x",
            provider="aws",
            attributes={"a": 1, "b": 2},
            additional_fields={"b": 3, "c": 4},
        )
        merged = resource.merged_fields()
        assert merged == {"a": 1, "b": 3, "c": 4}
        assert list(merged) == ["a", "b", "c"]

    def test_remember_keeps_first_value(self, record_resource):
        """Test that only the first remembered value is kept."""
        assert record_resource.remember("zone_id", "Z123") == "Z123"
        assert record_resource.remember("zone_id", "${changed}") == "Z123"

    def test_to_dict(self, zone_resource):
        """Test the JSON-ready representation."""
        data = zone_resource.to_dict()
        assert data["id"] == "Z123"
        assert data["type"] == "aws_route53_zone"
        assert data["attributes"]["name"] == "example.com."
        assert "originals" not in data
