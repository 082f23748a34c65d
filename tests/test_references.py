"""
Tests for the cross-reference helpers.
"""

import copy

from tfadopt.core.references import (
    build_index,
    drop_fields,
    escape_interpolation,
    heredoc,
    heredoc_body,
    is_heredoc,
    link_reference,
    policy_to_string,
    reference,
    wrap_policy,
)


class TestPolicyHelpers:
    """Tests for policy normalization and heredoc wrapping."""

    def test_escape_interpolation(self):
        """Test that '${' is doubled."""
        assert escape_interpolation("a ${b} c") == "a $${b} c"

    def test_heredoc_roundtrip_helpers(self):
        """Test heredoc detection and body extraction."""
        wrapped = heredoc('{"a": 1}')
        assert wrapped == '<<POLICY\n{"a": 1}\nPOLICY'
        assert is_heredoc(wrapped)
        assert heredoc_body(wrapped) == '{"a": 1}'
        assert not is_heredoc("<<not a heredoc")
        assert not is_heredoc(42)

    def test_policy_to_string(self):
        """Test dict, URL-encoded and empty documents."""
        assert policy_to_string(None) is None
        assert policy_to_string("") is None
        assert '"Version": "2012-10-17"' in policy_to_string({"Version": "2012-10-17"})
        assert policy_to_string("%7B%22a%22%3A1%7D") == '{"a":1}'

    def test_wrap_policy(self, queue_resource):
        """Test that the policy is escaped and wrapped."""
        assert wrap_policy(queue_resource, "policy")
        policy = queue_resource.attributes["policy"]
        assert policy.startswith("<<POLICY\n")
        assert "$${arn}" in policy

    def test_wrap_policy_idempotent(self, queue_resource):
        """Test that wrapping twice equals wrapping once."""
        wrap_policy(queue_resource, "policy")
        once = copy.deepcopy(queue_resource.attributes)
        wrap_policy(queue_resource, "policy")
        assert queue_resource.attributes == once

    def test_wrap_policy_without_policy(self, queue_resource):
        """Test that absent policies are left alone."""
        assert not wrap_policy(queue_resource, "redrive_policy")
        assert "redrive_policy" not in queue_resource.attributes


class TestLinking:
    """Tests for reference linking."""

    def test_reference_format(self, zone_resource):
        """Test the symbolic reference syntax."""
        assert reference(zone_resource, "zone_id") == "${aws_route53_zone.z123_example_com.zone_id}"

    def test_build_index_by_side_channel(self, zone_resource, record_resource):
        """Test indexing by an additional field, restricted to one type."""
        index = build_index([zone_resource, record_resource], "aws_route53_zone", key="zone_id")
        assert index == {"Z123": zone_resource}

    def test_link_scalar(self, zone_resource, record_resource):
        """Test that a matching literal becomes a reference."""
        index = build_index([zone_resource], "aws_route53_zone", key="zone_id")
        assert link_reference(record_resource, "zone_id", index, "zone_id")
        assert record_resource.attributes["zone_id"] == (
            "${aws_route53_zone.z123_example_com.zone_id}"
        )

    def test_link_idempotent(self, zone_resource, record_resource):
        """Test that linking twice equals linking once."""
        index = build_index([zone_resource], "aws_route53_zone", key="zone_id")
        link_reference(record_resource, "zone_id", index, "zone_id")
        once = dict(record_resource.attributes)
        link_reference(record_resource, "zone_id", index, "zone_id")
        assert record_resource.attributes == once

    def test_unknown_literal_kept(self, zone_resource, record_resource):
        """Test that identifiers outside the set stay literal."""
        record_resource.attributes["zone_id"] = "ZOTHER"
        index = build_index([zone_resource], "aws_route53_zone", key="zone_id")
        assert not link_reference(record_resource, "zone_id", index, "zone_id")
        assert record_resource.attributes["zone_id"] == "ZOTHER"

    def test_link_list_elementwise(self, zone_resource, record_resource):
        """Test that lists are rewritten element by element."""
        record_resource.attributes["zones"] = ["Z123", "ZOTHER"]
        index = build_index([zone_resource], "aws_route53_zone", key="zone_id")
        link_reference(record_resource, "zones", index, "zone_id")
        assert record_resource.attributes["zones"] == [
            "${aws_route53_zone.z123_example_com.zone_id}",
            "ZOTHER",
        ]

    def test_missing_field_ignored(self, zone_resource, record_resource):
        """Test that linking an absent field is a no-op."""
        index = build_index([zone_resource], "aws_route53_zone", key="zone_id")
        assert not link_reference(record_resource, "health_check_id", index)
        assert "health_check_id" not in record_resource.attributes

    def test_drop_fields(self, record_resource):
        """Test conditional removal."""
        drop_fields(record_resource, "ttl", "not_there")
        assert "ttl" not in record_resource.attributes
