"""
Tests for the configuration renderer.
"""

import json

import hcl2
import pytest

from tfadopt.core.exceptions import RenderError
from tfadopt.core.provider import ProviderData
from tfadopt.core.references import wrap_policy
from tfadopt.core.resource import Resource
from tfadopt.renderers.hcl_renderer import (
    HclRenderer,
    format_value,
    quote_string,
    should_include,
    sort_resources,
)


def _unquote(value):
    if isinstance(value, str):
        return value.strip('"')
    return value


def resource_bodies(parsed):
    """
    Flatten python-hcl2 output into {(type, name): body}.

    python-hcl2 wraps blocks in lists and, depending on version, keeps
    quotes around labels and strings.
    """
    bodies = {}
    blocks = parsed.get("resource", [])
    if isinstance(blocks, dict):
        blocks = [blocks]
    for block in blocks:
        for resource_type, named in block.items():
            for name, body in named.items():
                if isinstance(body, list):
                    body = body[0]
                bodies[(_unquote(resource_type), _unquote(name))] = {
                    _unquote(k): v for k, v in body.items()
                }
    return bodies


@pytest.fixture
def provider_data():
    return ProviderData(
        provider={"aws": {"region": "us-east-1"}},
        required_providers=[{"aws": {"source": "hashicorp/aws", "version": "~> 5.0"}}],
    )


class TestFormatValue:
    """Tests for HCL value encoding."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, "null"),
            (True, "true"),
            (False, "false"),
            (42, "42"),
            (1.5, "1.5"),
            ("plain", '"plain"'),
            ([], "[]"),
            ({}, "{}"),
            ([1, "a", False], '[1, "a", false]'),
        ],
    )
    def test_scalars_and_lists(self, value, expected):
        """Test encoding of scalars and flat lists."""
        assert format_value(value) == expected

    def test_quote_string_escapes(self):
        """Test that quotes and newlines are escaped."""
        assert quote_string('say "hi"\nbye') == '"say \\"hi\\"\\nbye"'

    def test_quote_string_leaves_backslash_and_interpolation(self):
        """Test that only quotes and newlines are touched in plain strings."""
        assert quote_string("C:\\logs ${env}") == '"C:\\logs ${env}"'

    def test_heredoc_raw_at_top_level(self):
        """Test that heredocs are emitted verbatim as attribute values."""
        value = "<<POLICY\n{}\nPOLICY"
        assert format_value(value) == value

    def test_nested_heredoc_is_quoted(self):
        """Test that heredocs inside collections become quoted strings."""
        assert format_value(["<<POLICY\n{}\nPOLICY"]) == '["{}"]'

    def test_map(self):
        """Test map layout and quoting of non-identifier keys."""
        rendered = format_value({"Name": "web", "aws:cloudformation": "x"})
        assert rendered == '{\n    Name = "web",\n    "aws:cloudformation" = "x"\n  }'

    def test_unknown_type_stringified(self):
        """Test that unexpected values fall back to their string form."""
        class Thing:
            def __str__(self):
                return "thing"

        assert format_value(Thing()) == '"thing"'


class TestShouldInclude:
    """Tests for the field inclusion policy."""

    def test_empty_values_dropped(self, queue_resource):
        """Test that None and empty strings are skipped."""
        assert not should_include("kms_master_key_id", None, queue_resource)
        assert not should_include("name", "", queue_resource)

    def test_empty_collections_kept(self, queue_resource):
        """Test that empty lists and maps are rendered."""
        assert should_include("tags", {}, queue_resource)
        assert should_include("records", [], queue_resource)

    def test_ignore_keys(self, queue_resource):
        """Test that ignored keys are never rendered."""
        assert not should_include("arn", "arn:aws:sqs:...", queue_resource)

    def test_allow_empty_values(self, queue_resource):
        """Test that allowed keys are rendered even when empty."""
        queue_resource.allow_empty_values = ["^kms_"]
        assert should_include("kms_master_key_id", None, queue_resource)


class TestHclRenderer:
    """Tests for HclRenderer."""

    def test_rejects_unknown_format(self):
        """Test format validation."""
        with pytest.raises(ValueError):
            HclRenderer(output="yaml")

    def test_render_resource_parses(self, queue_resource):
        """Test that a rendered block is valid HCL with the expected fields."""
        wrap_policy(queue_resource, "policy")
        text = HclRenderer().render_resource(queue_resource)

        assert text.startswith('resource "aws_sqs_queue" "orders" {\n')
        assert "arn =" not in text
        assert "kms_master_key_id" not in text
        assert "<<POLICY\n" in text

        bodies = resource_bodies(hcl2.loads(text))
        body = bodies[("aws_sqs_queue", "orders")]
        assert body["visibility_timeout_seconds"] == 30
        assert _unquote(body["name"]) == "orders"

    def test_render_provider(self, provider_data):
        """Test the provider file content."""
        text = HclRenderer().render_provider(provider_data)
        assert "terraform {" in text
        assert "required_providers {" in text
        assert 'source = "hashicorp/aws"' in text
        assert 'provider "aws" {' in text
        assert 'region = "us-east-1"' in text
        parsed = hcl2.loads(text)
        assert "provider" in parsed

    def test_render_resources_in_given_order(self, zone_resource, record_resource):
        """Test that blocks follow the order of the input."""
        text = HclRenderer().render_resources([record_resource, zone_resource])
        assert text.index("aws_route53_record") < text.index("aws_route53_zone")

    def test_json_resources(self, queue_resource):
        """Test the JSON document layout, written unfiltered."""
        document = json.loads(HclRenderer(output="json").render_resources([queue_resource]))
        (entry,) = document["resources"]["aws_sqs_queue"]
        assert entry["name"] == "orders"
        assert entry["attributes"]["kms_master_key_id"] is None
        assert entry["additional_fields"]["arn"].endswith(":orders")

    def test_write_files_per_type(self, tmp_path, provider_data, zone_resource, record_resource):
        """Test one file per resource type plus the provider file."""
        paths = HclRenderer().write_files(
            [zone_resource, record_resource], provider_data, tmp_path / "route53"
        )
        names = sorted(p.rsplit("/", 1)[-1] for p in paths)
        assert names == ["aws_route53_record.tf", "aws_route53_zone.tf", "provider.tf"]
        zone_text = (tmp_path / "route53" / "aws_route53_zone.tf").read_text()
        assert ("aws_route53_zone", "z123_example_com") in resource_bodies(hcl2.loads(zone_text))

    def test_write_files_compact_json(self, tmp_path, provider_data, zone_resource):
        """Test compact JSON output."""
        paths = HclRenderer(output="json").write_files(
            [zone_resource], provider_data, tmp_path, compact=True
        )
        assert [p.rsplit("/", 1)[-1] for p in paths] == ["provider.json", "resources.json"]
        provider = json.loads((tmp_path / "provider.json").read_text())
        assert provider["provider"]["aws"]["region"] == "us-east-1"
        assert provider["terraform"]["required_providers"][0]["aws"]["source"] == "hashicorp/aws"

    def test_write_files_empty_set(self, tmp_path, provider_data):
        """Test that an empty set still yields a provider file."""
        paths = HclRenderer().write_files([], provider_data, tmp_path)
        assert len(paths) == 1

    def test_write_failure_raises_render_error(self, tmp_path, provider_data):
        """Test that filesystem errors surface as RenderError."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        with pytest.raises(RenderError):
            HclRenderer().write_files([], provider_data, blocker / "sub")


class TestSortResources:
    """Tests for deterministic ordering."""

    def test_sort_by_type_then_name(self):
        """Test (type, name) ordering."""
        resources = [
            Resource(id="3", type="aws_b", name="a", provider="aws"),
            Resource(id="2", type="aws_a", name="z", provider="aws"),
            Resource(id="1", type="aws_a", name="m", provider="aws"),
        ]
        assert [r.id for r in sort_resources(resources)] == ["1", "2", "3"]
