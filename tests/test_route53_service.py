"""
Tests for the Route53 discovery adapter.
"""

import pytest

from tfadopt.core.aws_client import AWSProviderConfig
from tfadopt.core.resource import Resource
from tfadopt.providers.aws import AWSProvider
from tfadopt.providers.aws.services.route53 import (
    Route53Service,
    clean_zone_id,
    wildcard_unescape,
)


@pytest.fixture
def route53_service(mock_aws_environment):
    """Create a Route53 adapter bound to the mocked account."""
    provider = AWSProvider(AWSProviderConfig(region="aws-global"))
    return provider.init_service("route53")


class TestHelpers:
    """Tests for the Route53 helper functions."""

    def test_clean_zone_id(self):
        """Test that the path prefix is removed."""
        assert clean_zone_id("/hostedzone/Z123") == "Z123"
        assert clean_zone_id("Z123") == "Z123"

    def test_wildcard_unescape(self):
        """Test that escaped wildcards are restored."""
        assert wildcard_unescape("\\052.example.com.") == "*.example.com."


class TestRoute53Discovery:
    """Tests for Route53Service against a mocked account."""

    def test_discovers_zone_and_records(self, route53_service, hosted_zone):
        """Test that zones and their record sets are loaded."""
        route53_service.init_resources()

        zones = route53_service.resources_of_type("route53_zone")
        assert len(zones) == 1
        zone = zones[0]
        assert zone.id == hosted_zone
        assert zone.name == f"{hosted_zone}_example_com".lower()
        assert zone.attributes["name"] == "example.com."
        assert zone.attributes["comment"] == "test zone"
        assert zone.additional_fields["zone_id"] == hosted_zone

        records = {r.id: r for r in route53_service.resources_of_type("route53_record")}
        record = records[f"{hosted_zone}_www.example.com_A"]
        assert record.attributes["ttl"] == 300
        assert record.attributes["records"] == ["192.0.2.10"]
        assert record.attributes["zone_id"] == hosted_zone

    def test_post_convert_links_zone(self, route53_service, hosted_zone):
        """Test that record zone IDs become zone references."""
        route53_service.init_resources()
        route53_service.post_convert_hook()

        zone = route53_service.resources_of_type("route53_zone")[0]
        for record in route53_service.resources_of_type("route53_record"):
            assert record.attributes["zone_id"] == (
                "${aws_route53_zone.%s.zone_id}" % zone.name
            )
            assert record.converted

    def test_post_convert_is_idempotent(self, route53_service, hosted_zone):
        """Test that running the hook twice changes nothing further."""
        route53_service.init_resources()
        route53_service.post_convert_hook()
        once = [r.to_dict() for r in route53_service.get_resources()]
        route53_service.post_convert_hook()
        assert [r.to_dict() for r in route53_service.get_resources()] == once

    def test_health_checks(self, route53_service, route53_client):
        """Test that health checks are mapped and unused fields dropped."""
        response = route53_client.create_health_check(
            CallerReference="hc-1",
            HealthCheckConfig={
                "IPAddress": "192.0.2.10",
                "Port": 80,
                "Type": "HTTP",
                "ResourcePath": "/health",
                "RequestInterval": 30,
                "FailureThreshold": 3,
            },
        )
        check_id = response["HealthCheck"]["Id"]

        route53_service.init_resources()
        route53_service.post_convert_hook()

        (check,) = route53_service.resources_of_type("route53_health_check")
        assert check.id == check_id
        assert check.attributes["type"] == "HTTP"
        assert check.attributes["port"] == 80
        assert check.attributes["resource_path"] == "/health"
        assert "child_health_threshold" not in check.attributes


class TestRoute53Convert:
    """Tests for Route53 post-conversion on hand-built resources."""

    def test_alias_record_drops_ttl(self, zone_resource):
        """Test that alias records lose their TTL."""
        service = Route53Service("aws", "route53")
        alias = Resource(
            id="Z123_app.example.com_A",
            type="aws_route53_record",
            name="z123_app_example_com_a",
            provider="aws",
            attributes={
                "name": "app.example.com",
                "zone_id": "Z123",
                "type": "A",
                "ttl": 60,
                "alias": {"name": "lb.amazonaws.com", "zone_id": "ZLB", "evaluate_target_health": False},
            },
        )
        service.set_resources([zone_resource, alias])
        service.post_convert_hook()

        assert "ttl" not in alias.attributes
        assert alias.attributes["alias"]["zone_id"] == "ZLB"
        assert alias.attributes["zone_id"] == "${aws_route53_zone.z123_example_com.zone_id}"

    def test_record_for_foreign_zone_kept_literal(self, record_resource):
        """Test that records of zones outside the set keep the literal ID."""
        service = Route53Service("aws", "route53")
        service.set_resources([record_resource])
        service.post_convert_hook()
        assert record_resource.attributes["zone_id"] == "Z123"
