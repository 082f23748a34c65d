"""
Route53 Service Module
======================

Discovers hosted zones, their record sets and health checks.

Resources
---------
aws_route53_zone
    One per hosted zone. The bare zone ID is kept in the ``zone_id``
    side-channel so records can be linked to it.
aws_route53_record
    One per record set, named ``<zone>_<name>_<type>[_<set id>]``.
aws_route53_health_check
    One per health check.

Post-Conversion
---------------
- Record ``zone_id`` literals naming an in-set zone become
  ``${aws_route53_zone.<name>.zone_id}``.
- Alias records lose ``ttl``.
- Health checks without child checks lose ``child_health_threshold``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

from botocore.exceptions import ClientError

from tfadopt.core.base_service import BaseService
from tfadopt.core.references import build_index, drop_fields, link_reference
from tfadopt.core.resource import Resource, map_fields

# Module logger
logger = logging.getLogger(__name__)

HEALTH_CHECK_FIELDS = {
    "Type": "type",
    "IPAddress": "ip_address",
    "Port": "port",
    "ResourcePath": "resource_path",
    "FullyQualifiedDomainName": "fqdn",
    "SearchString": "search_string",
    "RequestInterval": "request_interval",
    "FailureThreshold": "failure_threshold",
    "MeasureLatency": "measure_latency",
    "Inverted": "invert_healthcheck",
    "Disabled": "disabled",
    "EnableSNI": "enable_sni",
    "HealthThreshold": "child_health_threshold",
    "ChildHealthChecks": "child_healthchecks",
    "Regions": "regions",
    "InsufficientDataHealthStatus": "insufficient_data_health_status",
}

# Zone fields that are computed by Route53 and never configured
ZONE_READ_ONLY_KEYS = ["^zone_id$", "^name_servers$", "^private_zone$"]


def clean_zone_id(zone_id: str) -> str:
    """
    Strip the ``/hostedzone/`` prefix from a zone identifier.

    Example
    -------
    >>> clean_zone_id("/hostedzone/Z123")
    'Z123'
    """
    return zone_id.replace("/hostedzone/", "")


def wildcard_unescape(name: str) -> str:
    r"""Turn Route53's ``\052`` escape back into ``*``."""
    return name.replace("\\052", "*")


class Route53Service(BaseService):
    """Discovery adapter for Amazon Route 53."""

    def init_resources(self) -> None:
        """Load hosted zones (with their records) and health checks."""
        self.load_hosted_zones()
        self.load_health_checks()

    # =========================================================================
    # Loaders
    # =========================================================================

    def load_hosted_zones(self) -> None:
        """
        Load every hosted zone and its record sets.

        Raises
        ------
        botocore.exceptions.ClientError
            If the zones cannot be listed.
        """
        self._log("Loading Route53 hosted zones...")
        route53 = self.client("route53")

        zone_count = 0
        paginator = route53.get_paginator("list_hosted_zones")
        for page in paginator.paginate():
            for zone in page.get("HostedZones", []):
                zone_id = clean_zone_id(zone["Id"])
                zone_name = zone["Name"]
                config = zone.get("Config", {})

                resource = self.create_resource(
                    zone_id,
                    f"{zone_id}_{zone_name.rstrip('.')}",
                    "route53_zone",
                    {
                        "name": zone_name,
                        "comment": config.get("Comment"),
                        "force_destroy": False,
                    },
                    {
                        "zone_id": zone_id,
                        "private_zone": config.get("PrivateZone", False),
                    },
                )
                resource.ignore_keys = list(ZONE_READ_ONLY_KEYS)
                self.add_resource(resource)
                zone_count += 1

                self.load_record_sets(zone_id)

        self._log(f"Loaded {zone_count} Route53 hosted zones")

    def load_record_sets(self, zone_id: str) -> None:
        """Load the record sets of one zone; failures are logged and skipped."""
        route53 = self.client("route53")
        record_count = 0

        try:
            paginator = route53.get_paginator("list_resource_record_sets")
            for page in paginator.paginate(HostedZoneId=zone_id):
                for record in page.get("ResourceRecordSets", []):
                    self.add_resource(self._record_resource(zone_id, record))
                    record_count += 1
        except ClientError as e:
            self._log(f"Could not list records for zone {zone_id}: {e}", "debug")
            return

        self._log(f"Loaded {record_count} Route53 records for zone {zone_id}", "debug")

    def _record_resource(self, zone_id: str, record: Dict[str, Any]) -> Resource:
        record_name = wildcard_unescape(record["Name"])
        record_type = record["Type"]
        set_identifier = record.get("SetIdentifier")

        resource_id = f"{zone_id}_{record_name.rstrip('.')}_{record_type}"
        if set_identifier:
            resource_id = f"{resource_id}_{set_identifier}"

        alias: Optional[Dict[str, Any]] = None
        if "AliasTarget" in record:
            target = record["AliasTarget"]
            alias = {
                "name": target.get("DNSName"),
                "zone_id": target.get("HostedZoneId"),
                "evaluate_target_health": target.get("EvaluateTargetHealth", False),
            }

        attributes = {
            "name": record_name.rstrip("."),
            "zone_id": zone_id,
            "type": record_type,
            "set_identifier": set_identifier,
            "ttl": record.get("TTL"),
            "records": [rr["Value"] for rr in record.get("ResourceRecords", [])] or None,
            "alias": alias,
            "health_check_id": record.get("HealthCheckId"),
        }

        if record.get("Weight") is not None:
            attributes["weighted_routing_policy"] = [{"weight": record["Weight"]}]
        if record.get("Region"):
            attributes["latency_routing_policy"] = [{"region": record["Region"]}]
        if record.get("Failover"):
            attributes["failover_routing_policy"] = [{"type": record["Failover"]}]
        if record.get("GeoLocation"):
            geo = record["GeoLocation"]
            attributes["geolocation_routing_policy"] = [
                {
                    "continent": geo.get("ContinentCode"),
                    "country": geo.get("CountryCode"),
                    "subdivision": geo.get("SubdivisionCode"),
                }
            ]
        if record.get("MultiValueAnswer"):
            attributes["multivalue_answer_routing_policy"] = True

        return self.create_resource(resource_id, resource_id, "route53_record", attributes)

    def load_health_checks(self) -> None:
        """
        Load every health check.

        Raises
        ------
        botocore.exceptions.ClientError
            If the health checks cannot be listed.
        """
        self._log("Loading Route53 health checks...")
        route53 = self.client("route53")

        count = 0
        paginator = route53.get_paginator("list_health_checks")
        for page in paginator.paginate():
            for health_check in page.get("HealthChecks", []):
                config = health_check.get("HealthCheckConfig", {})
                check_type = config.get("Type", "UNKNOWN")
                attributes = map_fields(config, HEALTH_CHECK_FIELDS)
                attributes["child_healthchecks"] = attributes["child_healthchecks"] or []

                self.add_resource(
                    self.create_resource(
                        health_check["Id"],
                        f"{health_check['Id']}_{check_type}",
                        "route53_health_check",
                        attributes,
                    )
                )
                count += 1

        self._log(f"Loaded {count} Route53 health checks")

    # =========================================================================
    # Post-Conversion
    # =========================================================================

    def convert(self, discovered: Sequence[Resource]) -> None:
        """Link records to zones and drop fields Route53 rejects together."""
        zones = build_index(self._resources, "aws_route53_zone", key="zone_id")

        for record in self.resources_of_type("route53_record"):
            link_reference(record, "zone_id", zones, "zone_id")
            if record.attributes.get("alias"):
                drop_fields(record, "ttl")

        for health_check in self.resources_of_type("route53_health_check"):
            if not health_check.attributes.get("child_healthchecks"):
                drop_fields(health_check, "child_health_threshold")
