"""
Load Balancer Service Module
============================

Discovers classic load balancers (``elb``) and Elastic Load Balancing v2
load balancers with their target groups and listeners (``alb``).

Post-Conversion
---------------
- Classic load balancers placed in subnets lose ``availability_zones``,
  which conflicts with ``subnets``.
- Lambda target groups lose ``port``, ``protocol`` and ``vpc_id``.
- Listener ``load_balancer_arn`` and the ``target_group_arn`` of forward
  actions are linked to in-set load balancers and target groups.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

from botocore.exceptions import ClientError

from tfadopt.core.base_service import BaseService
from tfadopt.core.references import build_index, drop_fields, link_reference, reference
from tfadopt.core.resource import Resource

# Module logger
logger = logging.getLogger(__name__)

ELBV2_TAG_BATCH = 20


def _listener_block(listener: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "lb_port": listener.get("LoadBalancerPort"),
        "lb_protocol": listener.get("Protocol"),
        "instance_port": listener.get("InstancePort"),
        "instance_protocol": listener.get("InstanceProtocol"),
        "ssl_certificate_id": listener.get("SSLCertificateId"),
    }


def _action_block(action: Dict[str, Any]) -> Dict[str, Any]:
    block: Dict[str, Any] = {"type": action["Type"], "order": action.get("Order")}
    if action.get("TargetGroupArn"):
        block["target_group_arn"] = action["TargetGroupArn"]
    redirect = action.get("RedirectConfig")
    if redirect:
        block["redirect"] = [
            {
                "protocol": redirect.get("Protocol"),
                "port": redirect.get("Port"),
                "host": redirect.get("Host"),
                "path": redirect.get("Path"),
                "query": redirect.get("Query"),
                "status_code": redirect.get("StatusCode"),
            }
        ]
    fixed = action.get("FixedResponseConfig")
    if fixed:
        block["fixed_response"] = [
            {
                "content_type": fixed.get("ContentType"),
                "message_body": fixed.get("MessageBody"),
                "status_code": fixed.get("StatusCode"),
            }
        ]
    return block


class ELBService(BaseService):
    """Discovery adapter for classic Elastic Load Balancing."""

    def init_resources(self) -> None:
        """Load classic load balancers."""
        self.load_load_balancers()

    def load_load_balancers(self) -> None:
        """
        Load classic load balancers.

        Raises
        ------
        botocore.exceptions.ClientError
            If the load balancers cannot be listed.
        """
        self._log("Loading classic load balancers...")
        paginator = self.client("elb").get_paginator("describe_load_balancers")

        count = 0
        for page in paginator.paginate():
            for balancer in page.get("LoadBalancerDescriptions", []):
                self.add_resource(self._balancer_resource(balancer))
                count += 1

        self._log(f"Loaded {count} classic load balancers")

    def _balancer_resource(self, balancer: Dict[str, Any]) -> Resource:
        name = balancer["LoadBalancerName"]
        health = balancer.get("HealthCheck") or {}
        resource = self.create_resource(
            name,
            name,
            "elb",
            {
                "name": name,
                "internal": balancer.get("Scheme") == "internal",
                "availability_zones": balancer.get("AvailabilityZones", []),
                "subnets": balancer.get("Subnets", []),
                "security_groups": balancer.get("SecurityGroups", []),
                "instances": [i["InstanceId"] for i in balancer.get("Instances", [])],
                "listener": [
                    _listener_block(entry["Listener"])
                    for entry in balancer.get("ListenerDescriptions", [])
                ],
                "health_check": [
                    {
                        "target": health.get("Target"),
                        "interval": health.get("Interval"),
                        "timeout": health.get("Timeout"),
                        "healthy_threshold": health.get("HealthyThreshold"),
                        "unhealthy_threshold": health.get("UnhealthyThreshold"),
                    }
                ]
                if health
                else None,
                "tags": self._tags(name),
            },
            {"dns_name": balancer.get("DNSName")},
        )
        resource.ignore_keys = ["^dns_name$"]
        return resource

    def _tags(self, name: str) -> Dict[str, str]:
        try:
            response = self.client("elb").describe_tags(LoadBalancerNames=[name])
        except ClientError as e:
            self._log(f"Error fetching tags for {name}: {e}", "debug")
            return {}
        return {
            tag["Key"]: tag.get("Value", "")
            for description in response.get("TagDescriptions", [])
            for tag in description.get("Tags", [])
        }

    def convert(self, discovered: Sequence[Resource]) -> None:
        """Drop availability zones of load balancers placed in subnets."""
        for balancer in self.resources_of_type("elb"):
            if balancer.attributes.get("subnets"):
                drop_fields(balancer, "availability_zones")


class ALBService(BaseService):
    """Discovery adapter for Elastic Load Balancing v2 (application and network)."""

    def init_resources(self) -> None:
        """Load load balancers, listeners and target groups."""
        self.load_load_balancers()
        self.load_target_groups()

    def load_load_balancers(self) -> None:
        """
        Load load balancers and their listeners.

        Raises
        ------
        botocore.exceptions.ClientError
            If the load balancers cannot be listed.
        """
        self._log("Loading load balancers...")
        paginator = self.client("elbv2").get_paginator("describe_load_balancers")

        balancers: List[Dict[str, Any]] = []
        for page in paginator.paginate():
            balancers.extend(page.get("LoadBalancers", []))
        tags = self._tags([b["LoadBalancerArn"] for b in balancers])

        for balancer in balancers:
            arn = balancer["LoadBalancerArn"]
            resource = self.create_resource(
                arn,
                balancer["LoadBalancerName"],
                "lb",
                {
                    "name": balancer["LoadBalancerName"],
                    "load_balancer_type": balancer.get("Type"),
                    "internal": balancer.get("Scheme") == "internal",
                    "ip_address_type": balancer.get("IpAddressType"),
                    "subnets": [
                        zone["SubnetId"]
                        for zone in balancer.get("AvailabilityZones", [])
                        if zone.get("SubnetId")
                    ],
                    "security_groups": balancer.get("SecurityGroups"),
                    "tags": tags.get(arn, {}),
                },
                {"arn": arn, "dns_name": balancer.get("DNSName")},
            )
            resource.ignore_keys = ["^arn$", "^dns_name$"]
            self.add_resource(resource)
            self.load_listeners(balancer)

        self._log(f"Loaded {len(balancers)} load balancers")

    def load_listeners(self, balancer: Dict[str, Any]) -> None:
        """Load the listeners of one load balancer."""
        paginator = self.client("elbv2").get_paginator("describe_listeners")
        for page in paginator.paginate(LoadBalancerArn=balancer["LoadBalancerArn"]):
            for listener in page.get("Listeners", []):
                arn = listener["ListenerArn"]
                resource = self.create_resource(
                    arn,
                    f"{balancer['LoadBalancerName']}_{listener.get('Port')}",
                    "lb_listener",
                    {
                        "load_balancer_arn": balancer["LoadBalancerArn"],
                        "port": listener.get("Port"),
                        "protocol": listener.get("Protocol"),
                        "ssl_policy": listener.get("SslPolicy"),
                        "certificate_arn": next(
                            (
                                certificate["CertificateArn"]
                                for certificate in listener.get("Certificates", [])
                            ),
                            None,
                        ),
                        "default_action": [
                            _action_block(action)
                            for action in listener.get("DefaultActions", [])
                        ],
                    },
                    {"arn": arn},
                )
                resource.ignore_keys = ["^arn$"]
                self.add_resource(resource)

    def load_target_groups(self) -> None:
        """
        Load target groups.

        Raises
        ------
        botocore.exceptions.ClientError
            If the target groups cannot be listed.
        """
        self._log("Loading target groups...")
        paginator = self.client("elbv2").get_paginator("describe_target_groups")

        groups: List[Dict[str, Any]] = []
        for page in paginator.paginate():
            groups.extend(page.get("TargetGroups", []))
        tags = self._tags([g["TargetGroupArn"] for g in groups])

        for group in groups:
            arn = group["TargetGroupArn"]
            resource = self.create_resource(
                arn,
                group["TargetGroupName"],
                "lb_target_group",
                {
                    "name": group["TargetGroupName"],
                    "target_type": group.get("TargetType"),
                    "port": group.get("Port"),
                    "protocol": group.get("Protocol"),
                    "vpc_id": group.get("VpcId"),
                    "health_check": [
                        {
                            "enabled": group.get("HealthCheckEnabled", True),
                            "path": group.get("HealthCheckPath"),
                            "port": group.get("HealthCheckPort"),
                            "protocol": group.get("HealthCheckProtocol"),
                            "interval": group.get("HealthCheckIntervalSeconds"),
                            "timeout": group.get("HealthCheckTimeoutSeconds"),
                            "healthy_threshold": group.get("HealthyThresholdCount"),
                            "unhealthy_threshold": group.get("UnhealthyThresholdCount"),
                            "matcher": (group.get("Matcher") or {}).get("HttpCode"),
                        }
                    ],
                    "tags": tags.get(arn, {}),
                },
                {"arn": arn},
            )
            resource.ignore_keys = ["^arn$"]
            self.add_resource(resource)

        self._log(f"Loaded {len(groups)} target groups")

    def _tags(self, arns: List[str]) -> Dict[str, Dict[str, str]]:
        """Fetch tags for many resources, in the batches the API accepts."""
        tags: Dict[str, Dict[str, str]] = {}
        for start in range(0, len(arns), ELBV2_TAG_BATCH):
            batch = arns[start:start + ELBV2_TAG_BATCH]
            try:
                response = self.client("elbv2").describe_tags(ResourceArns=batch)
            except ClientError as e:
                self._log(f"Error fetching tags: {e}", "debug")
                continue
            for description in response.get("TagDescriptions", []):
                tags[description["ResourceArn"]] = {
                    tag["Key"]: tag.get("Value", "") for tag in description.get("Tags", [])
                }
        return tags

    def convert(self, discovered: Sequence[Resource]) -> None:
        """Prune lambda target groups and link listeners."""
        balancers = build_index(self._resources, "aws_lb")
        target_groups = build_index(self._resources, "aws_lb_target_group")

        for group in self.resources_of_type("lb_target_group"):
            if group.attributes.get("target_type") == "lambda":
                drop_fields(group, "port", "protocol", "vpc_id")

        for listener in self.resources_of_type("lb_listener"):
            link_reference(listener, "load_balancer_arn", balancers, "arn")

            actions = listener.remember(
                "default_action", listener.attributes.get("default_action")
            )
            if not actions:
                continue
            linked = []
            for action in actions:
                target = target_groups.get(action.get("target_group_arn"))
                if target is not None:
                    action = dict(action, target_group_arn=reference(target, "arn"))
                linked.append(action)
            listener.attributes["default_action"] = linked
