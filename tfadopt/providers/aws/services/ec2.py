"""
EC2 Service Module
==================

Discovers EC2 instances, VPCs, subnets, security groups and EBS volumes.

Resources
---------
aws_instance, aws_vpc, aws_subnet, aws_security_group, aws_ebs_volume

Post-Conversion
---------------
- ``iops`` is dropped unless the volume type is ``io1``, ``io2`` or
  ``gp3``; ``throughput`` unless it is ``gp3``. Applies to instance
  ``root_block_device`` entries and to EBS volumes.
- ``subnet_id``, ``vpc_id`` and ``vpc_security_group_ids`` naming in-set
  resources become references to their ``id``.

Notes
-----
Default security groups are skipped; they cannot be adopted as
``aws_security_group``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from tfadopt.core.base_service import BaseService
from tfadopt.core.references import build_index, link_reference
from tfadopt.core.resource import Resource

# Module logger
logger = logging.getLogger(__name__)

IOPS_VOLUME_TYPES = ("io1", "io2", "gp3")
THROUGHPUT_VOLUME_TYPES = ("gp3",)


def tags_to_dict(tags: Optional[List[Dict[str, str]]]) -> Dict[str, str]:
    """Convert an EC2 ``Tags`` list into a mapping."""
    return {tag["Key"]: tag["Value"] for tag in tags or []}


def display_name(resource_id: str, tags: Dict[str, str]) -> str:
    """Return ``<Name tag>_<id>``, or the id when untagged."""
    name = tags.get("Name")
    return f"{name}_{resource_id}" if name else resource_id


def prune_volume_settings(settings: Dict[str, Any], type_key: str) -> None:
    """
    Remove ``iops``/``throughput`` that the volume type does not accept.

    Parameters
    ----------
    settings : dict
        Volume settings, modified in place.
    type_key : str
        Key holding the volume type (``volume_type`` or ``type``).
    """
    volume_type = settings.get(type_key)
    if volume_type not in IOPS_VOLUME_TYPES:
        settings.pop("iops", None)
    if volume_type not in THROUGHPUT_VOLUME_TYPES:
        settings.pop("throughput", None)


def _rule(permission: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "from_port": permission.get("FromPort", 0),
        "to_port": permission.get("ToPort", 0),
        "protocol": permission.get("IpProtocol"),
        "cidr_blocks": [r["CidrIp"] for r in permission.get("IpRanges", [])],
        "ipv6_cidr_blocks": [r["CidrIpv6"] for r in permission.get("Ipv6Ranges", [])],
        "security_groups": [
            pair["GroupId"] for pair in permission.get("UserIdGroupPairs", [])
        ],
        "description": next(
            (
                r["Description"]
                for r in permission.get("IpRanges", [])
                if r.get("Description")
            ),
            "",
        ),
    }


class EC2Service(BaseService):
    """Discovery adapter for Amazon EC2 and VPC networking."""

    def init_resources(self) -> None:
        """Load every EC2 resource kind."""
        volumes = self.load_volumes()
        self.load_vpcs()
        self.load_subnets()
        self.load_security_groups()
        self.load_instances(volumes)

    def _describe(self, operation: str, key: str) -> List[Dict[str, Any]]:
        paginator = self.client("ec2").get_paginator(operation)
        items: List[Dict[str, Any]] = []
        for page in paginator.paginate():
            items.extend(page.get(key, []))
        return items

    # =========================================================================
    # Loaders
    # =========================================================================

    def load_volumes(self) -> Dict[str, Dict[str, Any]]:
        """
        Load EBS volumes.

        Returns
        -------
        dict
            Volume ID to native volume, used to describe root devices.
        """
        self._log("Loading EBS volumes...")
        volumes = self._describe("describe_volumes", "Volumes")

        for volume in volumes:
            tags = tags_to_dict(volume.get("Tags"))
            self.add_resource(
                self.create_resource(
                    volume["VolumeId"],
                    display_name(volume["VolumeId"], tags),
                    "ebs_volume",
                    {
                        "availability_zone": volume.get("AvailabilityZone"),
                        "size": volume.get("Size"),
                        "type": volume.get("VolumeType"),
                        "iops": volume.get("Iops"),
                        "throughput": volume.get("Throughput"),
                        "encrypted": volume.get("Encrypted", False),
                        "kms_key_id": volume.get("KmsKeyId"),
                        "snapshot_id": volume.get("SnapshotId"),
                        "tags": tags,
                    },
                )
            )

        self._log(f"Loaded {len(volumes)} EBS volumes")
        return {volume["VolumeId"]: volume for volume in volumes}

    def load_vpcs(self) -> None:
        """Load VPCs."""
        self._log("Loading VPCs...")
        vpcs = self._describe("describe_vpcs", "Vpcs")

        for vpc in vpcs:
            tags = tags_to_dict(vpc.get("Tags"))
            resource = self.create_resource(
                vpc["VpcId"],
                display_name(vpc["VpcId"], tags),
                "vpc",
                {
                    "cidr_block": vpc.get("CidrBlock"),
                    "instance_tenancy": vpc.get("InstanceTenancy"),
                    "tags": tags,
                },
                {"is_default": vpc.get("IsDefault", False)},
            )
            resource.ignore_keys = ["^is_default$"]
            self.add_resource(resource)

        self._log(f"Loaded {len(vpcs)} VPCs")

    def load_subnets(self) -> None:
        """Load subnets."""
        self._log("Loading subnets...")
        subnets = self._describe("describe_subnets", "Subnets")

        for subnet in subnets:
            tags = tags_to_dict(subnet.get("Tags"))
            self.add_resource(
                self.create_resource(
                    subnet["SubnetId"],
                    display_name(subnet["SubnetId"], tags),
                    "subnet",
                    {
                        "vpc_id": subnet.get("VpcId"),
                        "cidr_block": subnet.get("CidrBlock"),
                        "availability_zone": subnet.get("AvailabilityZone"),
                        "map_public_ip_on_launch": subnet.get("MapPublicIpOnLaunch", False),
                        "tags": tags,
                    },
                )
            )

        self._log(f"Loaded {len(subnets)} subnets")

    def load_security_groups(self) -> None:
        """Load non-default security groups with their rules."""
        self._log("Loading security groups...")
        groups = self._describe("describe_security_groups", "SecurityGroups")

        count = 0
        for group in groups:
            if group["GroupName"] == "default":
                self._log(f"Skipping default security group {group['GroupId']}", "debug")
                continue

            self.add_resource(
                self.create_resource(
                    group["GroupId"],
                    f"{group['GroupName']}_{group['GroupId']}",
                    "security_group",
                    {
                        "name": group["GroupName"],
                        "description": group.get("Description"),
                        "vpc_id": group.get("VpcId"),
                        "ingress": [_rule(p) for p in group.get("IpPermissions", [])],
                        "egress": [_rule(p) for p in group.get("IpPermissionsEgress", [])],
                        "tags": tags_to_dict(group.get("Tags")),
                    },
                )
            )
            count += 1

        self._log(f"Loaded {count} security groups")

    def load_instances(self, volumes: Dict[str, Dict[str, Any]]) -> None:
        """
        Load instances that are not terminated.

        Parameters
        ----------
        volumes : dict
            Volumes from :meth:`load_volumes`, used for ``root_block_device``.
        """
        self._log("Loading EC2 instances...")
        reservations = self._describe("describe_instances", "Reservations")

        count = 0
        for reservation in reservations:
            for instance in reservation.get("Instances", []):
                if instance.get("State", {}).get("Name") == "terminated":
                    continue
                tags = tags_to_dict(instance.get("Tags"))
                self.add_resource(
                    self.create_resource(
                        instance["InstanceId"],
                        display_name(instance["InstanceId"], tags),
                        "instance",
                        {
                            "ami": instance.get("ImageId"),
                            "instance_type": instance.get("InstanceType"),
                            "subnet_id": instance.get("SubnetId"),
                            "vpc_security_group_ids": [
                                sg["GroupId"] for sg in instance.get("SecurityGroups", [])
                            ],
                            "key_name": instance.get("KeyName"),
                            "private_ip": instance.get("PrivateIpAddress"),
                            "ebs_optimized": instance.get("EbsOptimized", False),
                            "monitoring": instance.get("Monitoring", {}).get("State") == "enabled",
                            "root_block_device": self._root_block_device(instance, volumes),
                            "tags": tags,
                        },
                    )
                )
                count += 1

        self._log(f"Loaded {count} EC2 instances")

    def _root_block_device(
        self,
        instance: Dict[str, Any],
        volumes: Dict[str, Dict[str, Any]],
    ) -> Optional[List[Dict[str, Any]]]:
        root_name = instance.get("RootDeviceName")
        for mapping in instance.get("BlockDeviceMappings", []):
            if mapping.get("DeviceName") != root_name or "Ebs" not in mapping:
                continue
            ebs = mapping["Ebs"]
            volume = volumes.get(ebs.get("VolumeId"), {})
            return [
                {
                    "volume_type": volume.get("VolumeType"),
                    "volume_size": volume.get("Size"),
                    "iops": volume.get("Iops"),
                    "throughput": volume.get("Throughput"),
                    "encrypted": volume.get("Encrypted", False),
                    "delete_on_termination": ebs.get("DeleteOnTermination", True),
                }
            ]
        return None

    # =========================================================================
    # Post-Conversion
    # =========================================================================

    def convert(self, discovered: Sequence[Resource]) -> None:
        """Prune volume settings and link network identifiers."""
        vpcs = build_index(self._resources, "aws_vpc")
        subnets = build_index(self._resources, "aws_subnet")
        groups = build_index(self._resources, "aws_security_group")

        for volume in self.resources_of_type("ebs_volume"):
            prune_volume_settings(volume.attributes, "type")

        for instance in self.resources_of_type("instance"):
            for device in instance.attributes.get("root_block_device") or []:
                prune_volume_settings(device, "volume_type")
            link_reference(instance, "subnet_id", subnets)
            link_reference(instance, "vpc_security_group_ids", groups)

        for resource in self.resources_of_type("subnet") + self.resources_of_type(
            "security_group"
        ):
            link_reference(resource, "vpc_id", vpcs)
