"""
RDS Service Module
==================

Discovers DB instances, Aurora clusters and DB subnet groups.

Post-Conversion
---------------
- DB instances lose ``iops`` unless the storage type is ``io1``, ``io2``
  or ``gp3`` and ``storage_throughput`` unless it is ``gp3``.
- ``db_subnet_group_name`` is linked to an in-set subnet group; subnet and
  security group IDs are linked to EC2 resources written to the same
  output directory earlier in the run.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

from tfadopt.core.base_service import BaseService
from tfadopt.core.references import build_index, drop_fields, link_reference
from tfadopt.core.resource import Resource, map_fields

# Module logger
logger = logging.getLogger(__name__)

INSTANCE_FIELDS = {
    "DBInstanceIdentifier": "identifier",
    "Engine": "engine",
    "EngineVersion": "engine_version",
    "DBInstanceClass": "instance_class",
    "AllocatedStorage": "allocated_storage",
    "StorageType": "storage_type",
    "Iops": "iops",
    "StorageThroughput": "storage_throughput",
    "MasterUsername": "username",
    "DBName": "db_name",
    "MultiAZ": "multi_az",
    "PubliclyAccessible": "publicly_accessible",
    "BackupRetentionPeriod": "backup_retention_period",
    "PreferredBackupWindow": "backup_window",
    "PreferredMaintenanceWindow": "maintenance_window",
    "StorageEncrypted": "storage_encrypted",
    "KmsKeyId": "kms_key_id",
    "DBClusterIdentifier": "cluster_identifier",
}

CLUSTER_FIELDS = {
    "DBClusterIdentifier": "cluster_identifier",
    "Engine": "engine",
    "EngineVersion": "engine_version",
    "DatabaseName": "database_name",
    "MasterUsername": "master_username",
    "Port": "port",
    "BackupRetentionPeriod": "backup_retention_period",
    "PreferredBackupWindow": "preferred_backup_window",
    "PreferredMaintenanceWindow": "preferred_maintenance_window",
    "StorageEncrypted": "storage_encrypted",
    "KmsKeyId": "kms_key_id",
    "DBSubnetGroup": "db_subnet_group_name",
}

IOPS_STORAGE_TYPES = ("io1", "io2", "gp3")
THROUGHPUT_STORAGE_TYPES = ("gp3",)


class RDSService(BaseService):
    """Discovery adapter for Amazon RDS."""

    def init_resources(self) -> None:
        """Load subnet groups, clusters and instances."""
        self.load_subnet_groups()
        self.load_clusters()
        self.load_instances()

    def _describe(self, operation: str, key: str) -> List[Dict[str, Any]]:
        paginator = self.client("rds").get_paginator(operation)
        items: List[Dict[str, Any]] = []
        for page in paginator.paginate():
            items.extend(page.get(key, []))
        return items

    def load_subnet_groups(self) -> None:
        """Load DB subnet groups."""
        self._log("Loading RDS DB subnet groups...")
        groups = self._describe("describe_db_subnet_groups", "DBSubnetGroups")

        for group in groups:
            name = group["DBSubnetGroupName"]
            resource = self.create_resource(
                name,
                name,
                "db_subnet_group",
                {
                    "name": name,
                    "description": group.get("DBSubnetGroupDescription"),
                    "subnet_ids": [
                        subnet["SubnetIdentifier"] for subnet in group.get("Subnets", [])
                    ],
                },
                {"arn": group.get("DBSubnetGroupArn")},
            )
            resource.ignore_keys = ["^arn$"]
            self.add_resource(resource)

        self._log(f"Loaded {len(groups)} RDS DB subnet groups")

    def load_clusters(self) -> None:
        """Load DB clusters."""
        self._log("Loading RDS DB clusters...")
        clusters = self._describe("describe_db_clusters", "DBClusters")

        for cluster in clusters:
            attributes = map_fields(cluster, CLUSTER_FIELDS)
            attributes["vpc_security_group_ids"] = [
                sg["VpcSecurityGroupId"] for sg in cluster.get("VpcSecurityGroups", [])
            ]
            attributes["skip_final_snapshot"] = True

            resource = self.create_resource(
                cluster["DBClusterIdentifier"],
                cluster["DBClusterIdentifier"],
                "rds_cluster",
                attributes,
                {"arn": cluster.get("DBClusterArn"), "endpoint": cluster.get("Endpoint")},
            )
            resource.ignore_keys = ["^arn$", "^endpoint$"]
            self.add_resource(resource)

        self._log(f"Loaded {len(clusters)} RDS DB clusters")

    def load_instances(self) -> None:
        """Load DB instances."""
        self._log("Loading RDS DB instances...")
        instances = self._describe("describe_db_instances", "DBInstances")

        for instance in instances:
            attributes = map_fields(instance, INSTANCE_FIELDS)
            attributes["port"] = (instance.get("Endpoint") or {}).get("Port")
            attributes["vpc_security_group_ids"] = [
                sg["VpcSecurityGroupId"] for sg in instance.get("VpcSecurityGroups", [])
            ]
            attributes["db_subnet_group_name"] = (
                instance.get("DBSubnetGroup") or {}
            ).get("DBSubnetGroupName")
            attributes["parameter_group_name"] = next(
                (
                    group["DBParameterGroupName"]
                    for group in instance.get("DBParameterGroups", [])
                ),
                None,
            )
            attributes["skip_final_snapshot"] = True

            resource = self.create_resource(
                instance["DBInstanceIdentifier"],
                instance["DBInstanceIdentifier"],
                "db_instance",
                attributes,
                {
                    "arn": instance.get("DBInstanceArn"),
                    "address": (instance.get("Endpoint") or {}).get("Address"),
                },
            )
            resource.ignore_keys = ["^arn$", "^address$"]
            self.add_resource(resource)

        self._log(f"Loaded {len(instances)} RDS DB instances")

    def convert(self, discovered: Sequence[Resource]) -> None:
        """Prune storage settings and link network identifiers."""
        subnet_groups = build_index(self._resources, "aws_db_subnet_group", key="name")
        subnets = build_index(discovered, "aws_subnet")
        security_groups = build_index(discovered, "aws_security_group")

        for instance in self.resources_of_type("db_instance"):
            storage_type = instance.attributes.get("storage_type")
            if storage_type not in IOPS_STORAGE_TYPES:
                drop_fields(instance, "iops")
            if storage_type not in THROUGHPUT_STORAGE_TYPES:
                drop_fields(instance, "storage_throughput")

        for resource in self.resources_of_type("db_instance") + self.resources_of_type(
            "rds_cluster"
        ):
            link_reference(resource, "db_subnet_group_name", subnet_groups, "name")
            link_reference(resource, "vpc_security_group_ids", security_groups)

        for group in self.resources_of_type("db_subnet_group"):
            link_reference(group, "subnet_ids", subnets)
