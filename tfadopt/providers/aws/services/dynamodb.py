"""
DynamoDB Service Module
=======================

Discovers DynamoDB tables with their key schema, secondary indexes,
streams, TTL and point-in-time recovery settings.

Post-Conversion
---------------
- On-demand tables (``PAY_PER_REQUEST``) lose ``read_capacity`` and
  ``write_capacity``, on the table and on every global secondary index.
- ``stream_view_type`` is dropped when the stream is disabled.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from botocore.exceptions import ClientError

from tfadopt.core.base_service import BaseService
from tfadopt.core.references import drop_fields
from tfadopt.core.resource import Resource

# Module logger
logger = logging.getLogger(__name__)

ON_DEMAND = "PAY_PER_REQUEST"


def key_names(key_schema: List[Dict[str, str]]) -> Dict[str, Optional[str]]:
    """
    Split a ``KeySchema`` into hash and range key names.

    Example
    -------
    >>> key_names([{"AttributeName": "pk", "KeyType": "HASH"}])
    {'hash_key': 'pk', 'range_key': None}
    """
    keys = {element["KeyType"]: element["AttributeName"] for element in key_schema}
    return {"hash_key": keys.get("HASH"), "range_key": keys.get("RANGE")}


def _projection(index: Dict[str, Any]) -> Dict[str, Any]:
    projection = index.get("Projection") or {}
    return {
        "projection_type": projection.get("ProjectionType"),
        "non_key_attributes": projection.get("NonKeyAttributes"),
    }


class DynamoDBService(BaseService):
    """Discovery adapter for Amazon DynamoDB."""

    def init_resources(self) -> None:
        """Load every table in the region."""
        self.load_tables()

    def load_tables(self) -> None:
        """
        Load tables.

        Raises
        ------
        botocore.exceptions.ClientError
            If the tables cannot be listed or described.
        """
        self._log("Loading DynamoDB tables...")
        dynamodb = self.client("dynamodb")

        count = 0
        for page in dynamodb.get_paginator("list_tables").paginate():
            for table_name in page.get("TableNames", []):
                table = dynamodb.describe_table(TableName=table_name)["Table"]
                self.add_resource(self._table_resource(table))
                count += 1

        self._log(f"Loaded {count} DynamoDB tables")

    def _table_resource(self, table: Dict[str, Any]) -> Resource:
        table_name = table["TableName"]
        throughput = table.get("ProvisionedThroughput") or {}
        billing_mode = (table.get("BillingModeSummary") or {}).get(
            "BillingMode", "PROVISIONED"
        )
        stream = table.get("StreamSpecification") or {}

        attributes: Dict[str, Any] = {"name": table_name, "billing_mode": billing_mode}
        attributes.update(key_names(table.get("KeySchema", [])))
        attributes.update(
            {
                "read_capacity": throughput.get("ReadCapacityUnits"),
                "write_capacity": throughput.get("WriteCapacityUnits"),
                "attribute": [
                    {"name": a["AttributeName"], "type": a["AttributeType"]}
                    for a in table.get("AttributeDefinitions", [])
                ],
                "global_secondary_index": [
                    self._global_index(index)
                    for index in table.get("GlobalSecondaryIndexes", [])
                ] or None,
                "local_secondary_index": [
                    {
                        "name": index["IndexName"],
                        "range_key": key_names(index["KeySchema"])["range_key"],
                        **_projection(index),
                    }
                    for index in table.get("LocalSecondaryIndexes", [])
                ] or None,
                "stream_enabled": stream.get("StreamEnabled", False),
                "stream_view_type": stream.get("StreamViewType"),
                "ttl": self._ttl(table_name),
                "point_in_time_recovery": self._point_in_time_recovery(table_name),
                "tags": self._tags(table.get("TableArn")),
            }
        )

        resource = self.create_resource(
            table_name,
            table_name,
            "dynamodb_table",
            attributes,
            {"arn": table.get("TableArn"), "stream_arn": table.get("LatestStreamArn")},
        )
        resource.ignore_keys = ["^arn$", "^stream_arn$"]
        return resource

    def _global_index(self, index: Dict[str, Any]) -> Dict[str, Any]:
        throughput = index.get("ProvisionedThroughput") or {}
        settings: Dict[str, Any] = {"name": index["IndexName"]}
        settings.update(key_names(index["KeySchema"]))
        settings.update(_projection(index))
        settings["read_capacity"] = throughput.get("ReadCapacityUnits")
        settings["write_capacity"] = throughput.get("WriteCapacityUnits")
        return settings

    def _ttl(self, table_name: str) -> Optional[List[Dict[str, Any]]]:
        try:
            response = self.client("dynamodb").describe_time_to_live(TableName=table_name)
        except ClientError as e:
            self._log(f"Error fetching TTL for {table_name}: {e}", "debug")
            return None
        description = response.get("TimeToLiveDescription") or {}
        if description.get("TimeToLiveStatus") not in ("ENABLED", "ENABLING"):
            return None
        return [{"attribute_name": description.get("AttributeName"), "enabled": True}]

    def _point_in_time_recovery(self, table_name: str) -> Optional[List[Dict[str, Any]]]:
        try:
            response = self.client("dynamodb").describe_continuous_backups(
                TableName=table_name
            )
        except ClientError as e:
            self._log(f"Error fetching backups for {table_name}: {e}", "debug")
            return None
        recovery = (response.get("ContinuousBackupsDescription") or {}).get(
            "PointInTimeRecoveryDescription"
        ) or {}
        return [{"enabled": recovery.get("PointInTimeRecoveryStatus") == "ENABLED"}]

    def _tags(self, table_arn: Optional[str]) -> Dict[str, str]:
        if not table_arn:
            return {}
        try:
            response = self.client("dynamodb").list_tags_of_resource(ResourceArn=table_arn)
        except ClientError as e:
            self._log(f"Error fetching tags for {table_arn}: {e}", "debug")
            return {}
        return {tag["Key"]: tag["Value"] for tag in response.get("Tags", [])}

    def convert(self, discovered: Sequence[Resource]) -> None:
        """Drop capacity of on-demand tables and unused stream settings."""
        for table in self.resources_of_type("dynamodb_table"):
            if table.attributes.get("billing_mode") == ON_DEMAND:
                drop_fields(table, "read_capacity", "write_capacity")
                indexes = table.remember(
                    "global_secondary_index", table.attributes.get("global_secondary_index")
                )
                if indexes:
                    table.attributes["global_secondary_index"] = [
                        {
                            key: value
                            for key, value in index.items()
                            if key not in ("read_capacity", "write_capacity")
                        }
                        for index in indexes
                    ]

            if not table.attributes.get("stream_enabled"):
                drop_fields(table, "stream_view_type")
