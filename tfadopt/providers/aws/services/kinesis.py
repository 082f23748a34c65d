"""
Kinesis Service Module
======================

Discovers Kinesis data streams and their registered consumers.

Post-Conversion
---------------
- On-demand streams lose ``shard_count``.
- Unencrypted streams lose ``kms_key_id``.
- Consumer ``stream_arn`` is linked to the in-set stream.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Sequence

from botocore.exceptions import ClientError

from tfadopt.core.base_service import BaseService
from tfadopt.core.references import build_index, drop_fields, link_reference
from tfadopt.core.resource import Resource

# Module logger
logger = logging.getLogger(__name__)

ON_DEMAND = "ON_DEMAND"


class KinesisService(BaseService):
    """Discovery adapter for Amazon Kinesis Data Streams."""

    def init_resources(self) -> None:
        """Load streams and their consumers."""
        self.load_streams()

    def load_streams(self) -> None:
        """
        Load streams.

        Raises
        ------
        botocore.exceptions.ClientError
            If the streams cannot be listed or described.
        """
        self._log("Loading Kinesis streams...")
        kinesis = self.client("kinesis")

        count = 0
        for page in kinesis.get_paginator("list_streams").paginate():
            for stream_name in page.get("StreamNames", []):
                summary = kinesis.describe_stream_summary(StreamName=stream_name)[
                    "StreamDescriptionSummary"
                ]
                self.add_resource(self._stream_resource(summary))
                self.load_consumers(summary)
                count += 1

        self._log(f"Loaded {count} Kinesis streams")

    def _stream_resource(self, summary: Dict[str, Any]) -> Resource:
        stream_name = summary["StreamName"]
        mode = (summary.get("StreamModeDetails") or {}).get("StreamMode", "PROVISIONED")
        metrics = [
            metric
            for monitoring in summary.get("EnhancedMonitoring", [])
            for metric in monitoring.get("ShardLevelMetrics", [])
        ]

        resource = self.create_resource(
            stream_name,
            stream_name,
            "kinesis_stream",
            {
                "name": stream_name,
                "shard_count": summary.get("OpenShardCount"),
                "retention_period": summary.get("RetentionPeriodHours"),
                "encryption_type": summary.get("EncryptionType", "NONE"),
                "kms_key_id": summary.get("KeyId"),
                "shard_level_metrics": metrics or None,
                "stream_mode_details": [{"stream_mode": mode}],
                "tags": self._tags(stream_name),
            },
            {"arn": summary.get("StreamARN")},
        )
        resource.ignore_keys = ["^arn$"]
        return resource

    def _tags(self, stream_name: str) -> Dict[str, str]:
        try:
            response = self.client("kinesis").list_tags_for_stream(StreamName=stream_name)
        except ClientError as e:
            self._log(f"Error fetching tags for {stream_name}: {e}", "debug")
            return {}
        return {tag["Key"]: tag["Value"] for tag in response.get("Tags", [])}

    def load_consumers(self, summary: Dict[str, Any]) -> None:
        """Load the enhanced fan-out consumers of one stream."""
        stream_arn = summary.get("StreamARN")
        try:
            response = self.client("kinesis").list_stream_consumers(StreamARN=stream_arn)
        except ClientError as e:
            self._log(f"Error listing consumers of {summary['StreamName']}: {e}", "debug")
            return

        for consumer in response.get("Consumers", []):
            resource = self.create_resource(
                consumer["ConsumerARN"],
                f"{summary['StreamName']}_{consumer['ConsumerName']}",
                "kinesis_stream_consumer",
                {"name": consumer["ConsumerName"], "stream_arn": stream_arn},
                {"arn": consumer["ConsumerARN"]},
            )
            resource.ignore_keys = ["^arn$"]
            self.add_resource(resource)

    def convert(self, discovered: Sequence[Resource]) -> None:
        """Prune settings that do not apply and link consumers to streams."""
        streams = build_index(self._resources, "aws_kinesis_stream", key="arn")

        for stream in self.resources_of_type("kinesis_stream"):
            modes = stream.attributes.get("stream_mode_details") or [{}]
            if modes[0].get("stream_mode") == ON_DEMAND:
                drop_fields(stream, "shard_count")
            if stream.attributes.get("encryption_type") != "KMS":
                drop_fields(stream, "kms_key_id")

        for consumer in self.resources_of_type("kinesis_stream_consumer"):
            link_reference(consumer, "stream_arn", streams, "arn")
