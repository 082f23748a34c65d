"""
SQS Service Module
==================

Discovers SQS queues. Queue attributes are read with
``GetQueueAttributes`` and mapped onto ``aws_sqs_queue`` arguments; the
access policy is wrapped in a heredoc during post-conversion.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Sequence

from botocore.exceptions import ClientError

from tfadopt.core.base_service import BaseService
from tfadopt.core.references import policy_to_string, wrap_policy
from tfadopt.core.resource import Resource, map_fields

# Module logger
logger = logging.getLogger(__name__)

QUEUE_FIELDS = {
    "DelaySeconds": "delay_seconds",
    "MaximumMessageSize": "max_message_size",
    "MessageRetentionPeriod": "message_retention_seconds",
    "ReceiveMessageWaitTimeSeconds": "receive_wait_time_seconds",
    "VisibilityTimeout": "visibility_timeout_seconds",
    "FifoQueue": "fifo_queue",
    "ContentBasedDeduplication": "content_based_deduplication",
    "KmsMasterKeyId": "kms_master_key_id",
    "RedrivePolicy": "redrive_policy",
    "Policy": "policy",
}


def coerce_attribute(value: Any) -> Any:
    """
    Convert a string-typed API attribute to a native scalar.

    Examples
    --------
    >>> coerce_attribute("30")
    30
    >>> coerce_attribute("true")
    True
    >>> coerce_attribute("arn:aws:sqs:...")
    'arn:aws:sqs:...'
    """
    if not isinstance(value, str):
        return value
    if value in ("true", "false"):
        return value == "true"
    if value.isdigit():
        return int(value)
    return value


def coerce_attributes(attributes: Mapping[str, Any]) -> Dict[str, Any]:
    """Apply :func:`coerce_attribute` to every value of a mapping."""
    return {key: coerce_attribute(value) for key, value in attributes.items()}


class SQSService(BaseService):
    """Discovery adapter for Amazon SQS."""

    def init_resources(self) -> None:
        """Load every queue in the region."""
        self.load_queues()

    def load_queues(self) -> None:
        """
        Load queues and their attributes.

        Raises
        ------
        botocore.exceptions.ClientError
            If the queues cannot be listed.
        """
        self._log("Loading SQS queues...")
        sqs = self.client("sqs")

        count = 0
        paginator = sqs.get_paginator("list_queues")
        for page in paginator.paginate():
            for queue_url in page.get("QueueUrls", []):
                queue_name = queue_url.rsplit("/", 1)[-1]
                native = self._queue_attributes(queue_url)

                attributes = {"name": queue_name}
                attributes.update(coerce_attributes(map_fields(native, QUEUE_FIELDS)))
                attributes["policy"] = policy_to_string(native.get("Policy"))

                resource = self.create_resource(
                    queue_url,
                    queue_name,
                    "sqs_queue",
                    attributes,
                    {"arn": native.get("QueueArn"), "url": queue_url},
                )
                resource.ignore_keys = ["^arn$", "^url$"]
                self.add_resource(resource)
                count += 1

        self._log(f"Loaded {count} SQS queues")

    def _queue_attributes(self, queue_url: str) -> Dict[str, Any]:
        try:
            response = self.client("sqs").get_queue_attributes(
                QueueUrl=queue_url, AttributeNames=["All"]
            )
        except ClientError as e:
            self._log(f"Error fetching attributes for {queue_url}: {e}", "debug")
            return {}
        return response.get("Attributes", {})

    def convert(self, discovered: Sequence[Resource]) -> None:
        """Wrap queue policies in heredocs."""
        for queue in self.resources_of_type("sqs_queue"):
            wrap_policy(queue, "policy")
