"""
SNS Service Module
==================

Discovers SNS topics and subscriptions.

Post-Conversion
---------------
- Topic policies are wrapped in a heredoc.
- Subscription ``topic_arn`` is linked to the in-set topic.
- Subscription ``endpoint`` is linked to an SQS queue written to the
  same output directory earlier in the run (a shared directory with
  ``sqs`` listed before ``sns``).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Sequence

from botocore.exceptions import ClientError

from tfadopt.core.base_service import BaseService
from tfadopt.core.references import (
    build_index,
    link_reference,
    policy_to_string,
    wrap_policy,
)
from tfadopt.core.resource import Resource, map_fields
from tfadopt.providers.aws.services.sqs import coerce_attributes

# Module logger
logger = logging.getLogger(__name__)

TOPIC_FIELDS = {
    "DisplayName": "display_name",
    "DeliveryPolicy": "delivery_policy",
    "KmsMasterKeyId": "kms_master_key_id",
    "FifoTopic": "fifo_topic",
    "ContentBasedDeduplication": "content_based_deduplication",
}

PENDING_CONFIRMATION = "PendingConfirmation"


class SNSService(BaseService):
    """Discovery adapter for Amazon SNS."""

    def init_resources(self) -> None:
        """Load topics, then subscriptions."""
        self.load_topics()
        self.load_subscriptions()

    def load_topics(self) -> None:
        """
        Load topics and their attributes.

        Raises
        ------
        botocore.exceptions.ClientError
            If the topics cannot be listed.
        """
        self._log("Loading SNS topics...")
        sns = self.client("sns")

        count = 0
        for page in sns.get_paginator("list_topics").paginate():
            for topic in page.get("Topics", []):
                topic_arn = topic["TopicArn"]
                topic_name = topic_arn.rsplit(":", 1)[-1]
                native = self._topic_attributes(topic_arn)

                attributes: Dict[str, Any] = {"name": topic_name}
                attributes.update(coerce_attributes(map_fields(native, TOPIC_FIELDS)))
                attributes["policy"] = policy_to_string(native.get("Policy"))

                resource = self.create_resource(
                    topic_arn, topic_name, "sns_topic", attributes, {"arn": topic_arn}
                )
                resource.ignore_keys = ["^arn$"]
                self.add_resource(resource)
                count += 1

        self._log(f"Loaded {count} SNS topics")

    def _topic_attributes(self, topic_arn: str) -> Dict[str, Any]:
        try:
            response = self.client("sns").get_topic_attributes(TopicArn=topic_arn)
        except ClientError as e:
            self._log(f"Error fetching attributes for {topic_arn}: {e}", "debug")
            return {}
        return response.get("Attributes", {})

    def load_subscriptions(self) -> None:
        """
        Load confirmed subscriptions.

        Raises
        ------
        botocore.exceptions.ClientError
            If the subscriptions cannot be listed.
        """
        self._log("Loading SNS subscriptions...")
        sns = self.client("sns")

        count = 0
        for page in sns.get_paginator("list_subscriptions").paginate():
            for subscription in page.get("Subscriptions", []):
                subscription_arn = subscription["SubscriptionArn"]
                if subscription_arn == PENDING_CONFIRMATION:
                    continue

                topic_name = subscription["TopicArn"].rsplit(":", 1)[-1]
                subscription_id = subscription_arn.rsplit(":", 1)[-1]
                resource = self.create_resource(
                    subscription_arn,
                    f"{topic_name}_{subscription['Protocol']}_{subscription_id}",
                    "sns_topic_subscription",
                    {
                        "topic_arn": subscription["TopicArn"],
                        "protocol": subscription["Protocol"],
                        "endpoint": subscription.get("Endpoint"),
                    },
                    {"arn": subscription_arn},
                )
                resource.ignore_keys = ["^arn$"]
                self.add_resource(resource)
                count += 1

        self._log(f"Loaded {count} SNS subscriptions")

    def convert(self, discovered: Sequence[Resource]) -> None:
        """Wrap topic policies and link subscriptions to topics and queues."""
        topics = build_index(self._resources, "aws_sns_topic", key="arn")
        queues = build_index(discovered, "aws_sqs_queue", key="arn")

        for topic in self.resources_of_type("sns_topic"):
            wrap_policy(topic, "policy")

        for subscription in self.resources_of_type("sns_topic_subscription"):
            link_reference(subscription, "topic_arn", topics, "arn")
            link_reference(subscription, "endpoint", queues, "arn")
