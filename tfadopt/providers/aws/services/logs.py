"""
CloudWatch Logs Service Module
==============================

Discovers log groups and their metric filters.

Post-Conversion
---------------
- Metric filter ``log_group_name`` is linked to the in-set log group.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Sequence

from botocore.exceptions import ClientError

from tfadopt.core.base_service import BaseService
from tfadopt.core.references import build_index, link_reference
from tfadopt.core.resource import Resource

# Module logger
logger = logging.getLogger(__name__)


class CloudWatchLogsService(BaseService):
    """Discovery adapter for Amazon CloudWatch Logs."""

    def init_resources(self) -> None:
        """Load log groups and metric filters."""
        self.load_log_groups()
        self.load_metric_filters()

    def load_log_groups(self) -> None:
        """
        Load log groups.

        Raises
        ------
        botocore.exceptions.ClientError
            If the log groups cannot be listed.
        """
        self._log("Loading CloudWatch log groups...")
        paginator = self.client("logs").get_paginator("describe_log_groups")

        count = 0
        for page in paginator.paginate():
            for group in page.get("logGroups", []):
                group_name = group["logGroupName"]
                resource = self.create_resource(
                    group_name,
                    group_name,
                    "cloudwatch_log_group",
                    {
                        "name": group_name,
                        "retention_in_days": group.get("retentionInDays"),
                        "kms_key_id": group.get("kmsKeyId"),
                        "tags": self._tags(group_name),
                    },
                    {"arn": group.get("arn")},
                )
                resource.ignore_keys = ["^arn$"]
                self.add_resource(resource)
                count += 1

        self._log(f"Loaded {count} CloudWatch log groups")

    def _tags(self, group_name: str) -> Dict[str, str]:
        try:
            response = self.client("logs").list_tags_log_group(logGroupName=group_name)
        except ClientError as e:
            self._log(f"Error fetching tags for {group_name}: {e}", "debug")
            return {}
        return response.get("tags", {})

    def load_metric_filters(self) -> None:
        """
        Load metric filters.

        Raises
        ------
        botocore.exceptions.ClientError
            If the metric filters cannot be listed.
        """
        self._log("Loading CloudWatch Logs metric filters...")
        paginator = self.client("logs").get_paginator("describe_metric_filters")

        count = 0
        for page in paginator.paginate():
            for metric_filter in page.get("metricFilters", []):
                self.add_resource(self._metric_filter_resource(metric_filter))
                count += 1

        self._log(f"Loaded {count} metric filters")

    def _metric_filter_resource(self, metric_filter: Dict[str, Any]) -> Resource:
        filter_name = metric_filter["filterName"]
        group_name = metric_filter["logGroupName"]
        resource = self.create_resource(
            f"{group_name}:{filter_name}",
            filter_name,
            "cloudwatch_log_metric_filter",
            {
                "name": filter_name,
                "log_group_name": group_name,
                "pattern": metric_filter.get("filterPattern", ""),
                "metric_transformation": [
                    {
                        "name": transformation.get("metricName"),
                        "namespace": transformation.get("metricNamespace"),
                        "value": transformation.get("metricValue"),
                        "default_value": transformation.get("defaultValue"),
                    }
                    for transformation in metric_filter.get("metricTransformations", [])
                ],
            },
        )
        # An empty pattern matches every event and must still be written
        resource.allow_empty_values = ["^pattern$"]
        return resource

    def convert(self, discovered: Sequence[Resource]) -> None:
        """Link metric filters to their log groups."""
        groups = build_index(self._resources, "aws_cloudwatch_log_group", key="name")
        for metric_filter in self.resources_of_type("cloudwatch_log_metric_filter"):
            link_reference(metric_filter, "log_group_name", groups, "name")
