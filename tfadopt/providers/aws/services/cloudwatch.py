"""
CloudWatch Service Module
=========================

Discovers metric alarms and dashboards.

Post-Conversion
---------------
- Dashboard bodies are wrapped in a heredoc.
- Alarms driven by metric math (``metric_query``) lose the single-metric
  arguments, which conflict with it.
- Alarms with ``threshold_metric_id`` (anomaly detection) lose
  ``threshold``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from tfadopt.core.base_service import BaseService
from tfadopt.core.references import drop_fields, wrap_policy
from tfadopt.core.resource import Resource, map_fields

# Module logger
logger = logging.getLogger(__name__)

ALARM_FIELDS = {
    "AlarmName": "alarm_name",
    "AlarmDescription": "alarm_description",
    "ComparisonOperator": "comparison_operator",
    "EvaluationPeriods": "evaluation_periods",
    "DatapointsToAlarm": "datapoints_to_alarm",
    "MetricName": "metric_name",
    "Namespace": "namespace",
    "Period": "period",
    "Statistic": "statistic",
    "ExtendedStatistic": "extended_statistic",
    "Threshold": "threshold",
    "ThresholdMetricId": "threshold_metric_id",
    "TreatMissingData": "treat_missing_data",
    "Unit": "unit",
    "ActionsEnabled": "actions_enabled",
    "AlarmActions": "alarm_actions",
    "OKActions": "ok_actions",
    "InsufficientDataActions": "insufficient_data_actions",
}

SINGLE_METRIC_FIELDS = (
    "metric_name",
    "namespace",
    "period",
    "statistic",
    "extended_statistic",
    "dimensions",
    "unit",
)


def _metric_query(query: Dict[str, Any]) -> Dict[str, Any]:
    settings: Dict[str, Any] = {
        "id": query["Id"],
        "expression": query.get("Expression"),
        "label": query.get("Label"),
        "return_data": query.get("ReturnData"),
    }
    stat = query.get("MetricStat")
    if stat:
        metric = stat.get("Metric") or {}
        settings["metric"] = [
            {
                "metric_name": metric.get("MetricName"),
                "namespace": metric.get("Namespace"),
                "period": stat.get("Period"),
                "stat": stat.get("Stat"),
                "unit": stat.get("Unit"),
                "dimensions": {
                    d["Name"]: d["Value"] for d in metric.get("Dimensions", [])
                },
            }
        ]
    return settings


class CloudWatchService(BaseService):
    """Discovery adapter for Amazon CloudWatch."""

    def init_resources(self) -> None:
        """Load metric alarms and dashboards."""
        self.load_alarms()
        self.load_dashboards()

    def load_alarms(self) -> None:
        """
        Load metric alarms. Composite alarms are not included.

        Raises
        ------
        botocore.exceptions.ClientError
            If the alarms cannot be listed.
        """
        self._log("Loading CloudWatch metric alarms...")
        paginator = self.client("cloudwatch").get_paginator("describe_alarms")

        count = 0
        for page in paginator.paginate(AlarmTypes=["MetricAlarm"]):
            for alarm in page.get("MetricAlarms", []):
                attributes = map_fields(alarm, ALARM_FIELDS)
                attributes["dimensions"] = {
                    d["Name"]: d["Value"] for d in alarm.get("Dimensions", [])
                } or None
                attributes["metric_query"] = self._metric_queries(alarm.get("Metrics"))

                resource = self.create_resource(
                    alarm["AlarmName"],
                    alarm["AlarmName"],
                    "cloudwatch_metric_alarm",
                    attributes,
                    {"arn": alarm.get("AlarmArn"), "state": alarm.get("StateValue")},
                )
                resource.ignore_keys = ["^arn$", "^state$"]
                self.add_resource(resource)
                count += 1

        self._log(f"Loaded {count} CloudWatch alarms")

    def _metric_queries(
        self, metrics: Optional[List[Dict[str, Any]]]
    ) -> Optional[List[Dict[str, Any]]]:
        if not metrics:
            return None
        return [_metric_query(query) for query in metrics]

    def load_dashboards(self) -> None:
        """
        Load dashboards with their bodies.

        Raises
        ------
        botocore.exceptions.ClientError
            If the dashboards cannot be listed or read.
        """
        self._log("Loading CloudWatch dashboards...")
        cloudwatch = self.client("cloudwatch")

        count = 0
        for page in cloudwatch.get_paginator("list_dashboards").paginate():
            for entry in page.get("DashboardEntries", []):
                dashboard_name = entry["DashboardName"]
                body = cloudwatch.get_dashboard(DashboardName=dashboard_name).get(
                    "DashboardBody"
                )
                resource = self.create_resource(
                    dashboard_name,
                    dashboard_name,
                    "cloudwatch_dashboard",
                    {
                        "dashboard_name": dashboard_name,
                        "dashboard_body": json.dumps(json.loads(body), indent=2)
                        if body
                        else None,
                    },
                    {"arn": entry.get("DashboardArn")},
                )
                resource.ignore_keys = ["^arn$"]
                self.add_resource(resource)
                count += 1

        self._log(f"Loaded {count} CloudWatch dashboards")

    def convert(self, discovered: Sequence[Resource]) -> None:
        """Wrap dashboard bodies and drop alarm arguments that conflict."""
        for dashboard in self.resources_of_type("cloudwatch_dashboard"):
            wrap_policy(dashboard, "dashboard_body")

        for alarm in self.resources_of_type("cloudwatch_metric_alarm"):
            if alarm.attributes.get("metric_query"):
                drop_fields(alarm, *SINGLE_METRIC_FIELDS)
            if alarm.attributes.get("threshold_metric_id"):
                drop_fields(alarm, "threshold")
