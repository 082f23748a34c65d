"""
Lambda Service Module
=====================

Discovers Lambda functions with their resource-policy permissions and
asynchronous invocation configs, plus event source mappings.

Post-Conversion
---------------
- A function's ``environment`` read from the API is promoted to
  ``environment = [{variables = {...}}]``.
- Event invoke configs with ``maximum_event_age_in_seconds = 0`` lose the
  field.
- ``function_name`` of permissions, invoke configs and event source
  mappings is linked to the in-set function; ``event_source_arn`` is
  linked to an SQS queue written to the same output directory earlier in
  the run.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from botocore.exceptions import ClientError

from tfadopt.core.base_service import BaseService
from tfadopt.core.references import build_index, drop_fields, link_reference
from tfadopt.core.resource import Resource

# Module logger
logger = logging.getLogger(__name__)

FUNCTION_READ_ONLY_KEYS = [
    "^arn$",
    "^version$",
    "^last_modified$",
    "^code_sha256$",
    "^code_size$",
]


def _block(value: Optional[Dict[str, Any]]) -> Optional[List[Dict[str, Any]]]:
    """Wrap a non-empty nested setting as a single-element block list."""
    return [value] if value else None


class LambdaService(BaseService):
    """Discovery adapter for AWS Lambda."""

    def init_resources(self) -> None:
        """Load functions (with per-function settings) and event source mappings."""
        self.load_functions()
        self.load_event_source_mappings()

    # =========================================================================
    # Loaders
    # =========================================================================

    def load_functions(self) -> None:
        """
        Load functions.

        Raises
        ------
        botocore.exceptions.ClientError
            If the functions cannot be listed.
        """
        self._log("Loading Lambda functions...")
        paginator = self.client("lambda").get_paginator("list_functions")

        count = 0
        for page in paginator.paginate():
            for function in page.get("Functions", []):
                self.add_resource(self._function_resource(function))
                self.load_permissions(function["FunctionName"])
                self.load_event_invoke_configs(function["FunctionName"])
                count += 1

        self._log(f"Loaded {count} Lambda functions")

    def _function_resource(self, function: Dict[str, Any]) -> Resource:
        vpc = function.get("VpcConfig") or {}
        vpc_config = None
        if vpc.get("SubnetIds"):
            vpc_config = [
                {
                    "subnet_ids": vpc.get("SubnetIds", []),
                    "security_group_ids": vpc.get("SecurityGroupIds", []),
                }
            ]

        tracing = function.get("TracingConfig") or {}
        dead_letter = function.get("DeadLetterConfig") or {}

        resource = self.create_resource(
            function["FunctionArn"],
            function["FunctionName"],
            "lambda_function",
            {
                "function_name": function["FunctionName"],
                "role": function.get("Role"),
                "handler": function.get("Handler"),
                "runtime": function.get("Runtime"),
                "description": function.get("Description"),
                "timeout": function.get("Timeout"),
                "memory_size": function.get("MemorySize"),
                "architectures": function.get("Architectures"),
                "layers": [layer["Arn"] for layer in function.get("Layers", [])] or None,
                "kms_key_arn": function.get("KMSKeyArn"),
                "vpc_config": vpc_config,
                "tracing_config": _block(
                    {"mode": tracing["Mode"]} if tracing.get("Mode") else None
                ),
                "dead_letter_config": _block(
                    {"target_arn": dead_letter["TargetArn"]}
                    if dead_letter.get("TargetArn")
                    else None
                ),
            },
            {
                "arn": function["FunctionArn"],
                "environment": function.get("Environment"),
                "version": function.get("Version"),
                "last_modified": function.get("LastModified"),
                "code_sha256": function.get("CodeSha256"),
                "code_size": function.get("CodeSize"),
            },
        )
        resource.ignore_keys = list(FUNCTION_READ_ONLY_KEYS)
        return resource

    def load_permissions(self, function_name: str) -> None:
        """Turn the statements of a function's resource policy into permissions."""
        try:
            response = self.client("lambda").get_policy(FunctionName=function_name)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") != "ResourceNotFoundException":
                self._log(f"Error loading policy for {function_name}: {e}", "debug")
            return

        document = json.loads(response.get("Policy") or "{}")
        for statement in document.get("Statement", []):
            principal = statement.get("Principal")
            if isinstance(principal, dict):
                principal = principal.get("Service") or principal.get("AWS")
            condition = statement.get("Condition", {})
            source_arn = condition.get("ArnLike", {}).get("AWS:SourceArn")

            self.add_resource(
                self.create_resource(
                    f"{function_name}/{statement['Sid']}",
                    f"{function_name}_{statement['Sid']}",
                    "lambda_permission",
                    {
                        "statement_id": statement["Sid"],
                        "function_name": function_name,
                        "action": statement.get("Action"),
                        "principal": principal,
                        "source_arn": source_arn,
                    },
                )
            )

    def load_event_invoke_configs(self, function_name: str) -> None:
        """Load a function's asynchronous invocation configs."""
        try:
            paginator = self.client("lambda").get_paginator(
                "list_function_event_invoke_configs"
            )
            configs: List[Dict[str, Any]] = []
            for page in paginator.paginate(FunctionName=function_name):
                configs.extend(page.get("FunctionEventInvokeConfigs", []))
        except ClientError as e:
            self._log(f"Error loading event invoke configs for {function_name}: {e}", "debug")
            return

        for config in configs:
            destinations = config.get("DestinationConfig") or {}
            destination_config = None
            if destinations:
                destination_config = [
                    {
                        key: [{"destination": target["Destination"]}]
                        for key, target in (
                            ("on_success", destinations.get("OnSuccess") or {}),
                            ("on_failure", destinations.get("OnFailure") or {}),
                        )
                        if target.get("Destination")
                    }
                ]

            self.add_resource(
                self.create_resource(
                    config["FunctionArn"],
                    f"feic_{function_name}",
                    "lambda_function_event_invoke_config",
                    {
                        "function_name": function_name,
                        "maximum_retry_attempts": config.get("MaximumRetryAttempts"),
                        "maximum_event_age_in_seconds": config.get("MaximumEventAgeInSeconds"),
                        "destination_config": destination_config,
                    },
                )
            )

    def load_event_source_mappings(self) -> None:
        """
        Load event source mappings.

        Raises
        ------
        botocore.exceptions.ClientError
            If the mappings cannot be listed.
        """
        self._log("Loading Lambda event source mappings...")
        paginator = self.client("lambda").get_paginator("list_event_source_mappings")

        count = 0
        for page in paginator.paginate():
            for mapping in page.get("EventSourceMappings", []):
                self.add_resource(
                    self.create_resource(
                        mapping["UUID"],
                        mapping["UUID"],
                        "lambda_event_source_mapping",
                        {
                            "event_source_arn": mapping.get("EventSourceArn"),
                            "function_name": mapping.get("FunctionArn"),
                            "batch_size": mapping.get("BatchSize"),
                            "starting_position": mapping.get("StartingPosition"),
                            "enabled": mapping.get("State") in ("Enabled", "Enabling"),
                        },
                    )
                )
                count += 1

        self._log(f"Loaded {count} Lambda event source mappings")

    # =========================================================================
    # Post-Conversion
    # =========================================================================

    def convert(self, discovered: Sequence[Resource]) -> None:
        """Promote environments, drop zero event ages and link functions."""
        by_name = build_index(self._resources, "aws_lambda_function", key="function_name")
        by_arn = build_index(self._resources, "aws_lambda_function", key="arn")
        queues = build_index(discovered, "aws_sqs_queue", key="arn")

        for function in self.resources_of_type("lambda_function"):
            environment = function.remember(
                "environment", function.additional_fields.pop("environment", None)
            )
            variables = (environment or {}).get("Variables")
            if variables:
                function.attributes["environment"] = [{"variables": variables}]

        for config in self.resources_of_type("lambda_function_event_invoke_config"):
            if config.attributes.get("maximum_event_age_in_seconds") == 0:
                drop_fields(config, "maximum_event_age_in_seconds")
            link_reference(config, "function_name", by_name, "function_name")

        for permission in self.resources_of_type("lambda_permission"):
            link_reference(permission, "function_name", by_name, "function_name")

        for mapping in self.resources_of_type("lambda_event_source_mapping"):
            link_reference(mapping, "function_name", by_arn, "arn")
            link_reference(mapping, "event_source_arn", queues, "arn")
