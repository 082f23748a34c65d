"""
Secrets Manager Service Module
==============================

Discovers secrets, their resource policies and rotation settings. Secret
values are never read; only the ``aws_secretsmanager_secret`` container
is adopted.

Post-Conversion
---------------
- Resource policies are wrapped in a heredoc.
- ``secret_id`` of policies and rotations is linked to the in-set secret.
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
from tfadopt.core.resource import Resource

# Module logger
logger = logging.getLogger(__name__)


class SecretsManagerService(BaseService):
    """Discovery adapter for AWS Secrets Manager."""

    def init_resources(self) -> None:
        """Load secrets with their policies and rotations."""
        self.load_secrets()

    def load_secrets(self) -> None:
        """
        Load secrets.

        Raises
        ------
        botocore.exceptions.ClientError
            If the secrets cannot be listed.
        """
        self._log("Loading Secrets Manager secrets...")
        paginator = self.client("secretsmanager").get_paginator("list_secrets")

        count = 0
        for page in paginator.paginate():
            for secret in page.get("SecretList", []):
                if secret.get("DeletedDate"):
                    continue
                self.add_resource(self._secret_resource(secret))
                self.load_secret_policy(secret)
                if secret.get("RotationEnabled"):
                    self.add_resource(self._rotation_resource(secret))
                count += 1

        self._log(f"Loaded {count} secrets")

    def _secret_resource(self, secret: Dict[str, Any]) -> Resource:
        resource = self.create_resource(
            secret["ARN"],
            secret["Name"],
            "secretsmanager_secret",
            {
                "name": secret["Name"],
                "description": secret.get("Description"),
                "kms_key_id": secret.get("KmsKeyId"),
                "tags": {tag["Key"]: tag["Value"] for tag in secret.get("Tags", [])},
            },
            {"arn": secret["ARN"]},
        )
        resource.ignore_keys = ["^arn$"]
        return resource

    def _rotation_resource(self, secret: Dict[str, Any]) -> Resource:
        rules = secret.get("RotationRules") or {}
        return self.create_resource(
            secret["ARN"],
            secret["Name"],
            "secretsmanager_secret_rotation",
            {
                "secret_id": secret["ARN"],
                "rotation_lambda_arn": secret.get("RotationLambdaARN"),
                "rotation_rules": [
                    {
                        "automatically_after_days": rules.get("AutomaticallyAfterDays"),
                        "schedule_expression": rules.get("ScheduleExpression"),
                    }
                ],
            },
        )

    def load_secret_policy(self, secret: Dict[str, Any]) -> None:
        """Add an ``aws_secretsmanager_secret_policy`` when one is attached."""
        try:
            response = self.client("secretsmanager").get_resource_policy(
                SecretId=secret["ARN"]
            )
        except ClientError as e:
            self._log(f"Error fetching policy for {secret['Name']}: {e}", "debug")
            return

        policy = policy_to_string(response.get("ResourcePolicy"))
        if not policy:
            return
        self.add_resource(
            self.create_resource(
                secret["ARN"],
                secret["Name"],
                "secretsmanager_secret_policy",
                {"secret_arn": secret["ARN"], "policy": policy},
            )
        )

    def convert(self, discovered: Sequence[Resource]) -> None:
        """Wrap policies and link them and rotations to their secrets."""
        secrets = build_index(self._resources, "aws_secretsmanager_secret", key="arn")

        for policy in self.resources_of_type("secretsmanager_secret_policy"):
            wrap_policy(policy, "policy")
            link_reference(policy, "secret_arn", secrets, "arn")

        for rotation in self.resources_of_type("secretsmanager_secret_rotation"):
            link_reference(rotation, "secret_id", secrets, "id")
