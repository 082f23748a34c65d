"""
KMS Service Module
==================

Discovers customer managed KMS keys and their aliases. AWS managed keys
and ``alias/aws/*`` aliases are skipped; they cannot be managed.

Post-Conversion
---------------
- Key policies are wrapped in a heredoc.
- Alias ``target_key_id`` is linked to the in-set key.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

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

AWS_MANAGED_ALIAS_PREFIX = "alias/aws/"
SKIPPED_KEY_STATES = ("PendingDeletion", "PendingReplicaDeletion")


class KMSService(BaseService):
    """Discovery adapter for AWS KMS."""

    def init_resources(self) -> None:
        """Load keys, then aliases pointing at them."""
        self.load_keys()
        self.load_aliases()

    def load_keys(self) -> None:
        """
        Load customer managed keys.

        Raises
        ------
        botocore.exceptions.ClientError
            If the keys cannot be listed.
        """
        self._log("Loading KMS keys...")
        kms = self.client("kms")

        count = 0
        for page in kms.get_paginator("list_keys").paginate():
            for key in page.get("Keys", []):
                metadata = kms.describe_key(KeyId=key["KeyId"])["KeyMetadata"]
                if metadata.get("KeyManager") != "CUSTOMER":
                    continue
                if metadata.get("KeyState") in SKIPPED_KEY_STATES:
                    continue
                self.add_resource(self._key_resource(metadata))
                count += 1

        self._log(f"Loaded {count} KMS keys")

    def _key_resource(self, metadata: Dict[str, Any]) -> Resource:
        key_id = metadata["KeyId"]
        resource = self.create_resource(
            key_id,
            key_id,
            "kms_key",
            {
                "description": metadata.get("Description"),
                "key_usage": metadata.get("KeyUsage"),
                "customer_master_key_spec": metadata.get("KeySpec")
                or metadata.get("CustomerMasterKeySpec"),
                "is_enabled": metadata.get("Enabled", True),
                "multi_region": metadata.get("MultiRegion", False),
                "enable_key_rotation": self._rotation_enabled(key_id),
                "policy": policy_to_string(self._key_policy(key_id)),
                "tags": self._tags(key_id),
            },
            {"arn": metadata.get("Arn"), "key_id": key_id},
        )
        resource.ignore_keys = ["^arn$", "^key_id$"]
        return resource

    def _rotation_enabled(self, key_id: str) -> Optional[bool]:
        try:
            response = self.client("kms").get_key_rotation_status(KeyId=key_id)
        except ClientError as e:
            self._log(f"Error fetching rotation status for {key_id}: {e}", "debug")
            return None
        return response.get("KeyRotationEnabled", False)

    def _key_policy(self, key_id: str) -> Optional[str]:
        try:
            response = self.client("kms").get_key_policy(KeyId=key_id, PolicyName="default")
        except ClientError as e:
            self._log(f"Error fetching policy for {key_id}: {e}", "debug")
            return None
        return response.get("Policy")

    def _tags(self, key_id: str) -> Dict[str, str]:
        try:
            response = self.client("kms").list_resource_tags(KeyId=key_id)
        except ClientError as e:
            self._log(f"Error fetching tags for {key_id}: {e}", "debug")
            return {}
        return {tag["TagKey"]: tag["TagValue"] for tag in response.get("Tags", [])}

    def load_aliases(self) -> None:
        """
        Load aliases of customer managed keys.

        Raises
        ------
        botocore.exceptions.ClientError
            If the aliases cannot be listed.
        """
        self._log("Loading KMS aliases...")
        kms = self.client("kms")

        count = 0
        for page in kms.get_paginator("list_aliases").paginate():
            for alias in page.get("Aliases", []):
                alias_name = alias["AliasName"]
                if alias_name.startswith(AWS_MANAGED_ALIAS_PREFIX):
                    continue
                if not alias.get("TargetKeyId"):
                    continue

                resource = self.create_resource(
                    alias_name,
                    alias_name[len("alias/"):],
                    "kms_alias",
                    {"name": alias_name, "target_key_id": alias["TargetKeyId"]},
                    {"arn": alias.get("AliasArn")},
                )
                resource.ignore_keys = ["^arn$"]
                self.add_resource(resource)
                count += 1

        self._log(f"Loaded {count} KMS aliases")

    def convert(self, discovered: Sequence[Resource]) -> None:
        """Wrap key policies and link aliases to their keys."""
        keys = build_index(self._resources, "aws_kms_key", key="key_id")

        for key in self.resources_of_type("kms_key"):
            wrap_policy(key, "policy")

        for alias in self.resources_of_type("kms_alias"):
            link_reference(alias, "target_key_id", keys, "key_id")
