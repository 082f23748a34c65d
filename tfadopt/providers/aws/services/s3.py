"""
S3 Service Module
=================

Discovers S3 buckets together with their bucket policy and versioning
configuration, emitted as separate resources the way the AWS provider
models them.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

from botocore.exceptions import ClientError

from tfadopt.core.base_service import BaseService
from tfadopt.core.references import build_index, link_reference, policy_to_string, wrap_policy
from tfadopt.core.resource import Resource

# Module logger
logger = logging.getLogger(__name__)

# Error codes that only mean "not configured"
NOT_CONFIGURED = ("NoSuchBucketPolicy", "NoSuchTagSet")


class S3Service(BaseService):
    """Discovery adapter for Amazon S3."""

    def init_resources(self) -> None:
        """Load every bucket visible to the account."""
        self.load_buckets()

    def load_buckets(self) -> None:
        """
        Load buckets and their per-bucket settings.

        Raises
        ------
        botocore.exceptions.ClientError
            If the buckets cannot be listed.
        """
        self._log("Loading S3 buckets...")
        s3 = self.client("s3")

        buckets = s3.list_buckets().get("Buckets", [])
        for bucket in buckets:
            bucket_name = bucket["Name"]
            resource = self.create_resource(
                bucket_name,
                bucket_name,
                "s3_bucket",
                {
                    "bucket": bucket_name,
                    "force_destroy": False,
                    "tags": self._bucket_tags(bucket_name),
                },
                {"arn": f"arn:aws:s3:::{bucket_name}"},
            )
            resource.ignore_keys = ["^arn$"]
            self.add_resource(resource)

            self.load_bucket_policy(bucket_name)
            self.load_bucket_versioning(bucket_name)

        self._log(f"Loaded {len(buckets)} S3 buckets")

    def _nested_call(self, operation: str, bucket_name: str) -> Optional[Dict[str, Any]]:
        try:
            return getattr(self.client("s3"), operation)(Bucket=bucket_name)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code not in NOT_CONFIGURED:
                self._log(f"Error in {operation} for {bucket_name}: {e}", "debug")
            return None

    def _bucket_tags(self, bucket_name: str) -> Dict[str, str]:
        response = self._nested_call("get_bucket_tagging", bucket_name) or {}
        return {tag["Key"]: tag["Value"] for tag in response.get("TagSet", [])}

    def load_bucket_policy(self, bucket_name: str) -> None:
        """Add an ``aws_s3_bucket_policy`` when the bucket has a policy."""
        response = self._nested_call("get_bucket_policy", bucket_name)
        if not response or not response.get("Policy"):
            return
        self.add_resource(
            self.create_resource(
                bucket_name,
                bucket_name,
                "s3_bucket_policy",
                {"bucket": bucket_name, "policy": policy_to_string(response["Policy"])},
            )
        )

    def load_bucket_versioning(self, bucket_name: str) -> None:
        """Add an ``aws_s3_bucket_versioning`` when versioning was ever enabled."""
        response = self._nested_call("get_bucket_versioning", bucket_name)
        if not response or not response.get("Status"):
            return
        self.add_resource(
            self.create_resource(
                bucket_name,
                bucket_name,
                "s3_bucket_versioning",
                {
                    "bucket": bucket_name,
                    "versioning_configuration": [{"status": response["Status"]}],
                },
            )
        )

    def convert(self, discovered: Sequence[Resource]) -> None:
        """Wrap bucket policies and link bucket settings to their bucket."""
        buckets = build_index(self._resources, "aws_s3_bucket")

        for policy in self.resources_of_type("s3_bucket_policy"):
            wrap_policy(policy, "policy")
            link_reference(policy, "bucket", buckets)

        for versioning in self.resources_of_type("s3_bucket_versioning"):
            link_reference(versioning, "bucket", buckets)
