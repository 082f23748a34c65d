"""
AWS Provider Module
===================

Registers the AWS discovery adapters and produces the ``aws`` provider
block for generated configuration.

Example
-------
>>> from tfadopt.core.aws_client import AWSProviderConfig
>>> from tfadopt.providers.aws import AWSProvider
>>>
>>> provider = AWSProvider(AWSProviderConfig(region="eu-west-1"))
>>> provider.init(["eu-central-1", "prod"])
>>> provider.get_provider_data().provider
{'aws': {'region': 'eu-central-1', 'profile': 'prod'}}
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence, Type

from tfadopt.core.aws_client import (
    GLOBAL_FALLBACK_REGION,
    AWSClient,
    AWSProviderConfig,
)
from tfadopt.core.base_service import BaseService
from tfadopt.core.provider import BaseProvider, ProviderData
from tfadopt.providers.aws.services import (
    ALBService,
    CloudWatchLogsService,
    CloudWatchService,
    DynamoDBService,
    EC2Service,
    ELBService,
    IAMService,
    KinesisService,
    KMSService,
    LambdaService,
    RDSService,
    Route53Service,
    S3Service,
    SecretsManagerService,
    SNSService,
    SQSService,
)

# Module logger
logger = logging.getLogger(__name__)

REQUIRED_PROVIDER = {"source": "hashicorp/aws", "version": "~> 5.0"}

# Category -> referenced category -> [field, exported attribute, ...]
RESOURCE_CONNECTIONS: Dict[str, Dict[str, List[str]]] = {
    "alb": {
        "sg": ["security_groups", "id"],
        "subnet": ["subnets", "id"],
        "alb": ["load_balancer_arn", "arn", "default_action.target_group_arn", "arn"],
    },
    "auto_scaling": {
        "sg": ["security_groups", "id"],
        "subnet": ["vpc_zone_identifier", "id"],
    },
    "ec2_instance": {
        "sg": ["vpc_security_group_ids", "id"],
        "subnet": ["subnet_id", "id"],
        "ebs": ["ebs_block_device", "id"],
    },
    "ebs": {},
    "elb": {
        "sg": ["security_groups", "id"],
        "subnet": ["subnets", "id"],
    },
    "iam": {
        "iam": ["policy_arn", "arn"],
    },
    "kinesis": {
        "kinesis": ["stream_arn", "arn"],
    },
    "kms": {
        "kms": ["target_key_id", "key_id"],
    },
    "lambda": {
        "subnet": ["vpc_config.subnet_ids", "id"],
        "sg": ["vpc_config.security_group_ids", "id"],
    },
    "logs": {
        "logs": ["log_group_name", "name"],
    },
    "rds": {
        "subnet": ["subnet_ids", "id"],
        "sg": ["vpc_security_group_ids", "id"],
    },
    "route53": {
        "route53": ["zone_id", "zone_id"],
    },
    "secretsmanager": {
        "secretsmanager": ["secret_arn", "arn", "secret_id", "id"],
    },
    "sns": {
        "sns": ["topic_arn", "id"],
        "sqs": ["endpoint", "arn"],
    },
    "sg": {
        "sg": [
            "egress.security_groups", "id",
            "ingress.security_groups", "id",
            "security_group_id", "id",
            "source_security_group_id", "id",
        ],
    },
    "subnet": {
        "vpc": ["vpc_id", "id"],
    },
}


class AWSProvider(BaseProvider):
    """
    Provider for Amazon Web Services.

    Parameters
    ----------
    config : AWSProviderConfig, optional
        Connection settings; defaults to ``us-east-1`` with the default
        credential chain.

    Attributes
    ----------
    config : AWSProviderConfig
        Settings every adapter client is built from.
    """

    SERVICES: Dict[str, Type[BaseService]] = {
        "ec2": EC2Service,
        "s3": S3Service,
        "iam": IAMService,
        "rds": RDSService,
        "lambda": LambdaService,
        "route53": Route53Service,
        "elb": ELBService,
        "alb": ALBService,
        "kinesis": KinesisService,
        "sns": SNSService,
        "sqs": SQSService,
        "dynamodb": DynamoDBService,
        "cloudwatch": CloudWatchService,
        "logs": CloudWatchLogsService,
        "secretsmanager": SecretsManagerService,
        "kms": KMSService,
    }

    def __init__(self, config: Optional[AWSProviderConfig] = None) -> None:
        super().__init__("aws")
        self.config = config or AWSProviderConfig()
        self._client: Optional[AWSClient] = None

    def init(self, args: Sequence[str] = ()) -> None:
        """
        Apply positional overrides: ``[region, [profile]]``.

        Parameters
        ----------
        args : sequence of str
            Optional region and profile.
        """
        if len(args) > 0 and args[0]:
            self.config = replace(self.config, region=args[0])
        if len(args) > 1 and args[1]:
            self.config = replace(self.config, profile=args[1])
        self._client = None
        logger.debug(
            f"AWS provider initialized (region={self.config.region}, "
            f"profile={self.config.profile})"
        )

    @property
    def client(self) -> AWSClient:
        """Shared client for every adapter in the run (lazy)."""
        if self._client is None:
            self._client = AWSClient.from_config(self.config)
        return self._client

    def get_supported_services(self) -> Dict[str, Type[BaseService]]:
        """Return the category registry."""
        return dict(self.SERVICES)

    def get_resource_connections(self) -> Dict[str, Dict[str, List[str]]]:
        """Return the cross-category field relationships."""
        return RESOURCE_CONNECTIONS

    def get_provider_data(self) -> ProviderData:
        """
        Build the ``aws`` provider block.

        The global pseudo-region renders as ``us-east-1``; the default
        profile is omitted.
        """
        settings: Dict[str, Any] = {}
        if self.config.is_global:
            settings["region"] = GLOBAL_FALLBACK_REGION
        elif self.config.region:
            settings["region"] = self.config.region

        if self.config.profile and self.config.profile != "default":
            settings["profile"] = self.config.profile

        return ProviderData(
            provider={"aws": settings},
            required_providers=[{"aws": dict(REQUIRED_PROVIDER)}],
        )

    def get_config(self) -> Dict[str, Any]:
        """Return provider-level settings."""
        config: Dict[str, Any] = {"skip_region_validation": True}
        if not self.config.is_global:
            config["region"] = self.config.region
        return config

    def create_service(self, service_class: Type[BaseService], service_name: str) -> BaseService:
        """Instantiate an adapter bound to the shared client."""
        return service_class(self.name, service_name, aws_client=self.client)
