"""
AWS Client Module
=================

Provides a wrapper around boto3 for managing AWS connections with
built-in retry logic, credential validation, and explicit configuration.

All settings (region, profile, retries, timeouts) travel in an
:class:`AWSProviderConfig` passed to the client. Nothing here reads from
or writes to the process environment on the caller's behalf.

Classes
-------
AWSProviderConfig
    Explicit connection settings for the AWS provider.
AWSClient
    Main client class for AWS operations.

Example
-------
>>> from tfadopt.core.aws_client import AWSClient, AWSProviderConfig
>>>
>>> config = AWSProviderConfig(region="eu-west-1", profile="production")
>>> client = AWSClient.from_config(config)
>>> client.validate_credentials()
>>> route53 = client.get_client("route53")

See Also
--------
boto3 : AWS SDK for Python
botocore : Low-level AWS client library
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    ClientError,
    NoCredentialsError,
    NoRegionError,
    ProfileNotFound,
)

from tfadopt.core.exceptions import (
    AWSClientError,
    CredentialsError,
    RegionError,
    ServiceError,
)

# Module logger
logger = logging.getLogger(__name__)

# Pseudo-region used for account-global services (IAM, Route53, CloudFront)
GLOBAL_REGION = "aws-global"
GLOBAL_FALLBACK_REGION = "us-east-1"


@dataclass
class AWSProviderConfig:
    """
    Connection settings for the AWS provider.

    Parameters
    ----------
    region : str, default="us-east-1"
        AWS region to connect to. ``aws-global`` selects global services
        and connects through ``us-east-1``.
    profile : str, optional
        AWS profile name from ~/.aws/credentials.
    max_retries : int, default=3
        Maximum number of retries for failed API calls.
    timeout : int, default=30
        Request timeout in seconds.
    """

    region: str = "us-east-1"
    profile: Optional[str] = None
    max_retries: int = 3
    timeout: int = 30

    @property
    def is_global(self) -> bool:
        """True when the configured region is the global pseudo-region."""
        return self.region == GLOBAL_REGION

    @property
    def endpoint_region(self) -> str:
        """Region boto3 should actually connect to."""
        return GLOBAL_FALLBACK_REGION if self.is_global else self.region


class AWSClient:
    """
    AWS client wrapper with retry logic and credential management.

    Provides:
    - Automatic retry with adaptive backoff
    - Credential validation
    - Lazy, cached client initialization per service

    Parameters
    ----------
    region : str, default="us-east-1"
        AWS region to connect to.
    profile : str, optional
        AWS profile name from ~/.aws/credentials.
    max_retries : int, default=3
        Maximum number of retries for failed API calls.
    timeout : int, default=30
        Request timeout in seconds.

    Raises
    ------
    CredentialsError
        If AWS credentials are not found or invalid.
    RegionError
        If the specified region is invalid.
    ServiceError
        If unable to create a client for an AWS service.
    """

    def __init__(
        self,
        region: str = "us-east-1",
        profile: Optional[str] = None,
        max_retries: int = 3,
        timeout: int = 30,
    ) -> None:
        """Initialize AWS client with the specified configuration."""
        self.config = AWSProviderConfig(
            region=region,
            profile=profile,
            max_retries=max_retries,
            timeout=timeout,
        )

        # Lazy-loaded components
        self._session: Optional[boto3.Session] = None
        self._clients: dict[str, Any] = {}

        self._boto_config = self._create_config()

        logger.debug(f"Initialized AWSClient (region={region}, profile={profile})")

    @classmethod
    def from_config(cls, config: AWSProviderConfig) -> AWSClient:
        """
        Create a client from an :class:`AWSProviderConfig`.

        Parameters
        ----------
        config : AWSProviderConfig
            Connection settings.

        Returns
        -------
        AWSClient
            A new client.
        """
        return cls(
            region=config.region,
            profile=config.profile,
            max_retries=config.max_retries,
            timeout=config.timeout,
        )

    @property
    def region(self) -> str:
        """The configured region (may be ``aws-global``)."""
        return self.config.region

    @property
    def profile(self) -> Optional[str]:
        """The configured profile name."""
        return self.config.profile

    @property
    def max_retries(self) -> int:
        """Maximum retry attempts for API calls."""
        return self.config.max_retries

    @property
    def timeout(self) -> int:
        """Request timeout in seconds."""
        return self.config.timeout

    def _create_config(self) -> Config:
        """
        Create boto3 configuration with retry and timeout settings.

        Returns
        -------
        Config
            Boto3 configuration object.

        Notes
        -----
        Uses adaptive retry mode, which also applies client-side rate
        limiting when the inspection APIs start throttling.
        """
        return Config(
            retries={
                "max_attempts": self.config.max_retries,
                "mode": "adaptive",
            },
            connect_timeout=self.config.timeout,
            read_timeout=self.config.timeout,
        )

    @property
    def session(self) -> boto3.Session:
        """
        Get or create the boto3 session (lazy initialization).

        Returns
        -------
        boto3.Session
            The configured AWS session.
        """
        if self._session is None:
            self._session = self._create_session()
        return self._session

    def _create_session(self) -> boto3.Session:
        """
        Create a new boto3 session with the configured profile and region.

        Raises
        ------
        CredentialsError
            If the specified profile is not found.
        RegionError
            If the region is invalid or missing.
        AWSClientError
            For other session creation failures.
        """
        try:
            session_kwargs = {"region_name": self.config.endpoint_region}
            if self.config.profile and self.config.profile != "default":
                session_kwargs["profile_name"] = self.config.profile

            session = boto3.Session(**session_kwargs)
            logger.debug(f"Created boto3 session for region {self.region}")
            return session

        except ProfileNotFound:
            raise CredentialsError(
                f"AWS profile '{self.profile}' not found",
                details={
                    "profile": self.profile,
                    "hint": "Check ~/.aws/credentials for available profiles",
                },
            )
        except NoRegionError:
            raise RegionError(
                f"Invalid or missing region: {self.region}",
                region=self.region,
                details={"hint": "Specify a valid AWS region like 'us-east-1'"},
            )
        except Exception as e:
            logger.exception("Failed to create AWS session")
            raise AWSClientError(
                f"Failed to create AWS session: {e}",
                region=self.region,
            )

    def get_client(self, service_name: str) -> Any:
        """
        Get or create a boto3 client for the specified service.

        Clients are cached, so adapters may call this freely.

        Parameters
        ----------
        service_name : str
            Name of the AWS service (e.g., 'route53', 'iam').

        Returns
        -------
        botocore.client.BaseClient
            The boto3 client for the specified service.

        Raises
        ------
        CredentialsError
            If credentials are not found.
        ServiceError
            If unable to create the client.
        """
        if service_name in self._clients:
            return self._clients[service_name]

        try:
            client = self.session.client(service_name, config=self._boto_config)
            self._clients[service_name] = client
            logger.debug(f"Created {service_name} client for {self.region}")
            return client

        except NoCredentialsError:
            raise CredentialsError(
                "AWS credentials not found",
                details={
                    "hint": (
                        "Configure credentials using 'aws configure' or set "
                        "AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY environment variables"
                    ),
                },
            )
        except AWSClientError:
            raise
        except Exception as e:
            logger.exception(f"Failed to create {service_name} client")
            raise ServiceError(
                f"Failed to create {service_name} client: {e}",
                service=service_name,
                region=self.region,
            )

    # =========================================================================
    # Credential and Account Operations
    # =========================================================================

    def validate_credentials(self) -> bool:
        """
        Validate AWS credentials by calling STS GetCallerIdentity.

        Returns
        -------
        bool
            True if credentials are valid.

        Raises
        ------
        CredentialsError
            If credentials are invalid, expired, or missing.
        """
        try:
            sts = self.get_client("sts")
            identity = sts.get_caller_identity()
            logger.info(f"Credentials validated for {identity['Arn']}")
            return True

        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in ("InvalidClientTokenId", "SignatureDoesNotMatch"):
                raise CredentialsError(
                    "Invalid AWS credentials",
                    details={
                        "error_code": error_code,
                        "hint": "Check your access key and secret key",
                    },
                )
            raise CredentialsError(f"Failed to validate credentials: {e}")

        except CredentialsError:
            raise
        except Exception as e:
            logger.exception("Credential validation failed")
            raise CredentialsError(f"Failed to validate credentials: {e}")

    def get_account_id(self) -> str:
        """
        Get the AWS account ID for the current credentials.

        Returns
        -------
        str
            The 12-digit AWS account ID.

        Raises
        ------
        AWSClientError
            If unable to retrieve the account ID.
        """
        try:
            sts = self.get_client("sts")
            identity = sts.get_caller_identity()
            return identity["Account"]
        except Exception as e:
            logger.exception("Failed to get account ID")
            raise AWSClientError(f"Failed to get account ID: {e}")

    def __repr__(self) -> str:
        """Return string representation of the client."""
        return (
            f"AWSClient(region='{self.region}', "
            f"profile={self.profile!r}, "
            f"max_retries={self.max_retries})"
        )


__all__ = ["AWSClient", "AWSClientError", "AWSProviderConfig"]
