"""
Core Infrastructure Components
==============================

This module provides the foundational components for tfadopt:

- :class:`Resource` - The normalized resource record
- :class:`BaseService` / :class:`BaseProvider` - Discovery contracts
- Filter engine and cross-reference helpers
- :class:`AWSClient` - Manages AWS connections and client creation
- :class:`Importer` - Orchestrates an import run
- Exception hierarchy for error handling

Classes
-------
Resource
    Normalized infrastructure resource.
ResourceFilter
    A parsed filter predicate.
BaseService
    Abstract base class for discovery adapters.
BaseProvider
    Abstract base class for providers.
ProviderData
    Provider block and required-provider declarations.
AWSClient
    AWS client wrapper with retry logic and credential management.
AWSProviderConfig
    Connection settings threaded into the AWS client.
Importer
    Sequences adapters, filters, hooks and renderers.
ImportOptions / ImportResult
    Settings and outcome of an import run.

Exceptions
----------
TfAdoptError
    Base exception for all tfadopt errors.
AWSClientError
    Base exception for AWS client errors.
CredentialsError
    Raised when credentials are invalid or missing.
RegionError
    Raised when region is invalid.
ServiceError
    Raised when AWS service access fails.
DiscoveryError
    Raised when a category cannot be discovered.
UnsupportedServiceError
    Raised for unregistered categories.
RenderError
    Raised when output cannot be written.

Example
-------
>>> from tfadopt.core import Importer, ImportOptions
>>> from tfadopt.providers.aws import AWSProvider
>>>
>>> result = Importer(AWSProvider()).import_resources(
...     ImportOptions(resources=["route53"])
... )

See Also
--------
tfadopt.providers : Provider implementations.
tfadopt.renderers : Output writers.
"""

from tfadopt.core.exceptions import (
    AWSClientError,
    CredentialsError,
    DiscoveryError,
    RegionError,
    RenderError,
    ServiceError,
    TfAdoptError,
    UnsupportedServiceError,
)
from tfadopt.core.resource import Resource, map_fields, sanitize_name
from tfadopt.core.filters import ResourceFilter, apply_filters, parse_filter
from tfadopt.core.aws_client import AWSClient, AWSProviderConfig
from tfadopt.core.base_service import BaseService
from tfadopt.core.provider import BaseProvider, ProviderData
from tfadopt.core.importer import ImportOptions, ImportResult, Importer

__all__ = [
    # Resource model
    "Resource",
    "map_fields",
    "sanitize_name",
    # Filters
    "ResourceFilter",
    "apply_filters",
    "parse_filter",
    # Client
    "AWSClient",
    "AWSProviderConfig",
    # Contracts
    "BaseService",
    "BaseProvider",
    "ProviderData",
    # Orchestration
    "Importer",
    "ImportOptions",
    "ImportResult",
    # Exceptions
    "TfAdoptError",
    "AWSClientError",
    "CredentialsError",
    "RegionError",
    "ServiceError",
    "DiscoveryError",
    "UnsupportedServiceError",
    "RenderError",
]
