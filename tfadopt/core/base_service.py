"""
Base Service Module
===================

Provides the abstract base class for all discovery adapters.

An adapter ("service") discovers one resource category through a
provider's read-only inspection API and maps the responses into
:class:`~tfadopt.core.resource.Resource` records. Providers register their
adapters in a category-name to class mapping.

Classes
-------
BaseService
    Abstract base class for discovery adapters.

Example
-------
>>> from tfadopt.core.base_service import BaseService
>>>
>>> class QueueService(BaseService):
...     def init_resources(self) -> None:
...         sqs = self.aws_client.get_client("sqs")
...         for url in sqs.list_queues().get("QueueUrls", []):
...             name = url.rsplit("/", 1)[-1]
...             self.add_resource(
...                 self.create_resource(url, name, "sqs_queue", {"name": name})
...             )

Notes
-----
Top-level loaders must raise on failure so the importer can record the
category as failed. Nested per-parent lookups should log at debug level
and continue instead.

See Also
--------
BaseProvider : Owns the adapter registry.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from tfadopt.core.filters import ResourceFilter, parse_filter
from tfadopt.core.resource import Resource, sanitize_name

# Module logger
logger = logging.getLogger(__name__)


class BaseService(ABC):
    """
    Abstract base class for all discovery adapters.

    Parameters
    ----------
    provider_name : str
        Provider namespace, used as the resource type prefix.
    service_name : str
        Category name this adapter was registered under.
    aws_client : AWSClient, optional
        Client used for inspection API calls.

    Attributes
    ----------
    provider_name : str
        Provider namespace.
    service_name : str
        Category name.
    aws_client : AWSClient or None
        The client instance.
    verbose : bool
        Whether informational messages are logged.
    args : dict
        Free-form adapter arguments.
    """

    def __init__(
        self,
        provider_name: str,
        service_name: str,
        aws_client=None,
    ) -> None:
        """Initialize the service."""
        self.provider_name = provider_name
        self.service_name = service_name
        self.aws_client = aws_client
        self.verbose = False
        self.args: Dict[str, Any] = {}
        self._resources: List[Resource] = []
        logger.debug(f"Initialized {self.__class__.__name__} for {service_name}")

    # =========================================================================
    # Adapter Contract
    # =========================================================================

    @abstractmethod
    def init_resources(self) -> None:
        """
        Discover every resource of this category.

        Raises
        ------
        botocore.exceptions.ClientError
            On any transport, auth or throttling failure. Partial results
            are never returned silently.
        """
        pass

    def parse_filter(self, raw_filter: str) -> List[ResourceFilter]:
        """
        Parse a filter expression with the shared grammar.

        Parameters
        ----------
        raw_filter : str
            Raw expression.

        Returns
        -------
        list of ResourceFilter
            Parsed filters (empty for malformed input).
        """
        return parse_filter(raw_filter)

    def post_convert_hook(self, discovered: Sequence[Resource] = ()) -> None:
        """
        Rewrite cross-references and shape attributes for output.

        Subclasses override :meth:`convert` rather than this method.

        Parameters
        ----------
        discovered : sequence of Resource, optional
            Resources of earlier categories written to the same output
            directory; the only targets a reference may point at outside
            this category.
        """
        self._log(f"Running {self.service_name} post-conversion hook...", "debug")
        self.convert(discovered)
        for resource in self._resources:
            resource.converted = True

    def convert(self, discovered: Sequence[Resource]) -> None:
        """Category-specific post-processing; default does nothing."""
        pass

    # =========================================================================
    # Resource List Management
    # =========================================================================

    def get_resources(self) -> List[Resource]:
        """Return the discovered resources in discovery order."""
        return self._resources

    def set_resources(self, resources: List[Resource]) -> None:
        """Replace the resource list (used after filtering)."""
        self._resources = list(resources)

    def add_resource(self, resource: Resource) -> None:
        """Append a resource."""
        self._resources.append(resource)

    def resources_of_type(self, short_type: str) -> List[Resource]:
        """Return resources whose type is ``<provider>_<short_type>``."""
        full_type = f"{self.provider_name}_{short_type}"
        return [r for r in self._resources if r.type == full_type]

    def create_resource(
        self,
        resource_id: str,
        name: str,
        resource_type: str,
        attributes: Optional[Dict[str, Any]] = None,
        additional_fields: Optional[Dict[str, Any]] = None,
    ) -> Resource:
        """
        Build a resource in this adapter's provider namespace.

        Parameters
        ----------
        resource_id : str
            Provider-native identifier.
        name : str
            Raw name; sanitized before use.
        resource_type : str
            Type without the provider prefix (e.g. ``route53_zone``).
        attributes : dict, optional
            Configuration fields.
        additional_fields : dict, optional
            Read-only metadata fields.

        Returns
        -------
        Resource
            The new resource (not yet added).
        """
        return Resource(
            id=resource_id,
            type=f"{self.provider_name}_{resource_type}",
            name=sanitize_name(name),
            provider=self.provider_name,
            attributes=attributes or {},
            additional_fields=additional_fields or {},
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def client(self, service: str) -> Any:
        """Return the boto3 client for ``service``."""
        return self.aws_client.get_client(service)

    def _log(self, message: str, level: str = "info") -> None:
        """
        Log with the ``[provider:service]`` prefix.

        Info and debug messages are only emitted for verbose adapters.
        """
        if self.verbose or level in ("warning", "error"):
            getattr(logger, level)(
                f"[{self.provider_name}:{self.service_name}] {message}"
            )

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"{self.__class__.__name__}("
            f"service='{self.service_name}', "
            f"resources={len(self._resources)})"
        )
