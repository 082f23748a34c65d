"""
Base Provider Module
====================

Defines the provider abstraction the importer drives: a registry of
discovery adapters keyed by category name, plus the provider-level
metadata rendered into ``provider.tf``.

Classes
-------
ProviderData
    Provider settings and required-provider declarations.
BaseProvider
    Abstract base class for providers.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Type

from tfadopt.core.base_service import BaseService
from tfadopt.core.exceptions import UnsupportedServiceError

# Module logger
logger = logging.getLogger(__name__)


@dataclass
class ProviderData:
    """
    Provider-level configuration rendered into the provider file.

    Parameters
    ----------
    provider : dict
        Provider name to its settings, e.g. ``{"aws": {"region": "..."}}``.
    required_providers : list of dict
        Required-provider declarations, e.g.
        ``[{"aws": {"source": "hashicorp/aws", "version": "~> 5.0"}}]``.
    """

    provider: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    required_providers: List[Dict[str, Dict[str, Any]]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Return the JSON document written as ``provider.json``."""
        data: Dict[str, Any] = {"provider": self.provider}
        if self.required_providers:
            data["terraform"] = {"required_providers": self.required_providers}
        return data


class BaseProvider(ABC):
    """
    Abstract base class for providers.

    Parameters
    ----------
    name : str
        Provider namespace (``aws``).
    """

    def __init__(self, name: str) -> None:
        self.name = name

    @abstractmethod
    def init(self, args: Sequence[str] = ()) -> None:
        """Apply positional overrides before the run starts."""
        pass

    @abstractmethod
    def get_supported_services(self) -> Dict[str, Type[BaseService]]:
        """Return the category name to adapter class registry."""
        pass

    @abstractmethod
    def get_resource_connections(self) -> Dict[str, Dict[str, List[str]]]:
        """Return the informational cross-category field relationships."""
        pass

    @abstractmethod
    def get_provider_data(self) -> ProviderData:
        """Return the provider metadata for the provider file."""
        pass

    @abstractmethod
    def get_config(self) -> Dict[str, Any]:
        """Return provider-level settings."""
        pass

    @abstractmethod
    def create_service(self, service_class: Type[BaseService], service_name: str) -> BaseService:
        """Instantiate an adapter class with this provider's dependencies."""
        pass

    def init_service(self, service_name: str, verbose: bool = False) -> BaseService:
        """
        Instantiate the adapter registered under ``service_name``.

        Parameters
        ----------
        service_name : str
            Category name.
        verbose : bool, default=False
            Whether the adapter logs informational messages.

        Returns
        -------
        BaseService
            A fresh adapter.

        Raises
        ------
        UnsupportedServiceError
            If no adapter is registered under ``service_name``.
        """
        service_class = self.get_supported_services().get(service_name)
        if service_class is None:
            raise UnsupportedServiceError(
                f"{self.name}: {service_name} not supported service",
                details={"provider": self.name, "service": service_name},
            )

        service = self.create_service(service_class, service_name)
        service.verbose = verbose
        return service

    def __repr__(self) -> str:
        """Return string representation."""
        return f"{self.__class__.__name__}(name='{self.name}')"
