"""
Custom Exceptions for tfadopt
=============================

This module defines the exception hierarchy used throughout the
application for consistent error handling and reporting.

Exception Hierarchy
-------------------
::

    TfAdoptError (base)
    ├── AWSClientError
    │   ├── CredentialsError
    │   ├── RegionError
    │   └── ServiceError
    ├── DiscoveryError
    ├── UnsupportedServiceError
    └── RenderError

Example
-------
>>> from tfadopt.core.exceptions import DiscoveryError, TfAdoptError
>>>
>>> try:
...     importer.import_resources(options)
... except DiscoveryError as e:
...     print(f"Service {e.service} failed: {e}")
... except TfAdoptError as e:
...     print(f"Import failed: {e}")
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class TfAdoptError(Exception):
    """
    Base exception for all tfadopt errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    details : dict, optional
        Additional context about the error.

    Attributes
    ----------
    message : str
        The error message.
    details : dict
        Additional error details.
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for serialization.

        Returns
        -------
        dict
            Dictionary representation of the error.
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


# =============================================================================
# AWS Client Exceptions
# =============================================================================


class AWSClientError(TfAdoptError):
    """
    Base exception for AWS client-related errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    service : str, optional
        The AWS service that caused the error.
    region : str, optional
        The AWS region where the error occurred.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        region: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.service = service
        self.region = region
        full_details = details or {}
        if service:
            full_details["service"] = service
        if region:
            full_details["region"] = region
        super().__init__(message, full_details)


class CredentialsError(AWSClientError):
    """Raised when AWS credentials are invalid, missing, or expired."""

    pass


class RegionError(AWSClientError):
    """Raised when there's an issue with the specified AWS region."""

    pass


class ServiceError(AWSClientError):
    """Raised when a boto3 client for a service cannot be created."""

    pass


# =============================================================================
# Pipeline Exceptions
# =============================================================================


class DiscoveryError(TfAdoptError):
    """
    Raised when a discovery adapter fails to load its category.

    The importer catches this per category: the run continues with the
    remaining categories unless it is verbose.

    Parameters
    ----------
    message : str
        Human-readable error message.
    service : str, optional
        The category (service) whose discovery failed.
    details : dict, optional
        Additional context about the error.

    Example
    -------
    >>> raise DiscoveryError(
    ...     "Failed to list hosted zones",
    ...     service="route53",
    ...     details={"error_code": "Throttling"},
    ... )
    """

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.service = service
        full_details = details or {}
        if service:
            full_details["service"] = service
        super().__init__(message, full_details)


class UnsupportedServiceError(TfAdoptError):
    """
    Raised when a category name is not registered with the provider.

    Example
    -------
    >>> raise UnsupportedServiceError(
    ...     "aws: kinesis not supported service",
    ...     details={"provider": "aws", "service": "kinesis"},
    ... )
    """

    pass


class RenderError(TfAdoptError):
    """
    Raised when configuration or state output cannot be written.

    Never caught inside the pipeline: partial output on disk must not be
    mistaken for a complete import.

    Parameters
    ----------
    message : str
        Human-readable error message.
    path : str, optional
        The file that could not be written.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.path = path
        full_details = details or {}
        if path:
            full_details["path"] = path
        super().__init__(message, full_details)
