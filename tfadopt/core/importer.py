"""
Importer Module
===============

Orchestrates an import run: sequences the discovery adapters of one
provider, applies filters and post-conversion hooks, and writes the
configuration and state of every category into the directory its path
pattern resolves to.

This module handles:
- Selecting categories from the requested and excluded lists
- Running each category in order, one at a time
- Isolating category failures (unless the run is verbose)
- Writing output per category as soon as it is processed
- Merging categories whose path pattern resolves to the same directory

Classes
-------
ImportOptions
    Settings of a single import run.
ImportResult
    Outcome of an import run.
Importer
    Drives a provider through an import run.

Example
-------
>>> from tfadopt.core.importer import Importer, ImportOptions
>>> from tfadopt.providers.aws import AWSProvider
>>>
>>> importer = Importer(AWSProvider())
>>> result = importer.import_resources(
...     ImportOptions(resources=["route53", "sqs"], path_output="generated")
... )
>>> print(f"Imported {result.total_resources} resources")

Notes
-----
Categories run sequentially so progress stays deterministic and outbound
requests stay within per-account rate limits.

A post-conversion hook only sees the resources of earlier categories
written to the same directory, since a reference is only valid where its
target is declared. With the default pattern every category has its own
directory and identifiers of other categories stay literal. A pattern
without ``{service}`` (e.g. ``{output}/{provider}``) puts every category
in one directory; its configuration and state then hold the union of
those categories, and referenced categories should be listed first
(e.g. ``sqs`` before ``sns``).

See Also
--------
BaseProvider : Supplies the adapter registry.
HclRenderer : Writes configuration files.
StateRenderer : Writes the state file.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from tfadopt.core.exceptions import DiscoveryError, RenderError, UnsupportedServiceError
from tfadopt.core.filters import apply_filters
from tfadopt.core.logging import LogContext
from tfadopt.core.provider import BaseProvider
from tfadopt.core.resource import Resource
from tfadopt.renderers.hcl_renderer import HclRenderer, sort_resources
from tfadopt.renderers.state_renderer import StateRenderer

# Module logger
logger = logging.getLogger(__name__)

DEFAULT_PATH_PATTERN = "{output}/{provider}/{service}/"
PLAN_VERSION = "1.0.0"

ProgressCallback = Callable[[str, int, int], None]


@dataclass
class ImportOptions:
    """
    Settings of a single import run.

    Parameters
    ----------
    resources : list of str
        Categories to import; empty or ``["*"]`` selects all.
    excludes : list of str
        Categories to skip.
    path_output : str, default="generated"
        Output root.
    path_pattern : str
        Directory template with ``{output}``, ``{provider}`` and
        ``{service}`` placeholders.
    filters : list of str
        Raw filter expressions, combined with logical AND.
    compact : bool, default=False
        One resources file per category instead of one per type.
    output : {"hcl", "json"}, default="hcl"
        Configuration encoding.
    no_sort : bool, default=False
        Keep discovery order instead of sorting by ``(type, name)``.
    verbose : bool, default=False
        Log adapter details and abort on the first category failure.
    """

    resources: List[str] = field(default_factory=list)
    excludes: List[str] = field(default_factory=list)
    path_output: str = "generated"
    path_pattern: str = DEFAULT_PATH_PATTERN
    filters: List[str] = field(default_factory=list)
    compact: bool = False
    output: str = "hcl"
    no_sort: bool = False
    verbose: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-ready mapping of the options."""
        return asdict(self)


@dataclass
class ImportResult:
    """
    Outcome of an import run.

    Parameters
    ----------
    provider : str
        Provider name.
    services : list of str
        Categories the run selected, in processing order.
    resources_by_service : dict
        Category to the resources written for it.
    output_paths : dict
        Category to the files written for it.
    errors : dict
        Category to the error message of its failure.
    start_time : datetime
        When the run started.
    end_time : datetime, optional
        When the run finished.
    """

    provider: str
    services: List[str] = field(default_factory=list)
    resources_by_service: Dict[str, List[Resource]] = field(default_factory=dict)
    output_paths: Dict[str, List[str]] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None

    @property
    def total_resources(self) -> int:
        """Number of resources written across all categories."""
        return sum(len(r) for r in self.resources_by_service.values())

    @property
    def has_errors(self) -> bool:
        """True if any category failed."""
        return len(self.errors) > 0

    @property
    def failed_services(self) -> List[str]:
        """Categories that failed."""
        return list(self.errors.keys())

    @property
    def duration(self) -> float:
        """Run duration in seconds (0.0 while running)."""
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to dictionary for serialization.

        Returns
        -------
        dict
            Summary with per-category resource addresses.
        """
        return {
            "provider": self.provider,
            "services": self.services,
            "total_resources": self.total_resources,
            "resources_by_service": {
                service: [r.address for r in resources]
                for service, resources in self.resources_by_service.items()
            },
            "output_paths": self.output_paths,
            "errors": self.errors,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_seconds": round(self.duration, 3),
        }

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"ImportResult(provider='{self.provider}', "
            f"services={len(self.services)}, "
            f"resources={self.total_resources}, "
            f"errors={len(self.errors)})"
        )


def filter_services(
    requested: Sequence[str],
    available: Sequence[str],
    excludes: Sequence[str] = (),
) -> List[str]:
    """
    Select the categories of a run.

    Parameters
    ----------
    requested : sequence of str
        Requested categories; empty or containing ``*`` selects every
        available category in registry order.
    available : sequence of str
        Registered categories.
    excludes : sequence of str, optional
        Categories to drop.

    Returns
    -------
    list of str
        Categories in processing order, without duplicates. Explicitly
        requested names are kept even when unregistered so the caller can
        reject them.

    Examples
    --------
    >>> filter_services(["sqs", "sns"], ["ec2", "sns", "sqs"])
    ['sqs', 'sns']
    >>> filter_services(["*"], ["ec2", "sns", "sqs"], excludes=["ec2"])
    ['sns', 'sqs']
    """
    if not requested or "*" in requested:
        selected = list(available)
    else:
        selected = [name for name in requested if name]

    ordered: List[str] = []
    for name in selected:
        if name not in excludes and name not in ordered:
            ordered.append(name)
    return ordered


def resolve_path_pattern(pattern: str, **variables: str) -> str:
    """
    Substitute ``{name}`` placeholders in a path template.

    Unknown placeholders are left as they are.

    Example
    -------
    >>> resolve_path_pattern("{output}/{provider}/{service}/", output="gen",
    ...                      provider="aws", service="sqs")
    'gen/aws/sqs/'
    """
    resolved = pattern
    for key, value in variables.items():
        resolved = resolved.replace(f"{{{key}}}", value)
    return resolved


class Importer:
    """
    Drives a provider through an import run.

    Parameters
    ----------
    provider : BaseProvider
        Provider whose adapters are run.
    state_renderer : StateRenderer, optional
        State writer; a default one is created if omitted.

    Examples
    --------
    With progress tracking:

    >>> def on_progress(message, current, total):
    ...     print(f"[{current}/{total}] {message}")
    ...
    >>> result = importer.import_resources(options, progress_callback=on_progress)
    """

    def __init__(
        self,
        provider: BaseProvider,
        state_renderer: Optional[StateRenderer] = None,
    ) -> None:
        """Initialize the importer for one provider."""
        self.provider = provider
        self.state_renderer = state_renderer or StateRenderer()
        logger.debug(f"Initialized Importer for provider {provider.name}")

    # =========================================================================
    # Import
    # =========================================================================

    def import_resources(
        self,
        options: ImportOptions,
        progress_callback: Optional[ProgressCallback] = None,
        args: Sequence[str] = (),
    ) -> ImportResult:
        """
        Run an import.

        Parameters
        ----------
        options : ImportOptions
            Run settings.
        progress_callback : callable, optional
            Called with ``(message, current, total)`` before each category.
        args : sequence of str, optional
            Positional provider overrides passed to ``provider.init``.

        Returns
        -------
        ImportResult
            Written resources, output paths and category errors.

        Raises
        ------
        UnsupportedServiceError
            If a requested category is not registered.
        RenderError
            If output cannot be written.
        DiscoveryError
            The first category failure, when ``options.verbose`` is set.
        """
        self.provider.init(args)
        renderer = HclRenderer(output=options.output)

        services = filter_services(
            options.resources,
            list(self.provider.get_supported_services()),
            options.excludes,
        )
        self._check_supported(services)

        result = ImportResult(provider=self.provider.name, services=services)
        written_by_directory: Dict[str, List[Resource]] = {}
        logger.info(f"Importing services: {', '.join(services)}")

        for index, service_name in enumerate(services, start=1):
            if progress_callback:
                progress_callback(f"Importing {service_name}...", index, len(services))

            output_path = resolve_path_pattern(
                options.path_pattern,
                output=options.path_output,
                provider=self.provider.name,
                service=service_name,
            )
            directory = written_by_directory.setdefault(str(Path(output_path)), [])

            try:
                resources = self._run_service(service_name, options, list(directory))
            except (UnsupportedServiceError, RenderError):
                raise
            except Exception as e:
                logger.error(f"Failed to import {service_name}: {e}")
                result.errors[service_name] = str(e)
                if options.verbose:
                    raise DiscoveryError(
                        f"Failed to import {service_name}: {e}", service=service_name
                    ) from e
                continue

            directory.extend(resources)
            merged = list(directory) if options.no_sort else sort_resources(directory)
            result.output_paths[service_name] = self.write_service(
                merged, output_path, renderer, options.compact
            )
            result.resources_by_service[service_name] = resources
            logger.info(f"Imported {len(resources)} resources from {service_name}")

        result.end_time = datetime.now()
        logger.info(
            f"Import complete: {result.total_resources} resources from "
            f"{len(result.resources_by_service)} services"
        )
        return result

    def _check_supported(self, services: Sequence[str]) -> None:
        supported = self.provider.get_supported_services()
        for service_name in services:
            if service_name not in supported:
                raise UnsupportedServiceError(
                    f"{self.provider.name}: {service_name} not supported service",
                    details={"provider": self.provider.name, "service": service_name},
                )

    def _run_service(
        self,
        service_name: str,
        options: ImportOptions,
        discovered: Sequence[Resource],
    ) -> List[Resource]:
        """Discover, filter, convert and sort one category."""
        service = self.provider.init_service(service_name, verbose=options.verbose)

        if options.verbose:
            with LogContext(logging.getLogger("tfadopt"), "DEBUG"):
                service.init_resources()
        else:
            service.init_resources()

        filters = []
        for raw_filter in options.filters:
            filters.extend(service.parse_filter(raw_filter))
        if filters:
            service.set_resources(apply_filters(service.get_resources(), filters, service_name))

        service.post_convert_hook(discovered)

        resources = list(service.get_resources())
        if not options.no_sort:
            resources = sort_resources(resources)
        return resources

    def write_service(
        self,
        resources: Sequence[Resource],
        output_path: str,
        renderer: HclRenderer,
        compact: bool = False,
    ) -> List[str]:
        """
        Write configuration and state of one output directory.

        Both projections are written from the same list, so every
        configuration address has a state entry and vice versa.

        Returns
        -------
        list of str
            Paths of the written files.
        """
        written = renderer.write_files(
            resources, self.provider.get_provider_data(), output_path, compact
        )
        written.append(self.state_renderer.write_state(resources, output_path))
        return written

    # =========================================================================
    # Planning and Introspection
    # =========================================================================

    def plan(self, options: ImportOptions, args: Sequence[str] = ()) -> str:
        """
        Write a plan file describing a run without discovering anything.

        Returns
        -------
        str
            Path of ``<output>/<provider>/plan.json``.

        Raises
        ------
        RenderError
            If the plan file cannot be written.
        """
        logger.info(f"Generating plan for provider: {self.provider.name}")
        plan_data = {
            "version": PLAN_VERSION,
            "provider": self.provider.name,
            "options": options.to_dict(),
            "args": list(args),
            "services": filter_services(
                options.resources,
                list(self.provider.get_supported_services()),
                options.excludes,
            ),
            "imported_resources": {},
        }

        plan_path = Path(options.path_output) / self.provider.name / "plan.json"
        try:
            plan_path.parent.mkdir(parents=True, exist_ok=True)
            plan_path.write_text(json.dumps(plan_data, indent=2), encoding="utf-8")
        except OSError as e:
            raise RenderError(f"Failed to write plan: {e}", path=str(plan_path)) from e

        logger.info(f"Plan saved to: {plan_path}")
        return str(plan_path)

    def get_supported_services(self) -> List[str]:
        """Return the registered category names."""
        return list(self.provider.get_supported_services())

    def get_resource_connections(self) -> Dict[str, Dict[str, List[str]]]:
        """Return the provider's cross-category field relationships."""
        return self.provider.get_resource_connections()

    def __repr__(self) -> str:
        """Return string representation."""
        return f"Importer(provider='{self.provider.name}')"
