"""
Filter Engine Module
====================

Parses filter expressions and decides which discovered resources survive
into the generated configuration.

Expression Grammar
------------------
Identifier-list form::

    <category>=<id1>:<id2>:...

Applies to resources of ``<category>`` (empty category means all) and
accepts a resource iff its ``id`` is listed.

Field form::

    Type=<category>;Name=<field.path>;Value=<v1>:<v2>:...

Any clause may be omitted. ``Name`` walks dotted paths into nested
mappings (fanning out over lists). Without a ``Value`` clause the
acceptable set is empty and no applicable resource passes.

Expressions without ``=`` are malformed and produce no filter; parsing
never raises.

Example
-------
>>> from tfadopt.core.filters import parse_filter, apply_filters
>>>
>>> filters = parse_filter("route53=Z123:Z456")
>>> kept = apply_filters(resources, filters, category="route53")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Sequence

from tfadopt.core.resource import Resource

# Module logger
logger = logging.getLogger(__name__)

_RECORD_FIELDS = ("id", "type", "name", "provider")
_FIELD_CLAUSES = ("Type", "Name", "Value")


@dataclass
class ResourceFilter:
    """
    A single parsed filter predicate.

    Parameters
    ----------
    category : str
        Category (or short resource type) the filter applies to;
        ``''`` applies to everything.
    field_path : str
        Dotted path of the examined field.
    acceptable_values : list of str
        Values that let a resource pass.
    """

    category: str = ""
    field_path: str = "id"
    acceptable_values: List[str] = field(default_factory=list)

    def is_applicable(self, resource_category: str) -> bool:
        """Return True if this filter applies to ``resource_category``."""
        return self.category == "" or self.category == resource_category

    def accepts(self, resource: Resource) -> bool:
        """Return True if the resource's value at ``field_path`` is acceptable."""
        values = get_field_values(resource, self.field_path)
        return any(v in self.acceptable_values for v in values)


def _is_field_form(raw_filter: str) -> bool:
    return any(
        clause.partition("=")[0].strip() in _FIELD_CLAUSES
        for clause in raw_filter.split(";")
    )


def parse_filter(raw_filter: str) -> List[ResourceFilter]:
    """
    Parse a raw filter expression.

    Parameters
    ----------
    raw_filter : str
        Expression in identifier-list or field form.

    Returns
    -------
    list of ResourceFilter
        Zero or one filters. Malformed input yields an empty list.

    Examples
    --------
    >>> parse_filter("ec2=i-1:i-2")
    [ResourceFilter(category='ec2', field_path='id', acceptable_values=['i-1', 'i-2'])]
    >>> parse_filter("Type=ec2;Name=instance_type")
    [ResourceFilter(category='ec2', field_path='instance_type', acceptable_values=[])]
    >>> parse_filter("garbage")
    []
    """
    raw_filter = (raw_filter or "").strip()
    if "=" not in raw_filter:
        logger.debug(f"Ignoring malformed filter expression: {raw_filter!r}")
        return []

    if not _is_field_form(raw_filter):
        category, _, ids = raw_filter.partition("=")
        return [
            ResourceFilter(
                category=category,
                field_path="id",
                acceptable_values=ids.split(":"),
            )
        ]

    category = ""
    field_path = "id"
    acceptable_values: List[str] = []
    for clause in raw_filter.split(";"):
        key, sep, value = clause.partition("=")
        if not sep:
            continue
        key = key.strip()
        if key == "Type":
            category = value
        elif key == "Name":
            field_path = value
        elif key == "Value":
            acceptable_values = value.split(":")

    return [
        ResourceFilter(
            category=category,
            field_path=field_path,
            acceptable_values=acceptable_values,
        )
    ]


def parse_filters(raw_filters: Iterable[str]) -> List[ResourceFilter]:
    """Parse several expressions into one flat list of filters."""
    parsed: List[ResourceFilter] = []
    for raw in raw_filters:
        parsed.extend(parse_filter(raw))
    return parsed


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _collect(value: Any, segments: Sequence[str]) -> List[str]:
    if isinstance(value, list):
        collected: List[str] = []
        for item in value:
            collected.extend(_collect(item, segments))
        return collected
    if not segments:
        if value is None or isinstance(value, dict):
            return []
        return [_stringify(value)]
    if not isinstance(value, dict) or segments[0] not in value:
        return []
    return _collect(value[segments[0]], segments[1:])


def get_field_values(resource: Resource, field_path: str) -> List[str]:
    """
    Resolve a dotted field path on a resource.

    ``id``, ``type``, ``name`` and ``provider`` address the record itself.
    Anything else is looked up in the merged attributes, descending into
    mappings and fanning out over lists.

    Parameters
    ----------
    resource : Resource
        The resource to inspect.
    field_path : str
        Dotted path, e.g. ``network_configuration.subnets``.

    Returns
    -------
    list of str
        Every leaf value found, stringified. Empty if the path is absent.
    """
    if field_path in _RECORD_FIELDS:
        return [getattr(resource, field_path)]
    return _collect(resource.merged_fields(), field_path.split("."))


def resource_passes(
    resource: Resource,
    filters: Sequence[ResourceFilter],
    category: str,
) -> bool:
    """
    Decide whether a resource survives all filters.

    A filter that applies neither to ``category`` nor to the resource's
    short type passes vacuously. Filters are combined with logical AND.

    Parameters
    ----------
    resource : Resource
        Candidate resource.
    filters : sequence of ResourceFilter
        Parsed filters.
    category : str
        Category (service name) that discovered the resource.

    Returns
    -------
    bool
        True if the resource should be kept.
    """
    for resource_filter in filters:
        applicable = resource_filter.is_applicable(
            category
        ) or resource_filter.is_applicable(resource.short_type)
        if applicable and not resource_filter.accepts(resource):
            return False
    return True


def apply_filters(
    resources: Sequence[Resource],
    filters: Sequence[ResourceFilter],
    category: str,
) -> List[Resource]:
    """
    Return the resources that pass every filter, in their original order.

    Resources are never mutated.
    """
    if not filters:
        return list(resources)

    kept = [r for r in resources if resource_passes(r, filters, category)]
    logger.debug(
        f"Filters kept {len(kept)}/{len(resources)} resources in {category}"
    )
    return kept
