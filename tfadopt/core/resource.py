"""
Resource Record Module
======================

Defines :class:`Resource`, the normalized unit every discovery adapter
produces and every renderer consumes.

A resource carries the fields that end up in configuration
(``attributes``), read-only metadata the renderer may promote
(``additional_fields``), and the per-resource rendering policy
(``ignore_keys``, ``allow_empty_values``).

Functions
---------
sanitize_name
    Turn an arbitrary string into a valid local resource symbol.
map_fields
    Apply an explicit native-to-normalized field mapping table.

Example
-------
>>> from tfadopt.core.resource import Resource, sanitize_name
>>>
>>> sanitize_name("Z123_example.com.")
'z123_example_com_'
>>> zone = Resource(
...     id="Z123",
...     type="aws_route53_zone",
...     name="z123_example_com",
...     provider="aws",
...     attributes={"name": "example.com."},
...     additional_fields={"zone_id": "Z123"},
... )
>>> zone.address
'aws_route53_zone.z123_example_com'
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

# Recursive JSON-like value carried in attributes and additional fields
Value = Union[None, str, int, float, bool, List[Any], Dict[str, Any]]

_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_-]")
_LEADING_DIGIT = re.compile(r"^[0-9]")


def sanitize_name(name: str) -> str:
    """
    Convert an arbitrary string into a valid resource name.

    Every character outside ``[a-zA-Z0-9_-]`` becomes ``_``, a leading
    digit is prefixed with ``_`` and the result is lowercased. The
    transformation is idempotent.

    Parameters
    ----------
    name : str
        Raw name (tag value, native identifier, ...).

    Returns
    -------
    str
        Sanitized name matching ``^[_a-z][_a-z0-9-]*$``.

    Examples
    --------
    >>> sanitize_name("My Bucket.prod")
    'my_bucket_prod'
    >>> sanitize_name("1st-queue")
    '_1st-queue'
    >>> sanitize_name("-edge")
    '_-edge'
    """
    sanitized = _INVALID_NAME_CHARS.sub("_", name)
    sanitized = _LEADING_DIGIT.sub(lambda m: "_" + m.group(0), sanitized)
    # '-' is valid inside a name but not as its first character
    if not sanitized or sanitized[0] == "-":
        sanitized = "_" + sanitized
    return sanitized.lower()


def map_fields(
    native: Optional[Mapping[str, Any]],
    field_map: Mapping[str, str],
) -> Dict[str, Any]:
    """
    Project a native API object onto normalized attribute names.

    Parameters
    ----------
    native : mapping or None
        Object returned by the inspection API.
    field_map : mapping
        Native field name to normalized attribute name. Iteration order
        of the table is the order of the result.

    Returns
    -------
    dict
        Normalized fields. Native fields that are missing map to ``None``
        so the renderer's empty-value policy applies uniformly.

    Example
    -------
    >>> map_fields({"Port": 443}, {"Port": "port", "Type": "type"})
    {'port': 443, 'type': None}
    """
    native = native or {}
    return {target: native.get(source) for source, target in field_map.items()}


@dataclass
class Resource:
    """
    Normalized infrastructure resource.

    Parameters
    ----------
    id : str
        Provider-native unique identifier (ARN, physical ID, ...).
    type : str
        Fully qualified resource kind, e.g. ``aws_route53_zone``.
    name : str
        Sanitized local symbol; ``(type, name)`` addresses the resource
        in configuration and state.
    provider : str
        Provider namespace (``aws``).
    attributes : dict
        Fields rendered into configuration and seeded into state.
    additional_fields : dict
        Read-only metadata; merged over ``attributes`` when rendering.
    dependencies : list of str, optional
        Resource addresses the state entry declares.
    ignore_keys : list of str, optional
        Regular expressions; matching keys are dropped from configuration.
    allow_empty_values : list of str, optional
        Regular expressions; matching keys are rendered even when empty.

    Attributes
    ----------
    originals : dict
        First-seen values of fields a post-conversion hook rewrote, so a
        repeated hook derives its output from the same input.
    converted : bool
        Set once a post-conversion hook has processed the resource.
    """

    id: str
    type: str
    name: str
    provider: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    additional_fields: Dict[str, Any] = field(default_factory=dict)
    dependencies: Optional[List[str]] = None
    ignore_keys: Optional[List[str]] = None
    allow_empty_values: Optional[List[str]] = None
    originals: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)
    converted: bool = field(default=False, repr=False, compare=False)

    @property
    def short_type(self) -> str:
        """Resource type without the ``<provider>_`` prefix."""
        prefix = f"{self.provider}_"
        if self.type.startswith(prefix):
            return self.type[len(prefix):]
        return self.type

    @property
    def address(self) -> str:
        """Configuration address ``<type>.<name>``."""
        return f"{self.type}.{self.name}"

    def merged_fields(self) -> Dict[str, Any]:
        """
        Merge attributes and additional fields for rendering.

        Returns
        -------
        dict
            ``attributes`` updated with ``additional_fields``; on a key
            collision the additional field's value wins while the key
            keeps its original position.
        """
        merged = dict(self.attributes)
        merged.update(self.additional_fields)
        return merged

    def remember(self, key: str, value: Any) -> Any:
        """
        Record the original value of a field the first time it is rewritten.

        Returns
        -------
        Any
            The remembered original (which is ``value`` on first call).
        """
        return self.originals.setdefault(key, value)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the resource to a JSON-ready dictionary.

        Returns
        -------
        dict
            The record's public fields; bookkeeping is left out.
        """
        data: Dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "provider": self.provider,
            "attributes": self.attributes,
            "additional_fields": self.additional_fields,
        }
        if self.dependencies is not None:
            data["dependencies"] = self.dependencies
        if self.ignore_keys is not None:
            data["ignore_keys"] = self.ignore_keys
        if self.allow_empty_values is not None:
            data["allow_empty_values"] = self.allow_empty_values
        return data
