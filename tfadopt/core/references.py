"""
Cross-Reference Helpers
=======================

Building blocks for the per-category post-conversion hooks: policy
heredoc wrapping, identifier-to-reference rewriting and conditional field
removal.

Every rewrite is derived from the field's original value, which is
remembered on the resource the first time a hook touches it. Running a
hook twice therefore produces exactly the same output as running it once.

Example
-------
>>> from tfadopt.core.references import build_index, link_reference
>>>
>>> zones = build_index(resources, "aws_route53_zone", key="zone_id")
>>> for record in records:
...     link_reference(record, "zone_id", zones, "zone_id")
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, Optional
from urllib.parse import unquote

from tfadopt.core.resource import Resource

# Module logger
logger = logging.getLogger(__name__)

HEREDOC_MARKER = "POLICY"


def escape_interpolation(text: str) -> str:
    """
    Escape template interpolation markers.

    Example
    -------
    >>> escape_interpolation('{"aws:SourceIp": "${aws:SourceIp}"}')
    '{"aws:SourceIp": "$${aws:SourceIp}"}'
    """
    return text.replace("${", "$${")


def heredoc(text: str, marker: str = HEREDOC_MARKER) -> str:
    """Wrap text in a heredoc block the HCL renderer emits verbatim."""
    return f"<<{marker}\n{text}\n{marker}"


def is_heredoc(value: Any) -> bool:
    """Return True if ``value`` is a string produced by :func:`heredoc`."""
    if not isinstance(value, str) or not value.startswith("<<"):
        return False
    first_line, sep, rest = value.partition("\n")
    marker = first_line[2:]
    if not sep or not marker.isidentifier():
        return False
    return rest == marker or rest.endswith(f"\n{marker}")


def heredoc_body(value: str) -> str:
    """Return the text between a heredoc's opening and closing markers."""
    return value.partition("\n")[2].rpartition("\n")[0]


def policy_to_string(document: Any) -> Optional[str]:
    """
    Normalize a policy document returned by an inspection API to JSON text.

    boto3 already decodes most IAM documents into dicts; some APIs hand
    back URL-encoded JSON strings instead.

    Parameters
    ----------
    document : dict, str or None
        The raw policy document.

    Returns
    -------
    str or None
        Pretty-printed JSON text, or None when there is no document.
    """
    if document is None or document == "":
        return None
    if isinstance(document, (dict, list)):
        return json.dumps(document, indent=2)
    text = str(document)
    if text.lstrip().startswith("%7B"):
        text = unquote(text)
    return text


def wrap_policy(resource: Resource, field_name: str) -> bool:
    """
    Escape and heredoc-wrap a policy attribute in place.

    Parameters
    ----------
    resource : Resource
        Resource owning the policy.
    field_name : str
        Attribute holding the JSON policy text.

    Returns
    -------
    bool
        True if the attribute holds a policy (and was wrapped).
    """
    current = resource.attributes.get(field_name)
    if not current:
        return False
    original = resource.remember(field_name, current)
    if not isinstance(original, str):
        original = policy_to_string(original)
    resource.attributes[field_name] = heredoc(escape_interpolation(original))
    return True


def reference(resource: Resource, exported_field: str) -> str:
    """
    Build a symbolic reference to another resource's exported attribute.

    Example
    -------
    >>> reference(zone, "zone_id")
    '${aws_route53_zone.z123_example_com.zone_id}'
    """
    return "${%s.%s.%s}" % (resource.type, resource.name, exported_field)


def lookup_value(resource: Resource, key: str) -> Any:
    """
    Read a side-channel key from a resource.

    ``id`` addresses the native identifier; any other key is read from
    the resource's additional fields first, then its attributes.
    """
    if key == "id":
        return resource.id
    if key in resource.additional_fields:
        return resource.additional_fields[key]
    return resource.attributes.get(key)


def build_index(
    resources: Iterable[Resource],
    resource_type: str,
    key: str = "id",
) -> Dict[str, Resource]:
    """
    Index resources of one type by a native identifier.

    Parameters
    ----------
    resources : iterable of Resource
        Candidate targets.
    resource_type : str
        Fully qualified type to index.
    key : str, default="id"
        Side-channel key holding the native identifier.

    Returns
    -------
    dict
        Native identifier to resource. The first resource wins when two
        share an identifier.
    """
    index: Dict[str, Resource] = {}
    for resource in resources:
        if resource.type != resource_type:
            continue
        value = lookup_value(resource, key)
        if isinstance(value, str) and value:
            index.setdefault(value, resource)
    return index


def link_reference(
    resource: Resource,
    field_name: str,
    index: Dict[str, Resource],
    exported_field: str = "id",
) -> bool:
    """
    Replace a literal identifier with a reference to an in-set resource.

    Lists are rewritten element-wise. Literals that are not in ``index``
    are left untouched.

    Parameters
    ----------
    resource : Resource
        Resource whose attribute is rewritten.
    field_name : str
        Attribute holding a literal identifier (or list of identifiers).
    index : dict
        Lookup built by :func:`build_index`.
    exported_field : str, default="id"
        Attribute exported by the target resource.

    Returns
    -------
    bool
        True if at least one literal was replaced.
    """
    if field_name not in resource.attributes:
        return False
    original = resource.remember(field_name, resource.attributes[field_name])

    def _resolve(literal: Any) -> Any:
        target = index.get(literal) if isinstance(literal, str) else None
        if target is None or target is resource:
            return literal
        return reference(target, exported_field)

    if isinstance(original, list):
        rewritten = [_resolve(item) for item in original]
    else:
        rewritten = _resolve(original)

    changed = rewritten != original
    if changed:
        logger.debug(f"Linked {resource.address}.{field_name} -> {rewritten}")
    else:
        logger.debug(
            f"No reference target for {resource.address}.{field_name}; kept literal"
        )
    resource.attributes[field_name] = rewritten
    return changed


def drop_fields(resource: Resource, *field_names: str) -> None:
    """Remove attributes from a resource if present."""
    for field_name in field_names:
        resource.attributes.pop(field_name, None)
