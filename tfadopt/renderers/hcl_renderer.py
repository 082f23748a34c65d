"""
HCL Renderer Module
===================

Serializes a resource set into Terraform configuration, either as HCL
text (``.tf``) or as JSON (``.json``).

Output Layout
-------------
Every output directory receives ``provider.<ext>``, followed by either a
single ``resources.<ext>`` (compact) or one ``<type>.<ext>`` per distinct
resource type.

HCL resource block::

    resource "aws_route53_zone" "z123_example_com" {
      name = "example.com."
      force_destroy = false
    }

JSON resource file::

    {
      "resources": {
        "aws_route53_zone": [ {...}, ... ]
      }
    }

Field Inclusion
---------------
HCL output drops keys matching a resource's ``ignore_keys`` and keys whose
value is ``None`` or ``""`` unless they match ``allow_empty_values``. JSON
output is written unfiltered.

Example
-------
>>> from tfadopt.renderers.hcl_renderer import HclRenderer
>>>
>>> renderer = HclRenderer(output="hcl")
>>> paths = renderer.write_files(resources, provider_data, "generated/aws/route53")
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Sequence, Union

from tfadopt.core.exceptions import RenderError
from tfadopt.core.provider import ProviderData
from tfadopt.core.references import heredoc_body, is_heredoc
from tfadopt.core.resource import Resource

# Module logger
logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("hcl", "json")
INDENT = "  "

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")


def sort_resources(resources: Sequence[Resource]) -> List[Resource]:
    """Return resources ordered by ``(type, name)``; stable for ties."""
    return sorted(resources, key=lambda r: (r.type, r.name))


def group_by_type(resources: Sequence[Resource]) -> Dict[str, List[Resource]]:
    """Group resources by full type, preserving first-appearance order."""
    grouped: Dict[str, List[Resource]] = {}
    for resource in resources:
        grouped.setdefault(resource.type, []).append(resource)
    return grouped


def quote_string(value: str) -> str:
    """
    Quote a string for HCL.

    Example
    -------
    >>> quote_string('say "hi"\\n')
    '"say \\\\"hi\\\\"\\\\n"'
    """
    escaped = value.replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


def _format_key(key: str) -> str:
    if _IDENTIFIER.match(key):
        return key
    return quote_string(key)


def format_value(value: Any, indent: int = 1, top_level: bool = True) -> str:
    """
    Encode a value as an HCL expression.

    Parameters
    ----------
    value : Any
        Scalar, list or mapping (recursively).
    indent : int, default=1
        Nesting depth of the attribute holding the value.
    top_level : bool, default=True
        Whether the value is an attribute's direct value. Heredoc strings
        are emitted raw only there; nested, they are quoted.

    Returns
    -------
    str
        The HCL expression.

    Examples
    --------
    >>> format_value(None)
    'null'
    >>> format_value([1, "a", True])
    '[1, "a", true]'
    >>> print(format_value({"Name": "web", "Env": "prod"}))
    {
        Name = "web",
        Env = "prod"
      }
    """
    if value is None:
        return "null"

    if isinstance(value, bool):
        return "true" if value else "false"

    if isinstance(value, (int, float)):
        return str(value)

    if isinstance(value, str):
        if is_heredoc(value):
            if top_level:
                return value
            return quote_string(heredoc_body(value))
        return quote_string(value)

    if isinstance(value, (list, tuple)):
        items = [format_value(item, indent, top_level=False) for item in value]
        return f"[{', '.join(items)}]"

    if isinstance(value, dict):
        if not value:
            return "{}"
        pad = INDENT * (indent + 1)
        entries = [
            f"{pad}{_format_key(str(k))} = {format_value(v, indent + 1, top_level=False)}"
            for k, v in value.items()
        ]
        return "{\n" + ",\n".join(entries) + "\n" + INDENT * indent + "}"

    return quote_string(str(value))


def should_include(key: str, value: Any, resource: Resource) -> bool:
    """
    Apply the HCL field inclusion policy.

    Parameters
    ----------
    key : str
        Field name.
    value : Any
        Field value.
    resource : Resource
        Owning resource (supplies ``ignore_keys``/``allow_empty_values``).

    Returns
    -------
    bool
        True if the field is rendered.
    """
    if resource.ignore_keys and any(
        re.search(pattern, key) for pattern in resource.ignore_keys
    ):
        return False

    if value is None or value == "":
        return bool(resource.allow_empty_values) and any(
            re.search(pattern, key) for pattern in resource.allow_empty_values
        )

    return True


class HclRenderer:
    """
    Renderer for Terraform configuration files.

    Parameters
    ----------
    output : {"hcl", "json"}, default="hcl"
        Encoding of the generated files.

    Attributes
    ----------
    output : str
        The configured encoding.
    extension : str
        File extension matching the encoding (``tf`` or ``json``).

    Raises
    ------
    ValueError
        If ``output`` is not a supported encoding.
    """

    def __init__(self, output: str = "hcl") -> None:
        """Initialize the renderer for one encoding."""
        if output not in OUTPUT_FORMATS:
            raise ValueError(
                f"Unsupported output format {output!r}; expected one of {OUTPUT_FORMATS}"
            )
        self.output = output
        self.extension = "tf" if output == "hcl" else "json"
        logger.debug(f"Initialized HclRenderer (output={output})")

    # =========================================================================
    # File Output
    # =========================================================================

    def write_files(
        self,
        resources: Sequence[Resource],
        provider_data: ProviderData,
        output_path: Union[str, Path],
        compact: bool = False,
    ) -> List[str]:
        """
        Write provider and resource files into ``output_path``.

        Parameters
        ----------
        resources : sequence of Resource
            Resources in the order they should appear.
        provider_data : ProviderData
            Provider metadata for the provider file.
        output_path : str or Path
            Target directory (created if missing).
        compact : bool, default=False
            One ``resources.<ext>`` file instead of one file per type.

        Returns
        -------
        list of str
            Paths of the written files.

        Raises
        ------
        RenderError
            If the directory or a file cannot be written.
        """
        directory = Path(output_path)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise RenderError(
                f"Failed to create output directory: {e}", path=str(directory)
            ) from e

        written = [
            self._write(
                directory / f"provider.{self.extension}",
                self.render_provider(provider_data),
            )
        ]

        if compact:
            written.append(
                self._write(
                    directory / f"resources.{self.extension}",
                    self.render_resources(resources),
                )
            )
        else:
            for resource_type, typed in group_by_type(resources).items():
                written.append(
                    self._write(
                        directory / f"{resource_type}.{self.extension}",
                        self.render_resources(typed),
                    )
                )

        logger.debug(f"Wrote {len(written)} configuration files to {directory}")
        return written

    def _write(self, path: Path, content: str) -> str:
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise RenderError(f"Failed to write {path.name}: {e}", path=str(path)) from e
        return str(path)

    # =========================================================================
    # Rendering
    # =========================================================================

    def render_provider(self, provider_data: ProviderData) -> str:
        """
        Render the provider file content.

        Parameters
        ----------
        provider_data : ProviderData
            Provider metadata.

        Returns
        -------
        str
            HCL text or JSON document.
        """
        if self.output == "json":
            return json.dumps(provider_data.to_dict(), indent=2, default=str)

        lines: List[str] = []
        if provider_data.required_providers:
            lines.append("terraform {")
            lines.append(f"{INDENT}required_providers {{")
            for declaration in provider_data.required_providers:
                for name, settings in declaration.items():
                    lines.append(f"{INDENT * 2}{name} = {{")
                    for key, value in settings.items():
                        if value is None or value == "":
                            continue
                        lines.append(f"{INDENT * 3}{key} = {format_value(value, 3)}")
                    lines.append(f"{INDENT * 2}}}")
            lines.append(f"{INDENT}}}")
            lines.append("}")
            lines.append("")

        for name, settings in provider_data.provider.items():
            lines.append(f'provider "{name}" {{')
            for key, value in settings.items():
                lines.append(f"{INDENT}{key} = {format_value(value)}")
            lines.append("}")
            lines.append("")

        return "\n".join(lines) + ("\n" if lines else "")

    def render_resources(self, resources: Sequence[Resource]) -> str:
        """
        Render resource blocks (HCL) or a resources document (JSON).

        Parameters
        ----------
        resources : sequence of Resource
            Resources to render.

        Returns
        -------
        str
            File content.
        """
        grouped = group_by_type(resources)

        if self.output == "json":
            document = {
                "resources": {
                    resource_type: [r.to_dict() for r in typed]
                    for resource_type, typed in grouped.items()
                }
            }
            return json.dumps(document, indent=2, default=str)

        blocks: List[str] = []
        for typed in grouped.values():
            for resource in typed:
                blocks.append(self.render_resource(resource))
        return "".join(blocks)

    def render_resource(self, resource: Resource) -> str:
        """Render one HCL ``resource`` block followed by a blank line."""
        lines = [f'resource "{resource.type}" "{resource.name}" {{']
        for key, value in resource.merged_fields().items():
            if should_include(key, value, resource):
                lines.append(f"{INDENT}{key} = {format_value(value)}")
        lines.append("}")
        return "\n".join(lines) + "\n\n"

    def __repr__(self) -> str:
        """Return string representation."""
        return f"HclRenderer(output={self.output!r})"
