"""
State Renderer Module
=====================

Serializes a resource set into a ``terraform.tfstate`` document whose
``(type, name)`` pairs match the configuration written next to it.

Document shape::

    {
      "version": 4,
      "terraform_version": "1.0.0",
      "serial": 1,
      "lineage": "<uuid4>",
      "outputs": {},
      "resources": [
        {
          "mode": "managed",
          "type": "aws_sqs_queue",
          "name": "orders",
          "provider": "provider[\\"registry.terraform.io/hashicorp/aws\\"]",
          "instances": [
            {
              "schema_version": 0,
              "attributes": {...},
              "sensitive_attributes": [],
              "private": "<base64 token>",
              "dependencies": []
            }
          ]
        }
      ]
    }

Instance attributes are the resource's ``attributes`` verbatim; the
configuration inclusion policy does not apply here.
"""

from __future__ import annotations

import base64
import json
import logging
import secrets
import uuid
from pathlib import Path
from typing import Any, Dict, List, Sequence, Union

from tfadopt.core.exceptions import RenderError
from tfadopt.core.resource import Resource

# Module logger
logger = logging.getLogger(__name__)

STATE_FILE_NAME = "terraform.tfstate"
STATE_FORMAT_VERSION = 4
PROVIDER_REGISTRY = "registry.terraform.io/hashicorp"


def provider_address(provider: str) -> str:
    """
    Return the namespaced provider string used in state entries.

    Example
    -------
    >>> provider_address("aws")
    'provider["registry.terraform.io/hashicorp/aws"]'
    """
    return f'provider["{PROVIDER_REGISTRY}/{provider}"]'


def _private_token() -> str:
    return base64.b64encode(secrets.token_bytes(16)).decode("ascii")


class StateRenderer:
    """
    Renderer for the persisted-state snapshot.

    Parameters
    ----------
    terraform_version : str, default="1.0.0"
        Tool version recorded in the document.
    """

    def __init__(self, terraform_version: str = "1.0.0") -> None:
        self.terraform_version = terraform_version

    def build_state(self, resources: Sequence[Resource]) -> Dict[str, Any]:
        """
        Build the state document for a resource list.

        Parameters
        ----------
        resources : sequence of Resource
            Resources in rendering order.

        Returns
        -------
        dict
            A fresh state document (serial 1, new lineage).
        """
        entries: List[Dict[str, Any]] = [
            {
                "mode": "managed",
                "type": resource.type,
                "name": resource.name,
                "provider": provider_address(resource.provider),
                "instances": [
                    {
                        "schema_version": 0,
                        "attributes": resource.attributes,
                        "sensitive_attributes": [],
                        "private": _private_token(),
                        "dependencies": list(resource.dependencies or []),
                    }
                ],
            }
            for resource in resources
        ]

        return {
            "version": STATE_FORMAT_VERSION,
            "terraform_version": self.terraform_version,
            "serial": 1,
            "lineage": str(uuid.uuid4()),
            "outputs": {},
            "resources": entries,
        }

    def write_state(
        self,
        resources: Sequence[Resource],
        output_path: Union[str, Path],
    ) -> str:
        """
        Write ``terraform.tfstate`` into ``output_path``.

        Returns
        -------
        str
            Path of the written file.

        Raises
        ------
        RenderError
            If the file cannot be written.
        """
        path = Path(output_path) / STATE_FILE_NAME
        document = json.dumps(self.build_state(resources), indent=2, default=str)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(document, encoding="utf-8")
        except OSError as e:
            raise RenderError(f"Failed to write state file: {e}", path=str(path)) from e

        logger.debug(f"Wrote state for {len(resources)} resources to {path}")
        return str(path)

    def __repr__(self) -> str:
        """Return string representation."""
        return f"StateRenderer(terraform_version={self.terraform_version!r})"
