"""
Renderers Module
================

Writers for the two projections of a resource set.

Classes
-------
HclRenderer
    Terraform configuration in HCL or JSON encoding.
StateRenderer
    ``terraform.tfstate`` snapshot with matching resource addresses.
"""

from tfadopt.renderers.hcl_renderer import HclRenderer, sort_resources
from tfadopt.renderers.state_renderer import StateRenderer

__all__ = ["HclRenderer", "StateRenderer", "sort_resources"]
