"""
Providers Module
================

Provider implementations. Each provider owns a registry of discovery
adapters and the provider block written into generated configuration.
"""

from tfadopt.providers.aws import AWSProvider

__all__ = ["AWSProvider"]
