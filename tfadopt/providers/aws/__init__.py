"""AWS provider and its discovery adapters."""

from tfadopt.providers.aws.provider import AWSProvider

__all__ = ["AWSProvider"]
