"""
tfadopt: Adopt Existing Cloud Resources into Terraform
======================================================

Discovers live cloud resources and writes Terraform configuration plus a
matching ``terraform.tfstate`` so existing infrastructure can be brought
under management without recreating it.

Modules
-------
core
    Resource model, filter engine, cross-reference helpers, AWS client
    and the importer
providers
    Provider implementations and their discovery adapters
renderers
    Configuration (HCL/JSON) and state writers

Example
-------
>>> from tfadopt import Importer, ImportOptions
>>> from tfadopt.providers.aws import AWSProvider
>>>
>>> importer = Importer(AWSProvider())
>>> result = importer.import_resources(ImportOptions(resources=["sqs", "sns"]))
>>> print(f"Imported {result.total_resources} resources")

Notes
-----
Requires AWS credentials configured via:
- Environment variables (AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY)
- AWS credentials file (~/.aws/credentials)
- IAM role (when running on AWS infrastructure)

See Also
--------
boto3 : AWS SDK for Python
"""

__version__ = "0.1.0"
__author__ = "tfadopt Team"
__license__ = "MIT"

# Public API
from tfadopt.core.aws_client import AWSClient, AWSProviderConfig
from tfadopt.core.importer import ImportOptions, ImportResult, Importer
from tfadopt.core.resource import Resource

__all__ = [
    # Version info
    "__version__",
    "__author__",
    "__license__",
    # Core classes
    "AWSClient",
    "AWSProviderConfig",
    "Importer",
    "ImportOptions",
    "ImportResult",
    "Resource",
]
