"""
AWS Discovery Adapters
======================

One adapter per resource category.

Classes
-------
ALBService
    Elastic Load Balancing v2 load balancers, listeners and target groups.
CloudWatchLogsService
    Log groups and metric filters.
CloudWatchService
    Metric alarms and dashboards.
DynamoDBService
    Tables.
EC2Service
    Instances, VPCs, subnets, security groups and EBS volumes.
ELBService
    Classic load balancers.
IAMService
    Users, groups, policies, roles and instance profiles.
KinesisService
    Data streams and stream consumers.
KMSService
    Customer managed keys and aliases.
LambdaService
    Functions, permissions, invoke configs and event source mappings.
RDSService
    DB instances, clusters and subnet groups.
Route53Service
    Hosted zones, records and health checks.
S3Service
    Buckets, bucket policies and versioning.
SecretsManagerService
    Secrets, secret policies and rotations.
SNSService
    Topics and subscriptions.
SQSService
    Queues.
"""

from tfadopt.providers.aws.services.cloudwatch import CloudWatchService
from tfadopt.providers.aws.services.dynamodb import DynamoDBService
from tfadopt.providers.aws.services.ec2 import EC2Service
from tfadopt.providers.aws.services.elb import ALBService, ELBService
from tfadopt.providers.aws.services.iam import IAMService
from tfadopt.providers.aws.services.kinesis import KinesisService
from tfadopt.providers.aws.services.kms import KMSService
from tfadopt.providers.aws.services.lambda_ import LambdaService
from tfadopt.providers.aws.services.logs import CloudWatchLogsService
from tfadopt.providers.aws.services.rds import RDSService
from tfadopt.providers.aws.services.route53 import Route53Service
from tfadopt.providers.aws.services.s3 import S3Service
from tfadopt.providers.aws.services.secretsmanager import SecretsManagerService
from tfadopt.providers.aws.services.sns import SNSService
from tfadopt.providers.aws.services.sqs import SQSService

__all__ = [
    "ALBService",
    "CloudWatchLogsService",
    "CloudWatchService",
    "DynamoDBService",
    "EC2Service",
    "ELBService",
    "IAMService",
    "KinesisService",
    "KMSService",
    "LambdaService",
    "RDSService",
    "Route53Service",
    "S3Service",
    "SecretsManagerService",
    "SNSService",
    "SQSService",
]
