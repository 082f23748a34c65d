"""
Pytest configuration and shared fixtures for testing.
"""

import boto3
import pytest
from moto import mock_aws

from tfadopt.core.aws_client import AWSClient
from tfadopt.core.resource import Resource


@pytest.fixture
def aws_credentials():
    """Mock AWS credentials for moto."""
    import os

    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"


@pytest.fixture
def mock_aws_environment(aws_credentials):
    """Create a mocked AWS environment."""
    with mock_aws():
        yield


@pytest.fixture
def aws_client(mock_aws_environment):
    """Create an AWSClient instance for testing."""
    return AWSClient(region="us-east-1")


@pytest.fixture
def ec2_client(mock_aws_environment):
    """Create a boto3 EC2 client for setting up test resources."""
    return boto3.client("ec2", region_name="us-east-1")


@pytest.fixture
def route53_client(mock_aws_environment):
    """Create a boto3 Route53 client for setting up test resources."""
    return boto3.client("route53", region_name="us-east-1")


@pytest.fixture
def iam_client(mock_aws_environment):
    """Create a boto3 IAM client for setting up test resources."""
    return boto3.client("iam", region_name="us-east-1")


@pytest.fixture
def sqs_client(mock_aws_environment):
    """Create a boto3 SQS client for setting up test resources."""
    return boto3.client("sqs", region_name="us-east-1")


@pytest.fixture
def sns_client(mock_aws_environment):
    """Create a boto3 SNS client for setting up test resources."""
    return boto3.client("sns", region_name="us-east-1")


@pytest.fixture
def s3_client(mock_aws_environment):
    """Create a boto3 S3 client for setting up test resources."""
    return boto3.client("s3", region_name="us-east-1")


@pytest.fixture
def dynamodb_client(mock_aws_environment):
    """Create a boto3 DynamoDB client for setting up test resources."""
    return boto3.client("dynamodb", region_name="us-east-1")


@pytest.fixture
def kinesis_client(mock_aws_environment):
    """Create a boto3 Kinesis client for setting up test resources."""
    return boto3.client("kinesis", region_name="us-east-1")


@pytest.fixture
def kms_client(mock_aws_environment):
    """Create a boto3 KMS client for setting up test resources."""
    return boto3.client("kms", region_name="us-east-1")


@pytest.fixture
def secretsmanager_client(mock_aws_environment):
    """Create a boto3 Secrets Manager client for setting up test resources."""
    return boto3.client("secretsmanager", region_name="us-east-1")


@pytest.fixture
def logs_client(mock_aws_environment):
    """Create a boto3 CloudWatch Logs client for setting up test resources."""
    return boto3.client("logs", region_name="us-east-1")


@pytest.fixture
def cloudwatch_client(mock_aws_environment):
    """Create a boto3 CloudWatch client for setting up test resources."""
    return boto3.client("cloudwatch", region_name="us-east-1")


@pytest.fixture
def elb_client(mock_aws_environment):
    """Create a boto3 classic ELB client for setting up test resources."""
    return boto3.client("elb", region_name="us-east-1")


@pytest.fixture
def elbv2_client(mock_aws_environment):
    """Create a boto3 ELBv2 client for setting up test resources."""
    return boto3.client("elbv2", region_name="us-east-1")


@pytest.fixture
def vpc(ec2_client):
    """Create a VPC for testing."""
    response = ec2_client.create_vpc(CidrBlock="10.0.0.0/16")
    return response["Vpc"]["VpcId"]


@pytest.fixture
def subnet(ec2_client, vpc):
    """Create a subnet for testing."""
    response = ec2_client.create_subnet(
        VpcId=vpc,
        CidrBlock="10.0.1.0/24",
        AvailabilityZone="us-east-1a",
    )
    return response["Subnet"]["SubnetId"]


@pytest.fixture
def security_group(ec2_client, vpc):
    """Create a security group for testing."""
    response = ec2_client.create_security_group(
        GroupName="test-sg",
        Description="Test security group",
        VpcId=vpc,
    )
    return response["GroupId"]


@pytest.fixture
def hosted_zone(route53_client):
    """Create a hosted zone with one A record; returns the bare zone ID."""
    response = route53_client.create_hosted_zone(
        Name="example.com.",
        CallerReference="test-zone",
        HostedZoneConfig={"Comment": "test zone", "PrivateZone": False},
    )
    zone_id = response["HostedZone"]["Id"].replace("/hostedzone/", "")
    route53_client.change_resource_record_sets(
        HostedZoneId=zone_id,
        ChangeBatch={
            "Changes": [
                {
                    "Action": "CREATE",
                    "ResourceRecordSet": {
                        "Name": "www.example.com.",
                        "Type": "A",
                        "TTL": 300,
                        "ResourceRecords": [{"Value": "192.0.2.10"}],
                    },
                }
            ]
        },
    )
    return zone_id


@pytest.fixture
def zone_resource():
    """A hosted zone record as the Route53 adapter produces it."""
    return Resource(
        id="Z123",
        type="aws_route53_zone",
        name="z123_example_com",
        provider="aws",
        attributes={"name": "example.com.", "force_destroy": False},
        additional_fields={"zone_id": "Z123"},
        ignore_keys=["^zone_id$"],
    )


@pytest.fixture
def record_resource():
    """A DNS record pointing at zone Z123."""
    return Resource(
        id="Z123_www.example.com_A",
        type="aws_route53_record",
        name="z123_www_example_com_a",
        provider="aws",
        attributes={
            "name": "www.example.com",
            "zone_id": "Z123",
            "type": "A",
            "ttl": 300,
            "records": ["192.0.2.10"],
        },
    )


@pytest.fixture
def queue_resource():
    """An SQS queue carrying a policy with an interpolation marker."""
    return Resource(
        id="https://sqs.us-east-1.amazonaws.com/123456789012/orders",
        type="aws_sqs_queue",
        name="orders",
        provider="aws",
        attributes={
            "name": "orders",
            "visibility_timeout_seconds": 30,
            "policy": '{"Condition": {"StringEquals": {"aws:SourceArn": "${arn}"}}}',
            "kms_master_key_id": None,
        },
        additional_fields={"arn": "arn:aws:sqs:us-east-1:123456789012:orders"},
        ignore_keys=["^arn$"],
    )
