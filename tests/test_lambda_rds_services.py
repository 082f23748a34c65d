"""
Tests for the Lambda and RDS post-conversion hooks.

Resources are built by hand; the hooks only look at the records.
"""

import pytest

from tfadopt.core.resource import Resource
from tfadopt.providers.aws.services import LambdaService, RDSService

QUEUE_ARN = "arn:aws:sqs:us-east-1:123456789012:jobs"
FUNCTION_ARN = "arn:aws:lambda:us-east-1:123456789012:function:worker"


def make(resource_type, name, attributes, additional_fields=None, resource_id=None):
    """Build an AWS resource for hook tests."""
    return Resource(
        id=resource_id or name,
        type=resource_type,
        name=name,
        provider="aws",
        attributes=attributes,
        additional_fields=additional_fields or {},
    )


@pytest.fixture
def queue():
    return make("aws_sqs_queue", "jobs", {"name": "jobs"}, {"arn": QUEUE_ARN})


@pytest.fixture
def lambda_service():
    """A Lambda adapter holding a function and its satellites."""
    service = LambdaService("aws", "lambda")
    service.set_resources(
        [
            make(
                "aws_lambda_function",
                "worker",
                {"function_name": "worker", "runtime": "python3.12"},
                {"arn": FUNCTION_ARN, "environment": {"Variables": {"STAGE": "prod"}}},
                resource_id=FUNCTION_ARN,
            ),
            make(
                "aws_lambda_permission",
                "worker_allow_s3",
                {"statement_id": "allow_s3", "function_name": "worker"},
            ),
            make(
                "aws_lambda_function_event_invoke_config",
                "feic_worker",
                {
                    "function_name": "worker",
                    "maximum_retry_attempts": 1,
                    "maximum_event_age_in_seconds": 0,
                },
            ),
            make(
                "aws_lambda_event_source_mapping",
                "uuid-1",
                {"event_source_arn": QUEUE_ARN, "function_name": FUNCTION_ARN},
            ),
        ]
    )
    return service


class TestLambdaConvert:
    """Tests for LambdaService.convert."""

    def test_environment_promoted(self, lambda_service):
        """Test that API environments become configuration blocks."""
        lambda_service.post_convert_hook()
        (function,) = lambda_service.resources_of_type("lambda_function")
        assert function.attributes["environment"] == [{"variables": {"STAGE": "prod"}}]
        assert "environment" not in function.additional_fields

    def test_zero_event_age_dropped(self, lambda_service):
        """Test that a zero maximum event age is removed."""
        lambda_service.post_convert_hook()
        (config,) = lambda_service.resources_of_type("lambda_function_event_invoke_config")
        assert "maximum_event_age_in_seconds" not in config.attributes
        assert config.attributes["maximum_retry_attempts"] == 1

    def test_function_references(self, lambda_service, queue):
        """Test that satellites reference the function and queues in the same directory."""
        lambda_service.post_convert_hook([queue])

        (permission,) = lambda_service.resources_of_type("lambda_permission")
        assert permission.attributes["function_name"] == (
            "${aws_lambda_function.worker.function_name}"
        )
        (mapping,) = lambda_service.resources_of_type("lambda_event_source_mapping")
        assert mapping.attributes["function_name"] == "${aws_lambda_function.worker.arn}"
        assert mapping.attributes["event_source_arn"] == "${aws_sqs_queue.jobs.arn}"

    def test_idempotent(self, lambda_service, queue):
        """Test that running the hook twice changes nothing further."""
        lambda_service.post_convert_hook([queue])
        once = [r.to_dict() for r in lambda_service.get_resources()]
        lambda_service.post_convert_hook([queue])
        assert [r.to_dict() for r in lambda_service.get_resources()] == once


class TestRDSConvert:
    """Tests for RDSService.convert."""

    @pytest.fixture
    def rds_service(self):
        service = RDSService("aws", "rds")
        service.set_resources(
            [
                make(
                    "aws_db_subnet_group",
                    "main",
                    {"name": "main", "subnet_ids": ["subnet-1", "subnet-2"]},
                ),
                make(
                    "aws_db_instance",
                    "orders",
                    {
                        "identifier": "orders",
                        "storage_type": "gp2",
                        "iops": 3000,
                        "storage_throughput": 125,
                        "db_subnet_group_name": "main",
                        "vpc_security_group_ids": ["sg-1"],
                    },
                ),
            ]
        )
        return service

    def test_storage_settings_pruned(self, rds_service):
        """Test that gp2 instances lose iops and throughput."""
        rds_service.post_convert_hook()
        (instance,) = rds_service.resources_of_type("db_instance")
        assert "iops" not in instance.attributes
        assert "storage_throughput" not in instance.attributes

    def test_links(self, rds_service):
        """Test subnet group references and network links within a shared directory."""
        discovered = [
            make("aws_subnet", "subnet-1", {}),
            make("aws_security_group", "app_sg-1", {}, resource_id="sg-1"),
        ]
        rds_service.post_convert_hook(discovered)

        (instance,) = rds_service.resources_of_type("db_instance")
        assert instance.attributes["db_subnet_group_name"] == (
            "${aws_db_subnet_group.main.name}"
        )
        assert instance.attributes["vpc_security_group_ids"] == [
            "${aws_security_group.app_sg-1.id}"
        ]
        (group,) = rds_service.resources_of_type("db_subnet_group")
        assert group.attributes["subnet_ids"] == ["${aws_subnet.subnet-1.id}", "subnet-2"]
