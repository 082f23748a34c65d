"""
Tests for the Importer module.
"""

import json

import hcl2
import pytest

from tfadopt.core.base_service import BaseService
from tfadopt.core.exceptions import DiscoveryError, UnsupportedServiceError
from tfadopt.core.importer import (
    ImportOptions,
    ImportResult,
    Importer,
    filter_services,
    resolve_path_pattern,
)
from tfadopt.core.provider import BaseProvider, ProviderData
from tfadopt.core.resource import Resource


class ZoneService(BaseService):
    """Produces two zones and a record, deliberately out of order."""

    def init_resources(self):
        for zone_id, name in (("Z2", "b.example"), ("Z1", "a.example")):
            zone = self.create_resource(
                zone_id, f"{zone_id}_{name}", "zone", {"name": name}, {"zone_id": zone_id}
            )
            zone.ignore_keys = ["^zone_id$"]
            self.add_resource(zone)
        self.add_resource(
            self.create_resource(
                "Z1_www", "Z1_www", "record", {"zone_id": "Z1", "ttl": 60, "alias": None}
            )
        )

    def convert(self, discovered):
        from tfadopt.core.references import build_index, link_reference

        zones = build_index(self.get_resources(), "fake_zone", key="zone_id")
        for record in self.resources_of_type("record"):
            link_reference(record, "zone_id", zones, "zone_id")


class QueueService(BaseService):
    """Produces one queue with an ARN side-channel."""

    def init_resources(self):
        self.add_resource(
            self.create_resource("q1", "jobs", "queue", {"name": "jobs"}, {"arn": "arn:q1"})
        )


class TopicService(BaseService):
    """Produces a subscription pointing at a queue of an earlier category."""

    seen = None

    def init_resources(self):
        self.add_resource(
            self.create_resource("s1", "s1", "subscription", {"endpoint": "arn:q1"})
        )

    def convert(self, discovered):
        from tfadopt.core.references import build_index, link_reference

        TopicService.seen = [r.address for r in discovered]
        queues = build_index(discovered, "fake_queue", key="arn")
        for subscription in self.get_resources():
            link_reference(subscription, "endpoint", queues, "arn")


class BrokenService(BaseService):
    """Fails during discovery."""

    def init_resources(self):
        raise RuntimeError("throttled")


class FakeProvider(BaseProvider):
    """Minimal provider with in-memory adapters."""

    SERVICES = {
        "zones": ZoneService,
        "queues": QueueService,
        "topics": TopicService,
        "broken": BrokenService,
    }

    def __init__(self):
        super().__init__("fake")
        self.init_args = None

    def init(self, args=()):
        self.init_args = list(args)

    def get_supported_services(self):
        return dict(self.SERVICES)

    def get_resource_connections(self):
        return {"topics": {"queues": ["endpoint", "arn"]}}

    def get_provider_data(self):
        return ProviderData(provider={"fake": {"region": "local"}})

    def get_config(self):
        return {}

    def create_service(self, service_class, service_name):
        return service_class(self.name, service_name)


@pytest.fixture
def importer():
    return Importer(FakeProvider())


def options_for(tmp_path, **kwargs):
    return ImportOptions(path_output=str(tmp_path / "generated"), **kwargs)


class TestHelpers:
    """Tests for category selection and path templates."""

    def test_filter_services_keeps_requested_order(self):
        """Test that explicit requests keep their order."""
        assert filter_services(["sqs", "sns"], ["ec2", "sns", "sqs"]) == ["sqs", "sns"]

    def test_filter_services_wildcard_and_excludes(self):
        """Test '*' selection with exclusions."""
        assert filter_services(["*"], ["ec2", "sns", "sqs"], ["ec2"]) == ["sns", "sqs"]
        assert filter_services([], ["ec2", "sns"]) == ["ec2", "sns"]

    def test_filter_services_dedupes_and_keeps_unknown(self):
        """Test duplicates are dropped and unknown names kept for rejection."""
        assert filter_services(["sqs", "nope", "sqs"], ["sqs"]) == ["sqs", "nope"]

    def test_resolve_path_pattern(self):
        """Test placeholder substitution."""
        assert (
            resolve_path_pattern("{output}/{provider}/{service}/", output="gen", provider="aws", service="sqs")
            == "gen/aws/sqs/"
        )
        assert resolve_path_pattern("{output}/{region}", output="gen") == "gen/{region}"


class TestImporter:
    """Tests for Importer runs."""

    def test_import_writes_config_and_state(self, importer, tmp_path):
        """Test that each category gets provider, type files and state."""
        result = importer.import_resources(options_for(tmp_path, resources=["zones"]))

        assert isinstance(result, ImportResult)
        assert result.total_resources == 3
        assert not result.has_errors
        assert result.end_time is not None

        directory = tmp_path / "generated" / "fake" / "zones"
        assert sorted(p.name for p in directory.iterdir()) == [
            "fake_record.tf",
            "fake_zone.tf",
            "provider.tf",
            "terraform.tfstate",
        ]

    def test_config_and_state_addresses_match(self, importer, tmp_path):
        """Test that configuration and state hold the same addresses in the same order."""
        importer.import_resources(options_for(tmp_path, resources=["zones"], compact=True))
        directory = tmp_path / "generated" / "fake" / "zones"

        config = (directory / "resources.tf").read_text()
        parsed = hcl2.loads(config)
        config_addresses = []
        for block in parsed["resource"]:
            for resource_type, named in block.items():
                for name in named:
                    config_addresses.append(f"{resource_type.strip(chr(34))}.{name.strip(chr(34))}")

        state = json.loads((directory / "terraform.tfstate").read_text())
        state_addresses = [f"{e['type']}.{e['name']}" for e in state["resources"]]

        assert config_addresses == state_addresses
        assert state_addresses == ["fake_record.z1_www", "fake_zone.z1_a_example", "fake_zone.z2_b_example"]

    def test_no_sort_keeps_discovery_order(self, importer, tmp_path):
        """Test that no_sort preserves the adapter's order."""
        result = importer.import_resources(
            options_for(tmp_path, resources=["zones"], no_sort=True)
        )
        assert [r.name for r in result.resources_by_service["zones"]] == [
            "z2_b_example",
            "z1_a_example",
            "z1_www",
        ]

    def test_rendered_fields(self, importer, tmp_path):
        """Test ignore keys, empty values and references in the written file."""
        importer.import_resources(options_for(tmp_path, resources=["zones"]))
        directory = tmp_path / "generated" / "fake" / "zones"

        record = (directory / "fake_record.tf").read_text()
        assert 'zone_id = "${fake_zone.z1_a_example.zone_id}"' in record
        assert "alias" not in record
        assert "zone_id" not in (directory / "fake_zone.tf").read_text()

        state = json.loads((directory / "terraform.tfstate").read_text())
        record_entry = next(e for e in state["resources"] if e["type"] == "fake_record")
        assert record_entry["instances"][0]["attributes"]["alias"] is None

    def test_filters_applied(self, importer, tmp_path):
        """Test that filters narrow the written resources."""
        result = importer.import_resources(
            options_for(tmp_path, resources=["zones"], filters=["zones=Z1:Z1_www"])
        )
        assert sorted(r.id for r in result.resources_by_service["zones"]) == ["Z1", "Z1_www"]

    def test_json_output(self, importer, tmp_path):
        """Test JSON configuration output."""
        importer.import_resources(options_for(tmp_path, resources=["queues"], output="json"))
        directory = tmp_path / "generated" / "fake" / "queues"
        document = json.loads((directory / "fake_queue.json").read_text())
        assert document["resources"]["fake_queue"][0]["name"] == "jobs"
        assert (directory / "provider.json").exists()

    def test_later_category_sees_earlier_resources_in_shared_directory(self, importer, tmp_path):
        """Test cross-category linking when both categories share a directory."""
        result = importer.import_resources(
            options_for(tmp_path, resources=["queues", "topics"], path_pattern="{output}/{provider}")
        )
        assert TopicService.seen == ["fake_queue.jobs"]
        (subscription,) = result.resources_by_service["topics"]
        assert subscription.attributes["endpoint"] == "${fake_queue.jobs.arn}"

        directory = tmp_path / "generated" / "fake"
        state = json.loads((directory / "terraform.tfstate").read_text())
        assert [f"{e['type']}.{e['name']}" for e in state["resources"]] == [
            "fake_queue.jobs",
            "fake_subscription.s1",
        ]
        assert (directory / "fake_queue.tf").exists()
        assert (directory / "fake_subscription.tf").exists()

    def test_separate_directories_keep_literals(self, importer, tmp_path):
        """Test that categories in their own directories never reference each other."""
        result = importer.import_resources(
            options_for(tmp_path, resources=["queues", "topics"])
        )
        assert TopicService.seen == []
        (subscription,) = result.resources_by_service["topics"]
        assert subscription.attributes["endpoint"] == "arn:q1"

        topics = tmp_path / "generated" / "fake" / "topics"
        assert "${fake_queue" not in (topics / "fake_subscription.tf").read_text()
        state = json.loads((topics / "terraform.tfstate").read_text())
        assert [e["type"] for e in state["resources"]] == ["fake_subscription"]

    def test_category_failure_is_isolated(self, importer, tmp_path):
        """Test that a failing category does not stop the others."""
        result = importer.import_resources(
            options_for(tmp_path, resources=["broken", "queues"])
        )
        assert result.failed_services == ["broken"]
        assert "throttled" in result.errors["broken"]
        assert result.total_resources == 1
        assert not (tmp_path / "generated" / "fake" / "broken").exists()
        assert (tmp_path / "generated" / "fake" / "queues" / "terraform.tfstate").exists()

    def test_verbose_aborts_on_failure(self, importer, tmp_path):
        """Test that verbose runs re-raise the first failure."""
        with pytest.raises(DiscoveryError, match="throttled") as excinfo:
            importer.import_resources(
                options_for(tmp_path, resources=["broken", "queues"], verbose=True)
            )
        assert excinfo.value.service == "broken"
        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert not (tmp_path / "generated" / "fake" / "queues").exists()

    def test_unsupported_category_rejected_before_discovery(self, importer, tmp_path):
        """Test that unknown categories fail the run up front."""
        with pytest.raises(UnsupportedServiceError, match="fake: nope not supported service"):
            importer.import_resources(options_for(tmp_path, resources=["queues", "nope"]))
        assert not (tmp_path / "generated").exists()

    def test_excludes(self, importer, tmp_path):
        """Test that excluded categories are skipped."""
        result = importer.import_resources(
            options_for(tmp_path, resources=["*"], excludes=["broken", "topics"])
        )
        assert result.services == ["zones", "queues"]

    def test_progress_and_args(self, importer, tmp_path):
        """Test progress reporting and provider overrides."""
        calls = []
        importer.import_resources(
            options_for(tmp_path, resources=["queues", "zones"]),
            progress_callback=lambda message, current, total: calls.append((message, current, total)),
            args=["local", "dev"],
        )
        assert calls == [("Importing queues...", 1, 2), ("Importing zones...", 2, 2)]
        assert importer.provider.init_args == ["local", "dev"]

    def test_custom_path_pattern(self, importer, tmp_path):
        """Test output directories built from a custom template."""
        result = importer.import_resources(
            options_for(tmp_path, resources=["queues"], path_pattern="{output}/{service}")
        )
        assert all(
            path.startswith(str(tmp_path / "generated" / "queues"))
            for path in result.output_paths["queues"]
        )


class TestPlan:
    """Tests for plan generation and introspection."""

    def test_plan_written(self, importer, tmp_path):
        """Test the plan document."""
        path = importer.plan(options_for(tmp_path, resources=["topics", "queues"]), args=["x"])
        plan = json.loads(open(path).read())
        assert path.endswith("fake/plan.json")
        assert plan["provider"] == "fake"
        assert plan["services"] == ["topics", "queues"]
        assert plan["args"] == ["x"]
        assert plan["options"]["output"] == "hcl"
        assert plan["imported_resources"] == {}

    def test_introspection(self, importer):
        """Test supported services and connections."""
        assert importer.get_supported_services() == ["zones", "queues", "topics", "broken"]
        assert importer.get_resource_connections() == {"topics": {"queues": ["endpoint", "arn"]}}


class TestImportResult:
    """Tests for ImportResult."""

    def test_to_dict(self):
        """Test summary serialization."""
        result = ImportResult(
            provider="fake",
            services=["queues"],
            resources_by_service={
                "queues": [Resource(id="q", type="fake_queue", name="q", provider="fake")]
            },
        )
        data = result.to_dict()
        assert data["total_resources"] == 1
        assert data["resources_by_service"] == {"queues": ["fake_queue.q"]}
        assert data["end_time"] is None
        assert result.duration == 0.0
