"""Unit tests for CapabilityStatement contributions."""

from fhir_everything.closure.config import EVERYTHING_OPERATION_DEFINITION
from fhir_everything.closure.conformance import (
    EverythingConformanceContributor,
    build_capability_statement,
)


class TestEverythingConformanceContributor:
    """Tests for EverythingConformanceContributor."""

    def test_applies_to_r3_and_r4(self, r3, r4):
        contributor = EverythingConformanceContributor()

        assert contributor.applies_to(r3)
        assert contributor.applies_to(r4)
        assert not contributor.applies_to("Fhir5.0")

    def test_adds_operation(self):
        statement = {"resourceType": "CapabilityStatement", "rest": [{"mode": "server"}]}

        result = EverythingConformanceContributor().contribute(statement)

        assert result["rest"][0]["operation"] == [
            {"name": "everything", "definition": EVERYTHING_OPERATION_DEFINITION},
        ]
        assert "operation" not in statement["rest"][0]

    def test_not_added_when_disabled(self):
        statement = {"resourceType": "CapabilityStatement", "rest": [{"mode": "server"}]}

        result = EverythingConformanceContributor(supported_operations=[]).contribute(statement)

        assert "operation" not in result["rest"][0]

    def test_not_added_twice(self):
        contributor = EverythingConformanceContributor()

        result = contributor.contribute(contributor.contribute({"rest": []}))

        assert len(result["rest"][0]["operation"]) == 1


class TestBuildCapabilityStatement:
    """Tests for build_capability_statement."""

    def test_fhir_versions(self, r3, r4):
        assert build_capability_statement(r3)["fhirVersion"] == "3.0.2"
        assert build_capability_statement(r4)["fhirVersion"] == "4.0.1"

    def test_with_contributor(self, r4):
        statement = build_capability_statement(r4, [EverythingConformanceContributor()])

        assert statement["rest"][0]["operation"][0]["name"] == "everything"
