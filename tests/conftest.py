"""Shared fixtures for $everything tests."""

import pytest

from fhir_everything.closure.config import FHIR_R3, FHIR_R4
from fhir_everything.closure.extractor import ReferenceExtractor
from fhir_everything.closure.logging import ClosureTraceLogger
from fhir_everything.closure.resources import Resource
from fhir_everything.closure.schema import default_schema_registry
from fhir_everything.closure.store import InMemoryResourceStore


def make_resource(resource_type, resource_id, information_model=FHIR_R4, **fields):
    """Build a Resource from keyword fields."""
    data = {"resourceType": resource_type, "id": resource_id, **fields}
    return Resource.from_json(data, information_model)


def ref(reference):
    """Reference element."""
    return {"reference": reference}


class CountingStore(InMemoryResourceStore):
    """In-memory store that records every key lookup."""

    def __init__(self, resources=()):
        super().__init__(resources)
        self.lookups = []
        self.created = []

    async def get_by_key(self, key, information_model=None):
        self.lookups.append(str(key))
        return await super().get_by_key(key, information_model)

    async def create(self, resource):
        self.created.append(resource)
        return await super().create(resource)


@pytest.fixture
def r3():
    return FHIR_R3


@pytest.fixture
def r4():
    return FHIR_R4


@pytest.fixture
def schemas():
    return default_schema_registry()


@pytest.fixture
def extractor(schemas):
    return ReferenceExtractor(schemas)


@pytest.fixture
def trace_logger():
    """Trace logger without session file handlers."""
    return ClosureTraceLogger(name="tests.closure_trace", enable_summary=False)


@pytest.fixture
def patient():
    return make_resource(
        "Patient",
        "p1",
        generalPractitioner=[ref("Practitioner/dr1")],
        managingOrganization=ref("Organization/org1"),
    )


@pytest.fixture
def practitioner():
    return make_resource("Practitioner", "dr1")


@pytest.fixture
def organization():
    return make_resource("Organization", "org1", partOf=ref("Organization/parent"))


@pytest.fixture
def parent_organization():
    return make_resource("Organization", "parent")
