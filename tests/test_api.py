"""Tests for the FastAPI $everything endpoints."""

import pytest
from fastapi.testclient import TestClient

from fhir_everything.api.main import create_app
from fhir_everything.api.services.everything_provider import information_model_from_accept
from fhir_everything.closure.everything_service import EverythingService

from conftest import CountingStore, make_resource, ref


@pytest.fixture
def store(r3):
    return CountingStore([
        make_resource("Patient", "p1", managingOrganization=ref("Organization/org1")),
        make_resource("Organization", "org1"),
        make_resource("Patient", "broken", managingOrganization=ref("Organization/missing")),
        make_resource("Patient", "remote", managingOrganization=ref("http://x.org/Organization/1")),
        make_resource("Patient", "old", information_model=r3),
    ])


@pytest.fixture
def client(store, schemas, trace_logger):
    service = EverythingService(store, schemas, trace_logger=trace_logger)
    return TestClient(create_app(service))


class TestInformationModelFromAccept:
    """Tests for Accept header parsing."""

    def test_default(self, r4):
        assert information_model_from_accept(None) == r4
        assert information_model_from_accept("application/fhir+json") == r4

    def test_fhir_version_parameter(self, r3, r4):
        assert information_model_from_accept("application/fhir+json; fhirVersion=3.0") == r3
        assert information_model_from_accept("application/fhir+json;fhirVersion=4.0.1") == r4

    def test_unknown_version(self):
        assert information_model_from_accept("application/fhir+json; fhirVersion=1.0") is None


class TestEverythingEndpoint:
    """Tests for GET /{type}/{id}/$everything."""

    def test_success(self, client):
        response = client.get("/Patient/p1/$everything")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/fhir+json")
        body = response.json()
        assert body["resourceType"] == "Bundle"
        assert [e["fullUrl"] for e in body["entry"]] == ["Patient/p1", "Organization/org1"]
        assert response.headers["location"] == f"Bundle/{body['id']}"

    def test_root_not_found(self, client):
        response = client.get("/Patient/nobody/$everything")

        assert response.status_code == 404
        assert response.json()["resourceType"] == "OperationOutcome"

    def test_unresolved_reference(self, client):
        response = client.get("/Patient/broken/$everything")

        assert response.status_code == 500
        issue = response.json()["issue"][0]
        assert issue["code"] == "not-found"

    def test_remote_reference(self, client):
        response = client.get("/Patient/remote/$everything")

        assert response.status_code == 500
        assert response.json()["issue"][0]["code"] == "not-supported"

    def test_model_mismatch(self, client):
        """Test that an STU3 patient requested as R4 is 415."""
        response = client.get("/Patient/old/$everything")

        assert response.status_code == 415

    def test_requested_model(self, client):
        response = client.get(
            "/Patient/old/$everything",
            headers={"Accept": "application/fhir+json; fhirVersion=3.0"},
        )

        assert response.status_code == 200

    def test_unsupported_fhir_version(self, client):
        response = client.get(
            "/Patient/p1/$everything",
            headers={"Accept": "application/fhir+json; fhirVersion=5.0"},
        )

        assert response.status_code == 415

    def test_unsupported_resource_type(self, client):
        response = client.get("/Observation/o1/$everything")

        assert response.status_code == 404
        assert response.json()["issue"][0]["code"] == "not-supported"

    def test_persist(self, client, store):
        response = client.get("/Patient/p1/$everything?persist=true")

        assert response.status_code == 200
        assert len(store.created) == 1
        assert store.created[0].id == response.json()["id"]

    def test_persist_requires_true(self, client, store):
        client.get("/Patient/p1/$everything?persist=yes")

        assert store.created == []


class TestOtherEndpoints:
    """Tests for metadata and health endpoints."""

    def test_metadata(self, client):
        response = client.get("/metadata")

        assert response.status_code == 200
        body = response.json()
        assert body["fhirVersion"] == "4.0.1"
        assert body["rest"][0]["operation"][0]["name"] == "everything"

    def test_metadata_r3(self, client):
        response = client.get("/metadata", headers={"Accept": "application/fhir+json; fhirVersion=3.0"})

        assert response.json()["fhirVersion"] == "3.0.2"

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["resource_count"] == 5
