"""Unit tests for the reference closure builder."""

import pytest

from fhir_everything.closure.bundle import SearchBundle
from fhir_everything.closure.closure_builder import ClosureBuilder
from fhir_everything.closure.outcomes import ModelMismatch, ReferenceNotFound, ReferenceUnsupported
from fhir_everything.closure.resolver import ReferenceResolver

from conftest import CountingStore, make_resource, ref


def _builder(store, extractor, trace_logger):
    return ClosureBuilder(ReferenceResolver(store), extractor, trace_logger)


def _seeded(root):
    return SearchBundle.create_empty().add_entry(root, str(root.key))


class TestClosureScenarios:
    """End-to-end traversal scenarios."""

    @pytest.mark.asyncio
    async def test_root_without_references(self, extractor, trace_logger):
        """Scenario A: the closure of an unreferencing root is the root alone."""
        root = make_resource("Patient", "p1")
        store = CountingStore([root])

        outcome = await _builder(store, extractor, trace_logger).build_closure(root, _seeded(root))

        assert outcome.ok
        assert outcome.bundle.references == ["Patient/p1"]
        assert store.lookups == []

    @pytest.mark.asyncio
    async def test_chain_in_discovery_order(self, extractor, trace_logger):
        """Scenario B: root -> X -> Y yields root, X, Y."""
        root = make_resource("Patient", "p1", managingOrganization=ref("Organization/x"))
        x = make_resource("Organization", "x", partOf=ref("Organization/y"))
        y = make_resource("Organization", "y")
        store = CountingStore([root, x, y])

        outcome = await _builder(store, extractor, trace_logger).build_closure(root, _seeded(root))

        assert outcome.ok
        assert outcome.bundle.references == ["Patient/p1", "Organization/x", "Organization/y"]

    @pytest.mark.asyncio
    async def test_unresolvable_reference(self, extractor, trace_logger):
        """Scenario C: a missing local reference fails the closure."""
        root = make_resource("Patient", "p1", managingOrganization=ref("Organization/x"))
        store = CountingStore([root])

        outcome = await _builder(store, extractor, trace_logger).build_closure(root, _seeded(root))

        assert not outcome.ok
        assert outcome.failure == ReferenceNotFound("Organization/x")
        assert outcome.bundle.references == ["Patient/p1"]

    @pytest.mark.asyncio
    async def test_absolute_reference(self, extractor, trace_logger):
        """Scenario D: an absolute reference is not supported."""
        root = make_resource(
            "Patient", "p1", managingOrganization=ref("http://example.org/fhir/Organization/x")
        )
        store = CountingStore([root])

        outcome = await _builder(store, extractor, trace_logger).build_closure(root, _seeded(root))

        assert isinstance(outcome.failure, ReferenceUnsupported)
        assert store.lookups == []

    @pytest.mark.asyncio
    async def test_cycle_back_to_root(self, extractor, trace_logger):
        """Scenario E: root -> X -> root terminates with root and X."""
        root = make_resource("Patient", "p1", link=[{"other": ref("RelatedPerson/x")}])
        x = make_resource("RelatedPerson", "x", patient=ref("Patient/p1"))
        store = CountingStore([root, x])

        outcome = await _builder(store, extractor, trace_logger).build_closure(root, _seeded(root))

        assert outcome.ok
        assert outcome.bundle.references == ["Patient/p1", "RelatedPerson/x"]
        assert store.lookups == ["RelatedPerson/x"]


class TestClosureProperties:
    """Traversal invariants."""

    @pytest.mark.asyncio
    async def test_each_reference_resolved_once(self, extractor, trace_logger):
        """Test that shared and repeated references are looked up a single time."""
        root = make_resource(
            "Patient",
            "p1",
            generalPractitioner=[ref("Practitioner/dr1"), ref("Practitioner/dr1")],
            managingOrganization=ref("Organization/org1"),
        )
        dr1 = make_resource("Practitioner", "dr1", qualification=[{"issuer": ref("Organization/org1")}])
        org1 = make_resource("Organization", "org1", endpoint=[ref("Endpoint/e1")])
        e1 = make_resource("Endpoint", "e1", managingOrganization=ref("Organization/org1"))
        store = CountingStore([root, dr1, org1, e1])

        outcome = await _builder(store, extractor, trace_logger).build_closure(root, _seeded(root))

        assert outcome.ok
        assert sorted(store.lookups) == sorted(set(store.lookups))
        assert outcome.bundle.references == [
            "Patient/p1", "Practitioner/dr1", "Organization/org1", "Endpoint/e1",
        ]

    @pytest.mark.asyncio
    async def test_depth_first_order(self, extractor, trace_logger):
        """Test that a resolved resource is fully expanded before its next sibling."""
        root = make_resource(
            "Patient",
            "p1",
            generalPractitioner=[ref("Practitioner/a"), ref("Practitioner/b")],
        )
        a = make_resource("Practitioner", "a", qualification=[{"issuer": ref("Organization/a-org")}])
        b = make_resource("Practitioner", "b")
        a_org = make_resource("Organization", "a-org")
        store = CountingStore([root, a, b, a_org])

        outcome = await _builder(store, extractor, trace_logger).build_closure(root, _seeded(root))

        assert outcome.bundle.references == [
            "Patient/p1", "Practitioner/a", "Organization/a-org", "Practitioner/b",
        ]

    @pytest.mark.asyncio
    async def test_fail_fast_keeps_strict_prefix(self, extractor, trace_logger):
        """Test that nothing after the first failing reference is resolved or added."""
        root = make_resource(
            "Patient",
            "p1",
            generalPractitioner=[ref("Practitioner/ok"), ref("Practitioner/missing")],
            managingOrganization=ref("Organization/org1"),
        )
        ok = make_resource("Practitioner", "ok")
        org1 = make_resource("Organization", "org1")
        store = CountingStore([root, ok, org1])

        outcome = await _builder(store, extractor, trace_logger).build_closure(root, _seeded(root))

        assert outcome.failure == ReferenceNotFound("Practitioner/missing")
        assert outcome.bundle.references == ["Patient/p1", "Practitioner/ok"]
        assert "Organization/org1" not in store.lookups

    @pytest.mark.asyncio
    async def test_failure_deep_in_graph(self, extractor, trace_logger):
        """Test that a failure below the first level aborts the whole run."""
        root = make_resource("Patient", "p1", managingOrganization=ref("Organization/x"))
        x = make_resource("Organization", "x", partOf=ref("Organization/gone"))
        store = CountingStore([root, x])

        outcome = await _builder(store, extractor, trace_logger).build_closure(root, _seeded(root))

        assert outcome.failure == ReferenceNotFound("Organization/gone")
        assert outcome.bundle.references == ["Patient/p1", "Organization/x"]

    @pytest.mark.asyncio
    async def test_model_mismatch(self, extractor, trace_logger, r3, r4):
        """Test that a referenced resource from another model fails the closure."""
        root = make_resource("Patient", "p1", managingOrganization=ref("Organization/x"))
        x = make_resource("Organization", "x", information_model=r3)
        store = CountingStore([root, x])

        outcome = await _builder(store, extractor, trace_logger).build_closure(root, _seeded(root))

        assert outcome.failure == ModelMismatch("Organization/x", expected=r4, found=r3)
        assert outcome.bundle.references == ["Patient/p1"]

    @pytest.mark.asyncio
    async def test_contained_reference_never_resolved(self, extractor, trace_logger):
        """Test that #id references are skipped without a lookup."""
        root = make_resource(
            "Patient",
            "p1",
            contained=[{"resourceType": "Organization", "id": "inline"}],
            managingOrganization=ref("#inline"),
        )
        store = CountingStore([root])

        outcome = await _builder(store, extractor, trace_logger).build_closure(root, _seeded(root))

        assert outcome.ok
        assert store.lookups == []
        assert len(outcome.bundle) == 1

    @pytest.mark.asyncio
    async def test_reference_spellings_not_merged(self, extractor, trace_logger):
        """Test that two spellings of one resource produce two entries."""
        root = make_resource(
            "Patient",
            "p1",
            generalPractitioner=[ref("Practitioner/dr1"), ref("Practitioner/dr1/_history/1")],
        )
        dr1 = make_resource("Practitioner", "dr1", meta={"versionId": "1"})
        store = CountingStore([root, dr1])

        outcome = await _builder(store, extractor, trace_logger).build_closure(root, _seeded(root))

        assert outcome.bundle.references == [
            "Patient/p1", "Practitioner/dr1", "Practitioner/dr1/_history/1",
        ]

    @pytest.mark.asyncio
    async def test_long_chain(self, extractor, trace_logger):
        """Test that deep reference chains do not hit the recursion limit."""
        length = 1500
        resources = [make_resource("Patient", "p0", link=[{"other": ref("Patient/p1")}])]
        for i in range(1, length):
            fields = {"link": [{"other": ref(f"Patient/p{i + 1}")}]} if i < length - 1 else {}
            resources.append(make_resource("Patient", f"p{i}", **fields))
        store = CountingStore(resources)
        root = resources[0]

        outcome = await _builder(store, extractor, trace_logger).build_closure(root, _seeded(root))

        assert outcome.ok
        assert len(outcome.bundle) == length

    @pytest.mark.asyncio
    async def test_collect_matches_build_closure(self, extractor, trace_logger, patient, practitioner,
                                                 organization, parent_organization):
        store = CountingStore([patient, practitioner, organization, parent_organization])
        builder = _builder(store, extractor, trace_logger)

        outcome = await builder.collect(patient, _seeded(patient))

        assert outcome.bundle.references == [
            "Patient/p1", "Practitioner/dr1", "Organization/org1", "Organization/parent",
        ]
