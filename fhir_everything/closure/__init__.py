"""
FHIR $everything closure engine

Given a root resource, collects the resource together with everything it
transitively references into a single searchset Bundle. References are
resolved against a resource store; contained references are skipped,
absolute references are refused, and the first failure aborts the run.

An alternative compartment traversal collects the resources that point
at the root through the Patient compartment search parameters.
"""

from .bundle import BundleEntry, SearchBundle
from .closure_builder import ClosureBuilder, ClosureOutcome
from .compartment import (
    CompartmentSearchParam,
    CompartmentSearchStrategy,
    load_compartment_search_list,
)
from .conformance import EverythingConformanceContributor, build_capability_statement
from .everything_service import EverythingResult, EverythingService
from .extractor import ReferenceExtractor
from .outcomes import (
    ClosureFailure,
    EverythingStatus,
    ModelMismatch,
    ReferenceNotFound,
    ReferenceUnsupported,
    RootNotFound,
    operation_outcome,
)
from .resolver import ReferenceResolver, Resolution
from .resources import Resource, ResourceKey, is_contained_reference, is_relative_reference
from .schema import (
    SchemaError,
    SchemaProvider,
    SchemaRegistry,
    UnknownResourceTypeError,
    UnsupportedInformationModelError,
    default_schema_registry,
)
from .store import FileResourceStore, InMemoryResourceStore

__all__ = [
    "BundleEntry",
    "SearchBundle",
    "ClosureBuilder",
    "ClosureOutcome",
    "CompartmentSearchParam",
    "CompartmentSearchStrategy",
    "load_compartment_search_list",
    "EverythingConformanceContributor",
    "build_capability_statement",
    "EverythingResult",
    "EverythingService",
    "ReferenceExtractor",
    "ClosureFailure",
    "EverythingStatus",
    "ModelMismatch",
    "ReferenceNotFound",
    "ReferenceUnsupported",
    "RootNotFound",
    "operation_outcome",
    "ReferenceResolver",
    "Resolution",
    "Resource",
    "ResourceKey",
    "is_contained_reference",
    "is_relative_reference",
    "SchemaError",
    "SchemaProvider",
    "SchemaRegistry",
    "UnknownResourceTypeError",
    "UnsupportedInformationModelError",
    "default_schema_registry",
    "FileResourceStore",
    "InMemoryResourceStore",
]
