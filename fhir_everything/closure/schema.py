"""Structural knowledge of FHIR resources per information model.

A SchemaProvider answers the questions the reference extractor needs:
which resource types exist, which JSON nodes are Reference elements, and
which nodes are embedded resources that must not be walked.
"""

import logging
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional

from .config import RESOURCE_TYPES
from .resources import Resource

logger = logging.getLogger(__name__)


class SchemaError(Exception):
    """Base class for schema lookup errors."""


class UnsupportedInformationModelError(SchemaError):
    """No schema is registered for the requested information model."""

    def __init__(self, information_model: str):
        super().__init__(f"No schema registered for information model {information_model}")
        self.information_model = information_model


class UnknownResourceTypeError(SchemaError):
    """The resource type is not part of the information model."""

    def __init__(self, resource_type: str, information_model: str):
        super().__init__(
            f"Resource type {resource_type} is not defined in information model {information_model}"
        )
        self.resource_type = resource_type
        self.information_model = information_model


class SchemaProvider:
    """Schema knowledge for one information model."""

    def __init__(self, information_model: str, resource_types: Iterable[str]):
        """Initialize the schema provider.

        Args:
            information_model: Information model this schema describes
            resource_types: Resource type names defined by the model
        """
        self.information_model = information_model
        self.resource_types: FrozenSet[str] = frozenset(resource_types)

    def with_custom_types(self, *resource_types: str) -> "SchemaProvider":
        """Return a provider that also knows the given custom resource types."""
        return SchemaProvider(self.information_model, self.resource_types | set(resource_types))

    def knows(self, resource_type: str) -> bool:
        return resource_type in self.resource_types

    def check(self, resource: Resource) -> None:
        """Raise UnknownResourceTypeError if the resource type is not defined."""
        if not self.knows(resource.resource_type):
            raise UnknownResourceTypeError(resource.resource_type, self.information_model)

    @staticmethod
    def is_embedded_resource(node: Any) -> bool:
        """Nested objects carrying a resourceType are embedded resources.

        Covers contained resources, Bundle.entry.resource and
        Parameters.parameter.resource.
        """
        return isinstance(node, Mapping) and "resourceType" in node

    @staticmethod
    def reference_value(node: Any) -> Optional[str]:
        """Return the reference string of a Reference element, else None.

        A Reference is an object with a string ``reference``; Reference
        elements holding only identifier/display yield nothing.
        """
        if not isinstance(node, Mapping) or "resourceType" in node:
            return None
        value = node.get("reference")
        if isinstance(value, str) and value:
            return value
        return None


class SchemaRegistry:
    """Schema providers keyed by information model."""

    def __init__(self, providers: Optional[Iterable[SchemaProvider]] = None):
        self._providers: Dict[str, SchemaProvider] = {}
        for provider in providers or []:
            self.register(provider)

    def register(self, provider: SchemaProvider) -> None:
        self._providers[provider.information_model] = provider
        logger.debug(
            f"Registered schema for {provider.information_model} "
            f"({len(provider.resource_types)} resource types)"
        )

    def get(self, information_model: str) -> SchemaProvider:
        """Get the schema for an information model.

        Raises:
            UnsupportedInformationModelError: If no schema is registered
        """
        try:
            return self._providers[information_model]
        except KeyError:
            raise UnsupportedInformationModelError(information_model) from None

    def supports(self, information_model: str) -> bool:
        return information_model in self._providers

    @property
    def information_models(self) -> FrozenSet[str]:
        return frozenset(self._providers)


def default_schema_registry() -> SchemaRegistry:
    """Create a registry with the STU3 and R4 resource type lists."""
    return SchemaRegistry(
        SchemaProvider(model, resource_types)
        for model, resource_types in RESOURCE_TYPES.items()
    )
