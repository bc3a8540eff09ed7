"""Reference extraction from FHIR resources."""

from typing import Any, Iterator, List, Mapping

from .resources import Resource
from .schema import SchemaProvider, SchemaRegistry


class ReferenceExtractor:
    """Collects every Reference value in a resource, in document order.

    References inside embedded resources (contained, Bundle entries) are
    not reported. Contained references (``#id``) on the resource itself
    are reported; deciding to skip them is up to the caller.
    """

    def __init__(self, schemas: SchemaRegistry):
        self.schemas = schemas

    def extract(self, resource: Resource) -> List[str]:
        """Extract reference strings from a resource.

        Args:
            resource: Resource to inspect

        Returns:
            Reference strings in document order (duplicates preserved)

        Raises:
            UnsupportedInformationModelError: No schema for the resource's model
            UnknownResourceTypeError: Resource type not defined in the model
        """
        schema = self.schemas.get(resource.information_model)
        schema.check(resource)
        return list(self._walk(resource.data, schema, is_root=True))

    def _walk(self, node: Any, schema: SchemaProvider, is_root: bool = False) -> Iterator[str]:
        if isinstance(node, Mapping):
            if not is_root and schema.is_embedded_resource(node):
                return
            reference = schema.reference_value(node)
            if reference is not None:
                yield reference
            for value in node.values():
                yield from self._walk(value, schema)
        elif isinstance(node, list):
            for item in node:
                yield from self._walk(item, schema)
