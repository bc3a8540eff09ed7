"""Reference resolution against the resource store."""

import logging
from dataclasses import dataclass
from typing import Optional

from .outcomes import ClosureFailure, ReferenceNotFound, ReferenceUnsupported
from .resources import Resource, ResourceKey, is_relative_reference
from .store import ResourceStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """Result of resolving one reference: a resource or a failure."""
    resource: Optional[Resource] = None
    failure: Optional[ClosureFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


class ReferenceResolver:
    """Resolves local references in the store; absolute references are refused.

    One lookup per call. Store errors are not caught.
    """

    def __init__(self, store: ResourceStore):
        self.store = store

    async def resolve(self, reference: str, information_model: Optional[str] = None) -> Resolution:
        """Resolve a reference string.

        Args:
            reference: Relative (Type/id) or absolute reference
            information_model: Preferred model when the store holds the
                resource under more than one

        Returns:
            Resolution with the resource, or with ReferenceNotFound /
            ReferenceUnsupported
        """
        if is_relative_reference(reference):
            return await self._resolve_local(reference, information_model)

        # Remote references are never fetched
        logger.debug(f"Refusing absolute reference {reference}")
        return Resolution(failure=ReferenceUnsupported(reference))

    async def resolve_key(
        self,
        resource_type: str,
        resource_id: str,
        information_model: Optional[str] = None,
    ) -> Resolution:
        """Resolve a resource by type and id."""
        return await self.resolve(f"{resource_type}/{resource_id}", information_model)

    async def _resolve_local(self, reference: str, information_model: Optional[str]) -> Resolution:
        key = ResourceKey.parse(reference)
        if key is None:
            logger.debug(f"Local reference {reference} is not of the form Type/id")
            return Resolution(failure=ReferenceNotFound(reference))

        resource = await self.store.get_by_key(key, information_model)
        if resource is None:
            return Resolution(failure=ReferenceNotFound(reference))

        return Resolution(resource=resource)
