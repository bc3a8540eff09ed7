"""Search bundle accumulator for $everything results.

The bundle is immutable: every mutation returns a new SearchBundle, so the
closure builder can thread it through the traversal without aliasing.
"""

import copy
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from .config import BUNDLE_IDENTIFIER_SYSTEM, BUNDLE_TYPE_SEARCHSET
from .resources import Resource


@dataclass(frozen=True)
class BundleEntry:
    """A resource in the result together with the reference that produced it."""
    resource: Resource
    reference: str

    def to_dict(self, search_mode: str = "include") -> Dict[str, Any]:
        """Convert to a Bundle.entry dictionary."""
        return {
            "fullUrl": self.reference,
            "resource": copy.deepcopy(dict(self.resource.data)),
            "search": {"mode": search_mode},
        }


@dataclass(frozen=True, eq=False)
class SearchBundle:
    """Ordered, duplicate-free collection of $everything results.

    Bundles derived from one another by ``add_entry`` share an append-only
    entry log and a reference index; each bundle sees the first ``_size``
    entries of the log. Appending to the newest bundle extends the shared
    log in place, appending to an older one copies its prefix first.
    """
    identifier: str
    id: Optional[str] = None
    last_updated: Optional[datetime] = None
    bundle_type: str = BUNDLE_TYPE_SEARCHSET
    _log: List[BundleEntry] = field(default_factory=list, repr=False)
    _positions: Dict[str, int] = field(default_factory=dict, repr=False)
    _size: int = 0

    @classmethod
    def create_empty(cls) -> "SearchBundle":
        """Create an empty searchset bundle with a fresh identifier and stamp."""
        bundle = cls(identifier=str(uuid.uuid4()))
        return bundle.stamp(str(uuid.uuid4()), datetime.now(timezone.utc))

    def add_entry(self, resource: Resource, reference: str) -> "SearchBundle":
        """Append a resource.

        Args:
            resource: Resolved resource
            reference: Reference string the resource was found through

        Returns:
            New bundle with the entry appended

        Raises:
            ValueError: If an entry with the same reference already exists
        """
        if self.contains_reference(reference):
            raise ValueError(f"Bundle already contains an entry for {reference}")

        if len(self._log) == self._size:
            log, positions = self._log, self._positions
        else:
            log = self._log[:self._size]
            positions = {entry.reference: index for index, entry in enumerate(log)}

        log.append(BundleEntry(resource, reference))
        positions[reference] = self._size
        return replace(self, _log=log, _positions=positions, _size=self._size + 1)

    def stamp(self, identity: str, timestamp: datetime) -> "SearchBundle":
        """Set the bundle id and meta.lastUpdated."""
        return replace(self, id=identity, last_updated=timestamp)

    def contains_reference(self, reference: str) -> bool:
        return self._positions.get(reference, self._size) < self._size

    @property
    def entries(self) -> Tuple[BundleEntry, ...]:
        return tuple(self._log[:self._size])

    @property
    def references(self) -> List[str]:
        return [entry.reference for entry in self._log[:self._size]]

    @property
    def resources(self) -> List[Resource]:
        return [entry.resource for entry in self._log[:self._size]]

    def __len__(self) -> int:
        return self._size

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SearchBundle):
            return NotImplemented
        return (
            (self.identifier, self.id, self.last_updated, self.bundle_type, self.entries)
            == (other.identifier, other.id, other.last_updated, other.bundle_type, other.entries)
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a FHIR Bundle resource.

        The first entry (the resource the operation was called on) is a
        search match; everything found from it is an include.
        """
        bundle: Dict[str, Any] = {"resourceType": "Bundle"}
        if self.id:
            bundle["id"] = self.id
        if self.last_updated:
            bundle["meta"] = {"lastUpdated": self.last_updated.isoformat()}
        bundle["identifier"] = {"system": BUNDLE_IDENTIFIER_SYSTEM, "value": self.identifier}
        bundle["type"] = self.bundle_type
        bundle["total"] = len(self.entries)
        bundle["entry"] = [
            entry.to_dict("match" if index == 0 else "include")
            for index, entry in enumerate(self.entries)
        ]
        return bundle

    def to_resource(self, information_model: str) -> Resource:
        """Wrap the bundle as a Resource for persistence."""
        return Resource.from_json(self.to_dict(), information_model)
