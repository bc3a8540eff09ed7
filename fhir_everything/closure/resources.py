"""FHIR resource snapshots, resource keys and reference classification."""

import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlsplit

from .config import CONTAINED_REFERENCE_PREFIX

# Type/id or Type/id/_history/vid (FHIR id rules: 1-64 of [A-Za-z0-9\-\.])
_KEY_PATTERN = re.compile(
    r"^(?P<type>[A-Z][A-Za-z]*)/(?P<id>[A-Za-z0-9\-\.]{1,64})"
    r"(?:/_history/(?P<version>[A-Za-z0-9\-\.]{1,64}))?$"
)


@dataclass(frozen=True)
class ResourceKey:
    """Identity of a resource in the store."""
    resource_type: str
    resource_id: str
    version_id: Optional[str] = None

    @classmethod
    def parse(cls, reference: str) -> Optional["ResourceKey"]:
        """Parse a relative reference of the form Type/id[/_history/vid].

        Args:
            reference: Relative reference string

        Returns:
            ResourceKey, or None if the reference is not of that shape
        """
        match = _KEY_PATTERN.match(reference)
        if not match:
            return None
        return cls(
            resource_type=match.group("type"),
            resource_id=match.group("id"),
            version_id=match.group("version"),
        )

    def without_version(self) -> "ResourceKey":
        return ResourceKey(self.resource_type, self.resource_id)

    def __str__(self) -> str:
        key = f"{self.resource_type}/{self.resource_id}"
        if self.version_id:
            key += f"/_history/{self.version_id}"
        return key


@dataclass(frozen=True)
class Resource:
    """Read-only snapshot of a stored FHIR resource.

    The JSON document is kept as-is in ``data``; the closure engine never
    mutates it. ``information_model`` records which FHIR release the
    resource was stored under.
    """
    resource_type: str
    id: str
    information_model: str
    data: Mapping[str, Any]

    @classmethod
    def from_json(cls, data: Mapping[str, Any], information_model: str) -> "Resource":
        """Wrap a FHIR JSON document.

        Args:
            data: Parsed FHIR resource
            information_model: Information model the resource belongs to

        Returns:
            Resource snapshot

        Raises:
            ValueError: If resourceType or id is missing
        """
        resource_type = data.get("resourceType")
        resource_id = data.get("id")
        if not resource_type:
            raise ValueError("FHIR resource must have a resourceType")
        if not resource_id:
            raise ValueError(f"{resource_type} resource must have an id")
        return cls(
            resource_type=resource_type,
            id=resource_id,
            information_model=information_model,
            data=data,
        )

    @property
    def key(self) -> ResourceKey:
        return ResourceKey(self.resource_type, self.id)

    @property
    def version_id(self) -> Optional[str]:
        meta = self.data.get("meta") or {}
        return meta.get("versionId")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary (shallow copy of the document)."""
        return dict(self.data)


def is_contained_reference(reference: str) -> bool:
    """Check whether a reference points at a contained resource (#id)."""
    return reference.startswith(CONTAINED_REFERENCE_PREFIX)


def is_relative_reference(reference: str) -> bool:
    """Check whether a reference is a well-formed relative URL.

    Absolute URLs (http://..., urn:uuid:...) and strings containing
    whitespace are not relative.
    """
    if not reference or any(ch.isspace() for ch in reference):
        return False
    parts = urlsplit(reference)
    return not parts.scheme and not parts.netloc
