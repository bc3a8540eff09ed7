"""Resource stores used by the $everything service.

The closure engine only reads from a store during traversal; ``create`` is
used at most once per request to persist the finished bundle.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

from .config import DEFAULT_INFORMATION_MODEL, STORE_DIR, SUPPORTED_INFORMATION_MODELS
from .resources import Resource, ResourceKey

logger = logging.getLogger(__name__)


class ResourceStore(Protocol):
    """Store interface consumed by the resolver and the orchestrator."""

    async def get_by_key(
        self,
        key: ResourceKey,
        information_model: Optional[str] = None,
    ) -> Optional[Resource]:
        ...

    async def search_by_reference(
        self,
        resource_type: str,
        element_path: str,
        reference: str,
        information_model: str,
    ) -> List[Resource]:
        ...

    async def create(self, resource: Resource) -> Resource:
        ...


class ChangeRecorder(Protocol):
    """Persists a finished result."""

    async def create(self, resource: Resource) -> Resource:
        ...


def element_references(data: Any, element_path: str) -> List[str]:
    """Reference strings found at a dotted element path.

    Lists are walked at every step, so "participant.actor" reaches the
    actor of each participant.

    Args:
        data: Resource JSON
        element_path: Element names separated by dots (e.g. "subject")

    Returns:
        Reference strings in document order
    """
    nodes = [data]
    for name in element_path.split("."):
        next_nodes = []
        for node in nodes:
            value = node.get(name) if isinstance(node, dict) else None
            if isinstance(value, list):
                next_nodes.extend(value)
            elif value is not None:
                next_nodes.append(value)
        nodes = next_nodes

    return [
        node["reference"]
        for node in nodes
        if isinstance(node, dict) and isinstance(node.get("reference"), str)
    ]


class InMemoryResourceStore:
    """Dictionary-backed store keyed by (resourceType, id) per information model.

    The same Type/id may be held once per information model. A lookup
    prefers the requested model and otherwise returns the copy that was
    indexed first, so callers can still tell a model mismatch from a
    missing resource.
    """

    def __init__(self, resources: Iterable[Resource] = ()):
        self._resources: Dict[Tuple[str, str], Dict[str, Resource]] = {}
        self._lock = threading.Lock()
        for resource in resources:
            self.add(resource)

    def add(self, resource: Resource) -> None:
        """Index a resource, replacing any previous version in the same model."""
        with self._lock:
            by_model = self._resources.setdefault((resource.resource_type, resource.id), {})
            by_model[resource.information_model] = resource

    def has(self, resource_type: str, resource_id: str, information_model: str) -> bool:
        with self._lock:
            return information_model in self._resources.get((resource_type, resource_id), {})

    def all(self) -> List[Resource]:
        with self._lock:
            return [
                resource
                for by_model in self._resources.values()
                for resource in by_model.values()
            ]

    def __len__(self) -> int:
        with self._lock:
            return sum(len(by_model) for by_model in self._resources.values())

    async def get_by_key(
        self,
        key: ResourceKey,
        information_model: Optional[str] = None,
    ) -> Optional[Resource]:
        """Look up a resource by exact key.

        A versioned key only matches when meta.versionId is equal.

        Args:
            key: Type, id and optional version
            information_model: Model to prefer when several are held
        """
        with self._lock:
            by_model = dict(self._resources.get((key.resource_type, key.resource_id), {}))
        if not by_model:
            return None

        resource = by_model.get(information_model) if information_model else None
        if resource is None:
            resource = next(iter(by_model.values()))
        if key.version_id and resource.version_id != key.version_id:
            return None
        return resource

    async def search_by_reference(
        self,
        resource_type: str,
        element_path: str,
        reference: str,
        information_model: str,
    ) -> List[Resource]:
        """Find resources of a type whose element references the given resource.

        Args:
            resource_type: Type to search (e.g. "Appointment")
            element_path: Dotted path of the Reference element
                (e.g. "subject" or "participant.actor")
            reference: Reference value to match (e.g. "Patient/123")
            information_model: Only resources in this model are returned

        Returns:
            Matching resources in insertion order
        """
        return [
            resource
            for resource in self.all()
            if resource.resource_type == resource_type
            and resource.information_model == information_model
            and reference in element_references(resource.data, element_path)
        ]

    async def create(self, resource: Resource) -> Resource:
        self.add(resource)
        logger.info(f"Created {resource.resource_type}/{resource.id} ({resource.information_model})")
        return resource


class FileResourceStore(InMemoryResourceStore):
    """Store backed by a directory of FHIR JSON files.

    Layout::

        <directory>/<information model>/**/*.json
        <directory>/*.json                  (default information model)

    Each file holds a single resource or a Bundle whose entries are indexed
    individually. Created resources are written to
    ``<directory>/<information model>/<Type>/<id>.json``.
    """

    def __init__(
        self,
        directory: Path = STORE_DIR,
        default_information_model: str = DEFAULT_INFORMATION_MODEL,
    ):
        """Initialize the store and load existing files.

        Args:
            directory: Root directory of the store
            default_information_model: Model for files directly under the root
        """
        super().__init__()
        self.directory = Path(directory)
        self.default_information_model = default_information_model
        self._load()

    def _load(self) -> None:
        """Load all resources from disk."""
        if not self.directory.exists():
            logger.warning(f"Store directory does not exist: {self.directory}")
            return

        for path in sorted(self.directory.glob("*.json")):
            self._load_file(path, self.default_information_model)

        for information_model in SUPPORTED_INFORMATION_MODELS:
            model_dir = self.directory / information_model
            if not model_dir.is_dir():
                continue
            for path in sorted(model_dir.rglob("*.json")):
                self._load_file(path, information_model)

        logger.info(f"Loaded {len(self)} resources from {self.directory}")

    def _load_file(self, path: Path, information_model: str) -> None:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read {path}: {e}")
            return

        if data.get("resourceType") == "Bundle" and "entry" in data:
            documents = [entry.get("resource") for entry in data.get("entry", [])]
        else:
            documents = [data]

        for document in documents:
            if not document:
                continue
            try:
                resource = Resource.from_json(document, information_model)
            except ValueError as e:
                logger.warning(f"Skipping resource in {path}: {e}")
                continue

            if self.has(resource.resource_type, resource.id, information_model):
                logger.warning(
                    f"{resource.resource_type}/{resource.id} ({information_model}) "
                    f"defined again in {path}, keeping the later one"
                )
            self.add(resource)

    def path_for(self, resource: Resource) -> Path:
        return self.directory / resource.information_model / resource.resource_type / f"{resource.id}.json"

    async def create(self, resource: Resource) -> Resource:
        """Write the resource to disk and index it."""
        path = self.path_for(resource)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(dict(resource.data), f, indent=2)

        self.add(resource)
        logger.info(f"Saved {resource.resource_type}/{resource.id}: {path}")
        return resource
