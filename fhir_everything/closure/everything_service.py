"""$everything orchestration.

Resolves the root resource, checks its information model, runs the
configured traversal strategy and optionally persists the resulting bundle.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .bundle import SearchBundle
from .closure_builder import ClosureBuilder
from .compartment import CompartmentSearchParam, CompartmentSearchStrategy
from .config import EVERYTHING_TRAVERSAL_MODE, TRAVERSAL_CLOSURE, TRAVERSAL_COMPARTMENT
from .extractor import ReferenceExtractor
from .logging import ClosureTraceLogger, closure_trace_context, get_closure_trace_logger
from .outcomes import (
    ClosureFailure,
    EverythingStatus,
    ModelMismatch,
    RootNotFound,
    operation_outcome,
)
from .resolver import ReferenceResolver
from .schema import SchemaRegistry, default_schema_registry
from .store import ChangeRecorder, ResourceStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EverythingResult:
    """Result of one $everything run."""
    status: EverythingStatus
    bundle: Optional[SearchBundle] = None
    failure: Optional[ClosureFailure] = None

    @property
    def ok(self) -> bool:
        return self.status == EverythingStatus.SUCCESS

    @property
    def unresolved_kind(self) -> Optional[str]:
        """Issue code of an unresolved reference ("not-found" or "not-supported")."""
        if self.status != EverythingStatus.UNRESOLVED_REFERENCE or self.failure is None:
            return None
        return self.failure.kind

    def resource(self) -> Optional[Dict[str, Any]]:
        """Bundle JSON of a successful run."""
        if self.bundle is None:
            return None
        return self.bundle.to_dict()

    def outcome(self) -> Dict[str, Any]:
        """OperationOutcome describing the failure (empty issue list on success)."""
        return operation_outcome([self.failure] if self.failure else [])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "bundle": self.resource(),
            "outcome": self.outcome() if self.failure else None,
        }


class EverythingService:
    """Runs $everything against a resource store."""

    def __init__(
        self,
        store: ResourceStore,
        schemas: Optional[SchemaRegistry] = None,
        change_recorder: Optional[ChangeRecorder] = None,
        search_list: Optional[List[CompartmentSearchParam]] = None,
        traversal: str = EVERYTHING_TRAVERSAL_MODE,
        trace_logger: Optional[ClosureTraceLogger] = None,
    ):
        """Initialize the service.

        Args:
            store: Store the root and its references are read from
            schemas: Schema registry (defaults to STU3 + R4)
            change_recorder: Where persisted bundles go (defaults to the store)
            search_list: Compartment search list for the compartment traversal
            traversal: "closure" or "compartment"
            trace_logger: Trace logger (defaults to the global one)

        Raises:
            ValueError: If the traversal mode is unknown
        """
        self.store = store
        self.schemas = schemas if schemas is not None else default_schema_registry()
        self.change_recorder = change_recorder if change_recorder is not None else store
        self.traversal = traversal
        self.trace_logger = trace_logger if trace_logger is not None else get_closure_trace_logger()

        self.resolver = ReferenceResolver(store)

        if traversal == TRAVERSAL_CLOSURE:
            self.strategy = ClosureBuilder(
                self.resolver, ReferenceExtractor(self.schemas), self.trace_logger
            )
        elif traversal == TRAVERSAL_COMPARTMENT:
            self.strategy = CompartmentSearchStrategy(
                store, search_list if search_list is not None else [], self.trace_logger
            )
        else:
            raise ValueError(f"Unknown traversal mode: {traversal}")

        logger.info(f"EverythingService ready (traversal: {traversal})")

    async def run_closure(
        self,
        root_type: str,
        root_id: str,
        information_model: str,
        persist: bool = False,
    ) -> EverythingResult:
        """Collect everything related to ``root_type/root_id``.

        Args:
            root_type: Resource type the operation is called on
            root_id: Resource id
            information_model: Information model of the request
            persist: Store the resulting bundle when the run succeeds

        Returns:
            EverythingResult with the status, the bundle on success and the
            failure otherwise
        """
        root_reference = f"{root_type}/{root_id}"

        with closure_trace_context(root_reference, information_model, self.trace_logger.logger):
            resolution = await self.resolver.resolve_key(root_type, root_id, information_model)
            if not resolution.ok:
                self.trace_logger.log_root_not_found(root_reference)
                return self._finish(
                    EverythingResult(EverythingStatus.ROOT_NOT_FOUND, failure=RootNotFound(root_reference))
                )

            root = resolution.resource
            if root.information_model != information_model:
                failure = ModelMismatch(
                    reference=root_reference,
                    expected=information_model,
                    found=root.information_model,
                )
                self.trace_logger.log_model_mismatch(
                    root_reference, information_model, root.information_model, depth=0
                )
                return self._finish(EverythingResult(EverythingStatus.MODEL_MISMATCH, failure=failure))

            bundle = SearchBundle.create_empty().add_entry(root, root_reference)
            outcome = await self.strategy.collect(root, bundle)

            if not outcome.ok:
                status = (
                    EverythingStatus.MODEL_MISMATCH
                    if isinstance(outcome.failure, ModelMismatch)
                    else EverythingStatus.UNRESOLVED_REFERENCE
                )
                return self._finish(EverythingResult(status, failure=outcome.failure))

            bundle = outcome.bundle
            if persist:
                await self.change_recorder.create(bundle.to_resource(information_model))
                self.trace_logger.log_bundle_persisted(bundle.id, len(bundle))

            return self._finish(EverythingResult(EverythingStatus.SUCCESS, bundle=bundle))

    def _finish(self, result: EverythingResult) -> EverythingResult:
        entry_count = len(result.bundle) if result.bundle is not None else 0
        self.trace_logger.log_closure_complete(result.status.value, entry_count)
        return result
