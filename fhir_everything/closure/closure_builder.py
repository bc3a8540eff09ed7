"""Reference closure builder.

Starting from a root resource, follows every reference depth-first in
document order and adds each newly resolved resource to the bundle.

Core rules:
- A reference string is resolved at most once per run (cycles terminate)
- Contained references (#id) are never resolved
- The first failure in traversal order aborts the whole run
- A resolved resource must share its referrer's information model
"""

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Set

from .bundle import SearchBundle
from .extractor import ReferenceExtractor
from .logging import ClosureTraceLogger, get_closure_trace_logger, resolution_trace_context
from .outcomes import ClosureFailure, ModelMismatch
from .resolver import ReferenceResolver
from .resources import Resource, is_contained_reference

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClosureOutcome:
    """Bundle built so far, plus the failure that stopped the run (if any)."""
    bundle: SearchBundle
    failure: Optional[ClosureFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass
class _Frame:
    """A resource whose references are being walked."""
    resource: Resource
    references: Iterator[str]
    depth: int


class ClosureBuilder:
    """Builds the transitive reference closure of a resource.

    Traversal uses an explicit stack of frames instead of recursion so
    long reference chains are not limited by the interpreter stack. The
    visiting order is the same as a recursive depth-first walk: each
    resolved resource is expanded completely before the next sibling
    reference is looked at.
    """

    def __init__(
        self,
        resolver: ReferenceResolver,
        extractor: ReferenceExtractor,
        trace_logger: Optional[ClosureTraceLogger] = None,
    ):
        """Initialize the closure builder.

        Args:
            resolver: Resolves reference strings against the store
            extractor: Lists the references of a resource
            trace_logger: Trace logger (defaults to the global one)
        """
        self.resolver = resolver
        self.extractor = extractor
        self.trace_logger = trace_logger if trace_logger is not None else get_closure_trace_logger()

    async def build_closure(self, root: Resource, bundle: SearchBundle) -> ClosureOutcome:
        """Add everything reachable from ``root`` to ``bundle``.

        References already present in the bundle (normally the root's own
        Type/id) count as visited.

        Args:
            root: Resource to start from
            bundle: Bundle to extend

        Returns:
            ClosureOutcome with the extended bundle; on failure the bundle
            holds exactly the entries added before the failing reference
        """
        visited: Set[str] = set(bundle.references)
        stack: List[_Frame] = [self._frame(root, depth=1)]

        while stack:
            frame = stack[-1]
            reference = next(frame.references, None)
            if reference is None:
                stack.pop()
                continue

            if is_contained_reference(reference):
                self.trace_logger.log_reference_skipped(reference, "contained", frame.depth)
                continue
            if reference in visited:
                self.trace_logger.log_reference_skipped(reference, "visited", frame.depth)
                continue

            with resolution_trace_context(reference, frame.depth):
                resolution = await self.resolver.resolve(reference, frame.resource.information_model)

            if not resolution.ok:
                self.trace_logger.log_resolution_failed(
                    reference, resolution.failure.kind, frame.depth
                )
                return ClosureOutcome(bundle, resolution.failure)

            resolved = resolution.resource
            if resolved.information_model != frame.resource.information_model:
                failure = ModelMismatch(
                    reference=str(resolved.key),
                    expected=frame.resource.information_model,
                    found=resolved.information_model,
                )
                self.trace_logger.log_model_mismatch(
                    failure.reference, failure.expected, failure.found, frame.depth
                )
                return ClosureOutcome(bundle, failure)

            bundle = bundle.add_entry(resolved, reference)
            visited.add(reference)
            self.trace_logger.log_reference_resolved(
                reference, resolved.resource_type, resolved.id, frame.depth, len(bundle)
            )

            stack.append(self._frame(resolved, depth=frame.depth + 1))

        logger.debug(f"Closure of {root.resource_type}/{root.id} has {len(bundle)} entries")
        return ClosureOutcome(bundle)

    async def collect(self, root: Resource, bundle: SearchBundle) -> ClosureOutcome:
        """Traversal strategy entry point."""
        return await self.build_closure(root, bundle)

    def _frame(self, resource: Resource, depth: int) -> _Frame:
        return _Frame(resource, iter(self.extractor.extract(resource)), depth)
