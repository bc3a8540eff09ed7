"""Failure taxonomy and operation status for $everything.

Failures are values, not exceptions: the closure builder returns the first
one it meets and stops. Each failure knows how to render itself as an
OperationOutcome issue.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, Optional

from .config import ISSUE_DETAILS_SYSTEM

# OperationOutcome.issue.code values
ISSUE_NOT_FOUND = "not-found"
ISSUE_NOT_SUPPORTED = "not-supported"
ISSUE_PROCESSING = "processing"

ISSUE_SEVERITY_ERROR = "error"


class EverythingStatus(str, Enum):
    """Caller-visible outcome of an $everything run."""
    SUCCESS = "success"
    ROOT_NOT_FOUND = "root_not_found"
    MODEL_MISMATCH = "model_mismatch"
    UNRESOLVED_REFERENCE = "unresolved_reference"


@dataclass(frozen=True)
class ClosureFailure:
    """A failure that terminates the whole closure."""
    reference: str

    issue_type = ISSUE_PROCESSING
    details_code: ClassVar[Optional[str]] = None

    @property
    def kind(self) -> str:
        return self.issue_type

    @property
    def message(self) -> str:
        return f"Unable to process reference {self.reference}"

    def to_issue(self) -> Dict[str, Any]:
        """Render as an OperationOutcome issue."""
        details: Dict[str, Any] = {"text": self.message}
        if self.details_code:
            details["coding"] = [{"system": ISSUE_DETAILS_SYSTEM, "code": self.details_code}]
        return {
            "severity": ISSUE_SEVERITY_ERROR,
            "code": self.issue_type,
            "details": details,
        }


@dataclass(frozen=True)
class ReferenceNotFound(ClosureFailure):
    """A local reference did not resolve in the store."""

    issue_type = ISSUE_NOT_FOUND
    details_code = "MSG_LOCAL_FAIL"

    @property
    def message(self) -> str:
        return f"Unable to resolve local reference to resource {self.reference}"


@dataclass(frozen=True)
class ReferenceUnsupported(ClosureFailure):
    """An absolute (remote) reference; these are never fetched."""

    issue_type = ISSUE_NOT_SUPPORTED
    details_code = "MSG_EXTERNAL_FAIL"

    @property
    def message(self) -> str:
        return f"Resolving external resource references ({self.reference}) is not supported"


@dataclass(frozen=True)
class ModelMismatch(ClosureFailure):
    """A resolved resource belongs to a different information model.

    ``reference`` is the key of the offending resource.
    """
    expected: str
    found: str

    @property
    def message(self) -> str:
        return (
            f"Found {self.reference} in information model {self.found}. "
            f"Expected information model {self.expected} instead."
        )


@dataclass(frozen=True)
class RootNotFound(ClosureFailure):
    """The resource $everything was called on does not exist."""

    issue_type = ISSUE_NOT_FOUND

    @property
    def message(self) -> str:
        return f"Resource {self.reference} does not exist"


def operation_outcome(failures: Iterable[ClosureFailure]) -> Dict[str, Any]:
    """Build an OperationOutcome resource from failures."""
    return {
        "resourceType": "OperationOutcome",
        "issue": [failure.to_issue() for failure in failures],
    }
