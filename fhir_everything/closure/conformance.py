"""CapabilityStatement support for the $everything operation."""

import copy
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from .config import (
    EVERYTHING_OPERATION,
    EVERYTHING_OPERATION_DEFINITION,
    FHIR_JSON_MEDIA_TYPE,
    FHIR_R3,
    FHIR_R4,
    FHIR_RELEASES,
    SUPPORTED_CUSTOM_OPERATIONS,
)

logger = logging.getLogger(__name__)


class EverythingConformanceContributor:
    """Advertises $everything in the CapabilityStatement of STU3 and R4."""

    information_models = (FHIR_R3, FHIR_R4)

    def __init__(self, supported_operations: Optional[Iterable[str]] = None):
        if supported_operations is None:
            supported_operations = SUPPORTED_CUSTOM_OPERATIONS
        self.supported_operations = frozenset(supported_operations)

    def applies_to(self, information_model: str) -> bool:
        return information_model in self.information_models

    def contribute(self, capability_statement: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of the statement with the everything operation added.

        The statement is returned unchanged when the operation is not
        enabled.
        """
        statement = copy.deepcopy(capability_statement)
        if EVERYTHING_OPERATION not in self.supported_operations:
            return statement

        rest = statement.setdefault("rest", [])
        if not rest:
            rest.append({"mode": "server"})

        operations = rest[0].setdefault("operation", [])
        if not any(op.get("name") == EVERYTHING_OPERATION for op in operations):
            operations.append({
                "name": EVERYTHING_OPERATION,
                "definition": EVERYTHING_OPERATION_DEFINITION,
            })
        return statement


def build_capability_statement(
    information_model: str,
    contributors: Iterable[EverythingConformanceContributor] = (),
) -> Dict[str, Any]:
    """Build the server CapabilityStatement for an information model.

    Args:
        information_model: Model the statement describes
        contributors: Contributors that add their capabilities

    Returns:
        CapabilityStatement dictionary
    """
    statement: Dict[str, Any] = {
        "resourceType": "CapabilityStatement",
        "status": "active",
        "date": datetime.now(timezone.utc).isoformat(),
        "kind": "instance",
        "fhirVersion": FHIR_RELEASES[information_model],
        "format": [FHIR_JSON_MEDIA_TYPE, "json"],
        "rest": [{"mode": "server"}],
    }

    for contributor in contributors:
        if contributor.applies_to(information_model):
            statement = contributor.contribute(statement)

    logger.debug(f"Built CapabilityStatement for {information_model}")
    return statement
