"""Construction and lookup of the EverythingService used by the API."""

import logging
from typing import Optional

from fastapi import Request

from ...closure.compartment import load_compartment_search_list
from ...closure.config import (
    DEFAULT_INFORMATION_MODEL,
    EVERYTHING_TRAVERSAL_MODE,
    FHIR_VERSIONS,
    STORE_DIR,
    TRAVERSAL_COMPARTMENT,
)
from ...closure.everything_service import EverythingService
from ...closure.schema import default_schema_registry
from ...closure.store import FileResourceStore

logger = logging.getLogger(__name__)


def build_default_service(traversal: str = EVERYTHING_TRAVERSAL_MODE) -> EverythingService:
    """Create a service over the file store in STORE_DIR."""
    store = FileResourceStore(STORE_DIR)
    search_list = load_compartment_search_list() if traversal == TRAVERSAL_COMPARTMENT else None
    return EverythingService(
        store,
        schemas=default_schema_registry(),
        search_list=search_list,
        traversal=traversal,
    )


def get_everything_service(request: Request) -> EverythingService:
    """FastAPI dependency returning the application's service."""
    return request.app.state.everything_service


def information_model_from_accept(accept: Optional[str]) -> Optional[str]:
    """Map the fhirVersion parameter of an Accept header to an information model.

    ``application/fhir+json; fhirVersion=3.0`` selects STU3. A missing
    header or parameter selects the default model; an unknown version
    returns None.

    Args:
        accept: Raw Accept header value

    Returns:
        Information model, or None when the requested version is not served
    """
    if not accept:
        return DEFAULT_INFORMATION_MODEL

    for media_range in accept.split(","):
        for parameter in media_range.split(";")[1:]:
            name, _, value = parameter.partition("=")
            if name.strip().lower() != "fhirversion":
                continue
            version = ".".join(value.strip().strip('"').split(".")[:2])
            model = FHIR_VERSIONS.get(version)
            if model is None:
                logger.info(f"Requested unsupported fhirVersion {value.strip()}")
            return model

    return DEFAULT_INFORMATION_MODEL
