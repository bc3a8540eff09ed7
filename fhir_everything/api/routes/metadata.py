"""CapabilityStatement endpoint."""

import logging
from typing import Optional

from fastapi import APIRouter, Header
from fastapi.responses import JSONResponse

from ...closure.config import FHIR_JSON_MEDIA_TYPE
from ...closure.conformance import EverythingConformanceContributor, build_capability_statement
from ...closure.outcomes import ISSUE_NOT_SUPPORTED
from ..models import OperationOutcome
from ..services.everything_provider import information_model_from_accept

logger = logging.getLogger(__name__)

router = APIRouter(tags=["metadata"])

contributors = [EverythingConformanceContributor()]


@router.get("/metadata")
async def capability_statement(accept: Optional[str] = Header(None)):
    """Get the server CapabilityStatement."""
    information_model = information_model_from_accept(accept)
    if information_model is None:
        outcome = OperationOutcome.single(
            ISSUE_NOT_SUPPORTED, f"Requested fhirVersion is not supported ({accept})"
        )
        return JSONResponse(
            content=outcome.model_dump(exclude_none=True),
            status_code=415,
            media_type=FHIR_JSON_MEDIA_TYPE,
        )

    return JSONResponse(
        content=build_capability_statement(information_model, contributors),
        media_type=FHIR_JSON_MEDIA_TYPE,
    )
