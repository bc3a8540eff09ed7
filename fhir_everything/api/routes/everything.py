"""$everything endpoint."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import JSONResponse

from ...closure.config import EVERYTHING_RESOURCE_TYPES, FHIR_JSON_MEDIA_TYPE
from ...closure.everything_service import EverythingResult, EverythingService
from ...closure.outcomes import EverythingStatus, ISSUE_NOT_SUPPORTED
from ..models import OperationOutcome
from ..services.everything_provider import get_everything_service, information_model_from_accept

logger = logging.getLogger(__name__)

router = APIRouter(tags=["everything"])

STATUS_CODES = {
    EverythingStatus.SUCCESS: 200,
    EverythingStatus.ROOT_NOT_FOUND: 404,
    EverythingStatus.MODEL_MISMATCH: 415,
    EverythingStatus.UNRESOLVED_REFERENCE: 500,
}


def _fhir_response(content: dict, status_code: int, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        content=content,
        status_code=status_code,
        headers=headers,
        media_type=FHIR_JSON_MEDIA_TYPE,
    )


def _result_response(result: EverythingResult) -> JSONResponse:
    status_code = STATUS_CODES[result.status]
    if result.ok:
        return _fhir_response(
            result.resource(),
            status_code,
            headers={"Location": f"Bundle/{result.bundle.id}"},
        )
    return _fhir_response(result.outcome(), status_code)


@router.get("/{resource_type}/{resource_id}/$everything")
async def everything(
    resource_type: str,
    resource_id: str,
    persist: Optional[str] = Query(None, description="Store the resulting Bundle when 'true'"),
    accept: Optional[str] = Header(None),
    service: EverythingService = Depends(get_everything_service),
):
    """Return the resource and everything it references as a searchset Bundle."""
    if resource_type not in EVERYTHING_RESOURCE_TYPES:
        outcome = OperationOutcome.single(
            ISSUE_NOT_SUPPORTED, f"$everything is not supported on {resource_type}"
        )
        return _fhir_response(outcome.model_dump(exclude_none=True), 404)

    information_model = information_model_from_accept(accept)
    if information_model is None:
        outcome = OperationOutcome.single(
            ISSUE_NOT_SUPPORTED, f"Requested fhirVersion is not supported ({accept})"
        )
        return _fhir_response(outcome.model_dump(exclude_none=True), 415)

    should_persist = persist == "true"
    result = await service.run_closure(
        resource_type, resource_id, information_model, persist=should_persist
    )

    entry_count = len(result.bundle) if result.bundle is not None else 0
    logger.info(
        f"GET /{resource_type}/{resource_id}/$everything -> {result.status.value} "
        f"({entry_count} entries, persist={should_persist})"
    )
    return _result_response(result)
