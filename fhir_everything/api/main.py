"""FastAPI application for the FHIR $everything service."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request

from ..closure.config import (
    EVERYTHING_TRAVERSAL_MODE,
    LOG_DIR,
    LOG_FORMAT,
    LOG_SESSIONS_KEEP,
    STORE_DIR,
)
from ..closure.everything_service import EverythingService
from ..closure.logging import initialize_closure_trace_logger, prune_sessions
from .models import HealthResponse
from .routes import everything, metadata
from .services.everything_provider import build_default_service

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format=LOG_FORMAT,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting FHIR $everything API server")

    if app.state.everything_service is None:
        prune_sessions(LOG_DIR, keep=LOG_SESSIONS_KEEP)
        session_id = initialize_closure_trace_logger(metadata={
            "service": "api",
            "traversal": EVERYTHING_TRAVERSAL_MODE,
            "store_dir": STORE_DIR,
        })
        logger.info(f"Closure trace session: {session_id}")
        app.state.everything_service = build_default_service()

    yield

    logger.info("Shutting down FHIR $everything API server")


def create_app(service: Optional[EverythingService] = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        service: Service to serve requests with; when omitted the lifespan
            builds one over the configured file store

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="FHIR $everything API",
        description="Reference closure ($everything) for FHIR resources",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.everything_service = service

    app.include_router(metadata.router)
    app.include_router(everything.router)

    @app.get("/api/health", response_model=HealthResponse)
    async def health_check(request: Request):
        """Health check endpoint."""
        current = request.app.state.everything_service
        if current is None:
            return HealthResponse(status="starting")

        store = current.store
        return HealthResponse(
            traversal=current.traversal,
            resource_count=len(store) if hasattr(store, "__len__") else None,
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
