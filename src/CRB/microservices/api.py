"""
FastAPI service for claim validation against policy clauses.

This module exposes the claim validation pipeline (retrieval, LLM decision,
business rules, audit trail) over REST.

Module Input:
    - JSON claim requests
    - Configuration from settings module

Module Output:
    - JSON decisions with matched clause ids and retrieval source
    - HTTP status codes for success/failure
    - Structured error messages

Endpoints:
    GET  /health                  - Service health check
    POST /claims/validate         - Validate a claim
    GET  /claims/{claim_id}/audit - Audit history of a claim
    POST /ingest/policies         - Index the clause corpus into Qdrant
    GET  /clauses                 - List corpus clauses (optional policy_type filter)
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, status
from pydantic import BaseModel

from CRB.core.exceptions import BackendError, InputError, StorageError
from CRB.core.logging_config import get_logger, setup_root_logger
from CRB.core.models import (
    AuditRecord,
    ClaimRequest,
    ClaimValidationResponse,
    IngestionSummary,
    PolicyType,
)
from CRB.services.factory import ServiceContainer, build_services

# Setup logging
setup_root_logger()
logger = get_logger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Claims RAG Bot",
    description="Insurance claim validation against retrieved policy clauses",
    version="0.1.0"
)

# Service container (initialized on startup)
services: Optional[ServiceContainer] = None


# ============== Request/Response Models ==============

class HealthResponse(BaseModel):
    """Response model for service health check."""
    status: str
    corpus_clauses: int
    vector_backend_reachable: bool
    audit: Dict[str, int]


class IngestPoliciesRequest(BaseModel):
    """Request model for clause ingestion."""
    dry_run: bool = False


class ClauseResponse(BaseModel):
    """A corpus clause without its embedding."""
    id: str
    category: str
    coverage_type: str
    text: str


# ============== Dependencies ==============

def get_services() -> ServiceContainer:
    """
    Return the initialized service container.

    Overridden in tests through app.dependency_overrides.
    """
    if services is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Claim validation service not initialized"
        )
    return services


# ============== Startup/Shutdown ==============

@app.on_event("startup")
async def startup_event():
    """
    Initialize services on application startup.

    Side Effects:
        - Loads the clause corpus (fails startup if unusable)
        - Creates Bedrock, Qdrant and audit clients
        - Starts the audit dispatcher thread
    """
    global services

    try:
        services = build_services()
        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}")
        raise


@app.on_event("shutdown")
async def shutdown_event():
    """
    Cleanup on application shutdown.

    Side Effects:
        - Drains pending audit records
        - Logs shutdown
    """
    if services:
        services.close()
    logger.info("Application shutdown complete")


# ============== Health Endpoint ==============

@app.get("/health", response_model=HealthResponse, tags=["Health"])
def health_check(container: ServiceContainer = Depends(get_services)):
    """
    Health check endpoint for service monitoring.

    The service stays usable without Qdrant (lexical fallback), so an
    unreachable vector backend reports "degraded" rather than failing.
    """
    reachable = container.vector_index.ping()
    return HealthResponse(
        status="healthy" if reachable else "degraded",
        corpus_clauses=len(container.corpus),
        vector_backend_reachable=reachable,
        audit=container.audit_dispatcher.stats()
    )


# ============== Claim Endpoints ==============

@app.post("/claims/validate", response_model=ClaimValidationResponse, tags=["Claims"])
def validate_claim(request: ClaimRequest, container: ServiceContainer = Depends(get_services)):
    """
    Validate a claim against the policy clauses of its policy type.

    Example Request:
        ```json
        {
            "policy_number": "POL-2024-001",
            "policy_type": "Motor",
            "claim_amount": 2500,
            "claim_description": "Rear bumper collision damage"
        }
        ```
    """
    try:
        return container.validation_service.validate(request)
    except InputError as e:
        raise HTTPException(status_code=400, detail={"message": e.message, "details": e.details})


@app.get("/claims/{claim_id}/audit", response_model=List[AuditRecord], tags=["Claims"])
def get_claim_audit(
    claim_id: str,
    start: Optional[datetime] = Query(None, description="Inclusive lower bound (ISO 8601)"),
    end: Optional[datetime] = Query(None, description="Inclusive upper bound (ISO 8601)"),
    container: ServiceContainer = Depends(get_services)
):
    """Audit records of a claim, oldest first."""
    try:
        return container.validation_service.audit_history(claim_id, start=start, end=end)
    except InputError as e:
        raise HTTPException(status_code=400, detail={"message": e.message, "details": e.details})
    except StorageError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Audit trail unavailable: {e.message}"
        )


# ============== Policy Endpoints ==============

@app.post("/ingest/policies", response_model=IngestionSummary, tags=["Ingestion"])
def ingest_policies(
    request: Optional[IngestPoliciesRequest] = None,
    container: ServiceContainer = Depends(get_services)
):
    """Embed the clause corpus and index it into the vector backend."""
    dry_run = request.dry_run if request else False
    try:
        return container.ingestion_service.ingest(dry_run=dry_run)
    except BackendError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Vector backend unavailable: {e.message}"
        )


@app.get("/clauses", response_model=List[ClauseResponse], tags=["Policies"])
def list_clauses(
    policy_type: Optional[str] = Query(None, description="Motor, Health, Home or Life"),
    container: ServiceContainer = Depends(get_services)
) -> List[Dict[str, Any]]:
    """List corpus clauses, optionally restricted to one policy type."""
    if policy_type:
        try:
            clauses = container.corpus.by_category(PolicyType.parse(policy_type))
        except InputError as e:
            raise HTTPException(status_code=400, detail={"message": e.message, "details": e.details})
    else:
        clauses = tuple(container.corpus)

    return [
        {
            "id": clause.id,
            "category": clause.category.value,
            "coverage_type": clause.coverage_type,
            "text": clause.text,
        }
        for clause in clauses
    ]


# ============== Server Runner ==============

def run_server():
    """
    Run the FastAPI server with uvicorn.

    Command-line entry point for starting the API server.
    """
    import uvicorn
    uvicorn.run(
        "CRB.microservices.api:app",
        host="0.0.0.0",
        port=8000,
        log_level="info"
    )


if __name__ == "__main__":
    run_server()
