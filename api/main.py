"""
FastAPI application entry point.
Handles ISDOC export requests with strict separation of concerns:
- API validates input and dispatches
- Orchestrator makes all business decisions
- No persistence at API layer (transactions and profile come in the request)
"""
import logging
from typing import Annotated
from fastapi import FastAPI, Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from isdoc_config import settings, configure_logging
from isdoc_export.core.errors import FeatureDisabled, PreconditionError, StructuralViolation
from isdoc_export.core.validators import DocumentValidator
from isdoc_export.orchestrator import ExportOrchestrator
from isdoc_export.schema.orchestrator_models import BatchExportResult, ValidationResult
from api.schemas import BatchExportRequest, ExportRequest, ExportResponse, HealthResponse
from api.dependencies import build_context, get_orchestrator, get_validator

configure_logging()
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="ISDOC 6.0.2 export API for extracted invoice transactions",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """
    Health check endpoint.
    Returns service status and basic diagnostics.
    """
    return HealthResponse(
        status="healthy",
        version=settings.APP_VERSION,
        checks={
            "api": True,
            "isdoc_enabled": settings.ISDOC_ENABLED,
        }
    )


@app.post("/v1/export/isdoc", response_model=ExportResponse, tags=["Export"])
def export_isdoc(
    request: ExportRequest,
    orchestrator: Annotated[ExportOrchestrator, Depends(get_orchestrator)],
):
    """
    Export one transaction to ISDOC.

    **Flow:**
    1. Check ISDOC is enabled for the profile
    2. Assemble, serialize and validate
    3. Return rendered XML with the validation outcome and audit trail
    """
    context = build_context(request.context)
    result = orchestrator.process(request.transaction, request.profile, context)

    if result.error_type == FeatureDisabled.__name__:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=result.error)
    if result.status == "error" and result.validation is None:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=result.error)

    validation = result.validation
    response = ExportResponse(
        execution_id=result.execution_id,
        trace_id=result.trace_id,
        status=result.status,
        invoice_id=result.invoice_id,
        file_name=result.payload.file_name if result.payload else None,
        content=result.payload.content if result.payload else None,
        valid=validation.valid,
        errors=validation.errors,
        events=result.events,
    )

    if not validation.valid:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=response.model_dump(mode="json"),
        )
    return response


@app.post("/v1/export/isdoc/file", tags=["Export"])
def download_isdoc(
    request: ExportRequest,
    orchestrator: Annotated[ExportOrchestrator, Depends(get_orchestrator)],
):
    """
    Export one transaction and return the `.isdoc` file itself.
    """
    try:
        isdoc_file = orchestrator.export(request.transaction, request.profile, build_context(request.context))
    except FeatureDisabled as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except PreconditionError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except StructuralViolation as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.errors)

    return Response(
        content=isdoc_file.content,
        media_type="application/xml",
        headers={"Content-Disposition": f'attachment; filename="{isdoc_file.file_name}"'},
    )


@app.post("/v1/export/isdoc/batch", response_model=BatchExportResult, tags=["Export"])
def export_isdoc_batch(
    request: BatchExportRequest,
    orchestrator: Annotated[ExportOrchestrator, Depends(get_orchestrator)],
):
    """
    Export many transactions. Failed items are listed in `failures`; the
    request only fails when nothing could be exported.
    """
    if len(request.transactions) > settings.API_MAX_BATCH_SIZE:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Batch too large. Max size: {settings.API_MAX_BATCH_SIZE}"
        )

    if not settings.ISDOC_ENABLED or not request.profile.isdoc_enabled:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(FeatureDisabled()))

    result = orchestrator.process_batch(request.transactions, request.profile, build_context(request.context))

    if not result.success:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=result.model_dump(mode="json"),
        )
    return result


@app.post("/v1/validate/isdoc", response_model=ValidationResult, tags=["Validation"])
async def validate_isdoc(
    request: Request,
    validator: Annotated[DocumentValidator, Depends(get_validator)],
):
    """
    Validate an ISDOC document sent as the raw request body.
    """
    body = await request.body()
    try:
        content = body.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Document must be UTF-8 encoded"
        )
    return validator.validate(content)


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """
    Global exception handler for unexpected errors.
    """
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "error": str(exc) if settings.DEBUG else "An unexpected error occurred"
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG
    )
