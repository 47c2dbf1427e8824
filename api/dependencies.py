"""
FastAPI dependency injection utilities.
Builds the export orchestrator once per process and fills tracing ids.
"""
import uuid
from functools import lru_cache, partial
from typing import Dict

from isdoc_config import settings
from isdoc_export.core.validators import (
    CompositeValidator,
    DocumentValidator,
    SchemaCache,
    SchemaValidator,
    StructuralValidator,
    fetch_schema,
)
from isdoc_export.orchestrator import ExportOrchestrator
from api.schemas import RequestContext


@lru_cache(maxsize=1)
def get_schema_cache() -> SchemaCache:
    """
    Process-wide XSD cache. Populated lazily on first deep validation.
    """
    if settings.SCHEMA_LOCAL_PATH:
        return SchemaCache.from_local_file(settings.SCHEMA_LOCAL_PATH)
    return SchemaCache(
        settings.ISDOC_SCHEMA_URL,
        loader=partial(fetch_schema, timeout=settings.SCHEMA_FETCH_TIMEOUT_SEC),
    )


@lru_cache(maxsize=1)
def get_validator() -> DocumentValidator:
    """
    Process-wide validator, so the XSD is compiled once and not per request.
    """
    if settings.SCHEMA_VALIDATION_ENABLED:
        return CompositeValidator(StructuralValidator(), SchemaValidator(get_schema_cache()))
    return StructuralValidator()


@lru_cache(maxsize=1)
def get_orchestrator() -> ExportOrchestrator:
    return ExportOrchestrator(validator=get_validator(), config=settings)


def build_context(context: RequestContext) -> Dict[str, str]:
    """
    Generate tracing ids if not provided.

    Args:
        context: Context sent with the request

    Returns:
        Flat context dict for the orchestrator
    """
    trace_id = context.trace_id or str(uuid.uuid4())
    execution_id = context.execution_id or f"isdoc_{uuid.uuid4().hex[:12]}"
    return {"trace_id": trace_id, "execution_id": execution_id}
