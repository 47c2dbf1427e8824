"""
Pydantic schemas for API contracts.
Transactions and profiles arrive already fetched; the API never persists them.
"""
from typing import Optional, Literal, Dict, List
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from isdoc_export.schema.models import Transaction, UserProfile
from isdoc_export.schema.orchestrator_models import ExportEvent


class RequestContext(BaseModel):
    """
    Tracing metadata for an export request.
    """
    trace_id: Optional[str] = Field(None, description="Distributed tracing ID")
    execution_id: Optional[str] = Field(None, description="Unique execution identifier")
    source: Optional[str] = Field(None, description="Source system identifier")

    @field_validator("trace_id", "execution_id")
    @classmethod
    def validate_ids(cls, v: Optional[str]) -> Optional[str]:
        """Ensure ids contain only safe characters."""
        if v is not None and not v.replace("-", "").replace("_", "").isalnum():
            raise ValueError("ids must contain only alphanumeric, dash, or underscore")
        return v


class ExportRequest(BaseModel):
    transaction: Transaction
    profile: UserProfile
    context: RequestContext = Field(default_factory=RequestContext)


class BatchExportRequest(BaseModel):
    transactions: List[Transaction]
    profile: UserProfile
    context: RequestContext = Field(default_factory=RequestContext)


class ExportResponse(BaseModel):
    """
    Standard API response for a single export.
    """
    execution_id: str
    trace_id: Optional[str] = None
    status: Literal["success", "error"]
    invoice_id: Optional[str] = None
    file_name: Optional[str] = None
    content: Optional[str] = None
    valid: bool
    errors: List[str] = Field(default_factory=list)
    events: List[ExportEvent] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=datetime.now)


class HealthResponse(BaseModel):
    """
    Health check response.
    """
    status: Literal["healthy", "degraded", "unhealthy"]
    version: str
    timestamp: datetime = Field(default_factory=datetime.now)
    checks: Dict[str, bool] = Field(default_factory=dict)
