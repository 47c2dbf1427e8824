from typing import List, Optional, Dict, Literal, Any
from datetime import datetime
from pydantic import BaseModel, Field


class ValidationResult(BaseModel):
    valid: bool
    errors: List[str] = Field(default_factory=list)


class ExportEvent(BaseModel):
    """
    Immutable record of one pipeline stage.
    Audit trail of an export; details stay flat and serializable.
    """
    timestamp: datetime = Field(default_factory=datetime.now)
    stage: Literal["ASSEMBLE", "SERIALIZE", "VALIDATE"]
    status: Literal["SUCCESS", "FAILURE"]
    details: Dict[str, Any] = Field(default_factory=dict)
    error_policy: Literal["ABORT", "CONTINUE"] = "ABORT"


class IsdocFile(BaseModel):
    file_name: str
    content: str


class ExportResult(BaseModel):
    """
    Outcome of one transaction export.
    Payload only exists when status == success.
    """
    trace_id: str
    execution_id: str
    transaction_id: Optional[str] = None

    start_time: datetime
    end_time: Optional[datetime] = None

    status: Literal["success", "error"]
    invoice_id: Optional[str] = None

    events: List[ExportEvent] = Field(default_factory=list)
    validation: Optional[ValidationResult] = None
    payload: Optional[IsdocFile] = None
    error: Optional[str] = None
    error_type: Optional[str] = None


class ExportFailure(BaseModel):
    transaction_id: str
    message: str


class BatchExportResult(BaseModel):
    """success is False only when no transaction could be exported."""
    success: bool
    exports: List[IsdocFile] = Field(default_factory=list)
    failures: List[ExportFailure] = Field(default_factory=list)
    error: Optional[str] = None
