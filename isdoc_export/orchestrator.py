import hashlib
import logging
import re
import time
from datetime import datetime
from typing import Dict, Optional, Sequence

from isdoc_config import Settings, settings as default_settings

from .core.assembler import InvoiceAssembler
from .core.errors import FeatureDisabled, PreconditionError, StructuralViolation
from .core.serializer import generate_isdoc_xml
from .core.validators import DocumentValidator, StructuralValidator
from .core.vat import breakdown_mismatch
from .schema.models import Transaction, UserProfile
from .schema.orchestrator_models import (
    BatchExportResult,
    ExportEvent,
    ExportFailure,
    ExportResult,
    IsdocFile,
)

logger = logging.getLogger(__name__)


def suggest_file_name(invoice_id: str, fallback: str = "invoice") -> str:
    safe_id = re.sub(r"[^A-Za-z0-9._-]+", "_", invoice_id).strip("._") or fallback
    return f"invoice_{safe_id}.isdoc"


class ExportOrchestrator:
    """
    Coordinates Assembler -> Serializer -> Validator for ISDOC export.
    Every call starts from scratch; nothing is shared between exports.
    Does not fetch or persist anything: transactions and profile come from the caller.
    """

    def __init__(
        self,
        assembler: Optional[InvoiceAssembler] = None,
        validator: Optional[DocumentValidator] = None,
        config: Optional[Settings] = None,
    ):
        self.config = config or default_settings
        self.assembler = assembler or InvoiceAssembler(config=self.config)
        self.validator = validator or StructuralValidator()

    def _calculate_hash(self, data: str) -> str:
        """Deterministic SHA-256 of the rendered document."""
        return hashlib.sha256(data.encode("utf-8")).hexdigest()

    def _ensure_enabled(self, profile: Optional[UserProfile]) -> None:
        if not self.config.ISDOC_ENABLED:
            raise FeatureDisabled()
        if profile is not None and not profile.isdoc_enabled:
            raise FeatureDisabled()

    def _new_result(self, transaction: Optional[Transaction], context: Optional[Dict[str, str]]) -> ExportResult:
        context = context or {}
        return ExportResult(
            trace_id=context.get("trace_id", "unknown_trace"),
            execution_id=context.get("execution_id", "unknown_exec"),
            transaction_id=transaction.id if transaction is not None else None,
            start_time=datetime.now(),
            status="error",  # pessimistic until validation passes
        )

    def _run(self, transaction: Optional[Transaction], profile: Optional[UserProfile], result: ExportResult) -> None:
        self._ensure_enabled(profile)

        # ====================================================
        # 1. ASSEMBLE STAGE
        # ====================================================
        start = time.time()
        try:
            document = self.assembler.assemble(transaction, profile)
        except Exception as e:
            result.events.append(ExportEvent(
                stage="ASSEMBLE",
                status="FAILURE",
                details={"error": str(e)},
                error_policy="ABORT"
            ))
            raise

        totals = document.totals
        result.invoice_id = document.id
        result.events.append(ExportEvent(
            stage="ASSEMBLE",
            status="SUCCESS",
            details={
                "duration_sec": round(time.time() - start, 4),
                "line_items_count": len(document.line_items),
                "vat_rates": list(totals.vat_breakdown.keys()),
                "vat_breakdown_mismatch": str(breakdown_mismatch(totals.vat_breakdown, totals.total_without_vat)),
                "payment_method_code": document.payment_info.payment_method_code,
                "has_bank_account": document.supplier.bank_account is not None,
            },
            error_policy="CONTINUE"
        ))

        # ====================================================
        # 2. SERIALIZE STAGE
        # ====================================================
        start = time.time()
        try:
            content = generate_isdoc_xml(document)
        except Exception as e:
            result.events.append(ExportEvent(
                stage="SERIALIZE",
                status="FAILURE",
                details={"error": str(e)},
                error_policy="ABORT"
            ))
            raise

        result.events.append(ExportEvent(
            stage="SERIALIZE",
            status="SUCCESS",
            details={
                "duration_sec": round(time.time() - start, 4),
                "size_bytes": len(content.encode("utf-8")),
                "content_hash_sha256": self._calculate_hash(content),
            },
            error_policy="CONTINUE"
        ))

        # ====================================================
        # 3. VALIDATE STAGE
        # ====================================================
        validation = self.validator.validate(content)
        result.validation = validation
        result.events.append(ExportEvent(
            stage="VALIDATE",
            status="SUCCESS" if validation.valid else "FAILURE",
            details={"error_count": len(validation.errors)},
            error_policy="CONTINUE" if validation.valid else "ABORT"
        ))

        if not validation.valid:
            result.error = "; ".join(validation.errors)
            result.error_type = StructuralViolation.__name__
            return

        result.payload = IsdocFile(
            file_name=suggest_file_name(document.id, fallback=document.uuid),
            content=content,
        )
        result.status = "success"

    def process(
        self,
        transaction: Optional[Transaction],
        profile: Optional[UserProfile],
        context: Optional[Dict[str, str]] = None,
    ) -> ExportResult:
        """
        Runs the full export and always returns a result (status "error" on
        any failure, with the audit trail recorded up to that point).
        """
        result = self._new_result(transaction, context)
        try:
            self._run(transaction, profile, result)
        except Exception as e:
            result.status = "error"
            result.error = str(e)
            result.error_type = type(e).__name__
            logger.error("ISDOC export failed for transaction %s: %s", result.transaction_id, e)
        finally:
            result.end_time = datetime.now()

        if result.status == "success":
            logger.info("Exported transaction %s as %s", result.transaction_id, result.payload.file_name)
        return result

    def export(
        self,
        transaction: Optional[Transaction],
        profile: Optional[UserProfile],
        context: Optional[Dict[str, str]] = None,
    ) -> IsdocFile:
        """
        Strict single export.

        Raises:
            PreconditionError: transaction/profile missing or ISDOC disabled
            StructuralViolation: rendered document did not validate
        """
        result = self._new_result(transaction, context)
        try:
            self._run(transaction, profile, result)
        finally:
            result.end_time = datetime.now()

        if result.status != "success":
            raise StructuralViolation(result.validation.errors if result.validation else [result.error or ""])
        return result.payload

    def process_batch(
        self,
        transactions: Sequence[Optional[Transaction]],
        profile: Optional[UserProfile],
        context: Optional[Dict[str, str]] = None,
    ) -> BatchExportResult:
        """
        Exports each transaction independently. A failing item is recorded and
        the loop continues; the batch only fails when nothing was exported.
        """
        try:
            self._ensure_enabled(profile)
            if profile is None:
                raise PreconditionError("User profile not found")
        except PreconditionError as e:
            return BatchExportResult(success=False, error=str(e))

        if not transactions:
            return BatchExportResult(success=False, error="No transactions found")

        exports = []
        failures = []
        for index, transaction in enumerate(transactions):
            result = self.process(transaction, profile, context)
            if result.status == "success":
                exports.append(result.payload)
            else:
                # missing items have no id, keyed by position instead
                transaction_id = result.transaction_id or f"#{index}"
                logger.warning("Skipping transaction %s in batch: %s", transaction_id, result.error)
                failures.append(ExportFailure(
                    transaction_id=transaction_id,
                    message=result.error or "Failed to export to ISDOC",
                ))

        if not exports:
            return BatchExportResult(
                success=False,
                failures=failures,
                error="Failed to export any transaction to ISDOC",
            )

        return BatchExportResult(success=True, exports=exports, failures=failures)
