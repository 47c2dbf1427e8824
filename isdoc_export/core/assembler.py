import logging
from datetime import date, timedelta
from typing import Callable, Optional

from isdoc_config import Settings, settings as default_settings

from ..schema.models import (
    Address,
    ExtractedFields,
    InvoiceDocument,
    Party,
    PaymentInfo,
    Totals,
    Transaction,
    UserProfile,
)
from .address_parser import AddressParser, CommaHeuristicAddressParser
from .bank_account import resolve_bank_account
from .coercion import to_date
from .errors import PreconditionError
from .line_items import normalize_line_items
from .payment_method import classify_payment_method
from .vat import CENT, breakdown_mismatch, build_vat_breakdown, resolve_totals

logger = logging.getLogger(__name__)

UNKNOWN_CUSTOMER = "Unknown Customer"


class InvoiceAssembler:
    """
    Builds the canonical InvoiceDocument from a transaction, its extracted
    fields and the caller's business profile.

    Precedence: extracted field > profile/transaction field > fixed default.
    Only a missing transaction or profile is an error.
    """

    def __init__(
        self,
        address_parser: Optional[AddressParser] = None,
        today: Callable[[], date] = date.today,
        config: Optional[Settings] = None,
    ):
        self.address_parser = address_parser or CommaHeuristicAddressParser()
        self.today = today
        self.config = config or default_settings

    def assemble(self, transaction: Optional[Transaction], profile: Optional[UserProfile]) -> InvoiceDocument:
        if transaction is None:
            raise PreconditionError("Transaction not found")
        if profile is None:
            raise PreconditionError("User profile not found")

        fields = ExtractedFields.from_extra(transaction.extra)

        issue_date = to_date(transaction.issued_at) or self.today()
        due_date = fields.due_date or issue_date + timedelta(days=self.config.PAYMENT_TERM_DAYS)

        totals = self._resolve_totals(transaction, fields)

        line_items = normalize_line_items(
            fields.line_items,
            transaction.amount,
            description=transaction.name,
            vat_rate=fields.vat_rate,
            vat_amount=fields.vat,
        )

        payment_method = fields.payment_method or ""

        return InvoiceDocument(
            id=fields.invoice_number or f"INV-{transaction.id}",
            uuid=transaction.id,
            issue_date=issue_date,
            tax_point_date=fields.tax_date,
            currency_code=transaction.currency_code or self.config.DEFAULT_CURRENCY,
            supplier=self._resolve_supplier(fields, profile),
            customer=self._resolve_customer(fields, transaction),
            line_items=line_items,
            totals=totals,
            payment_info=PaymentInfo(
                variable_symbol=fields.variable_symbol or fields.invoice_number,
                constant_symbol=fields.constant_symbol,
                specific_symbol=fields.specific_symbol,
                due_date=due_date,
                payment_method=payment_method,
                payment_method_code=classify_payment_method(payment_method),
            ),
        )

    def _resolve_totals(self, transaction: Transaction, fields: ExtractedFields) -> Totals:
        resolved = resolve_totals(
            transaction.amount,
            total_without_vat=fields.total_without_vat,
            vat=fields.vat,
            vat_rate=fields.vat_rate,
        )

        breakdown = build_vat_breakdown(
            fields.total_vat_base,
            fields.total_vat_amounts,
            fields.vat_rate,
            resolved.total_without_vat,
            resolved.total_vat,
            default_rate=self.config.FALLBACK_VAT_RATE,
        )

        mismatch = breakdown_mismatch(breakdown, resolved.total_without_vat)
        if abs(mismatch) > CENT:
            logger.warning(
                "VAT breakdown bases differ from total without VAT by %s (transaction %s)",
                mismatch, transaction.id
            )

        return Totals(
            total_without_vat=resolved.total_without_vat,
            total_vat=resolved.total_vat,
            total_with_vat=resolved.total_with_vat,
            vat_breakdown=breakdown,
        )

    def _localize(self, address: Address) -> Address:
        return address.model_copy(update={
            "country": self.config.COUNTRY_NAME,
            "country_code": self.config.COUNTRY_CODE,
        })

    def _resolve_supplier(self, fields: ExtractedFields, profile: UserProfile) -> Party:
        raw_address = fields.supplier_address or profile.business_address or ""

        if fields.supplier_bank_account and fields.supplier_bank_code:
            bank_account = resolve_bank_account(fields.supplier_bank_account, fields.supplier_bank_code)
        else:
            bank_account = resolve_bank_account(profile.business_bank_account, profile.business_bank_code)

        return Party(
            name=fields.supplier_name or profile.business_name or "",
            ic=fields.supplier_ic or profile.business_ic,
            dic=fields.supplier_dic or profile.business_dic,
            address=self._localize(self.address_parser.parse(raw_address)),
            bank_account=bank_account,
        )

    def _resolve_customer(self, fields: ExtractedFields, transaction: Transaction) -> Party:
        if fields.customer_address:
            address = self.address_parser.parse(fields.customer_address)
        else:
            address = Address()

        return Party(
            name=fields.customer_name or transaction.counterparty or UNKNOWN_CUSTOMER,
            ic=fields.customer_ic,
            dic=fields.customer_dic,
            address=self._localize(address),
        )


def assemble_invoice(transaction: Optional[Transaction], profile: Optional[UserProfile], **kwargs) -> InvoiceDocument:
    return InvoiceAssembler(**kwargs).assemble(transaction, profile)
