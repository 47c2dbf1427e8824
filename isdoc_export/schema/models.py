import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.coercion import to_date

logger = logging.getLogger(__name__)


# ====================================================
# Input boundary (collaborators)
# ====================================================

class Transaction(BaseModel): ##     Stored transaction as handed over by the persistence layer
    id: str
    name: Optional[str] = None
    amount: int = Field(0, description="Total amount in minor units (haléře)")
    currency_code: Optional[str] = None
    issued_at: Optional[Union[datetime, date]] = None
    counterparty: Optional[str] = None
    extra: Dict[str, Any] = Field(default_factory=dict)


class UserProfile(BaseModel): ##     Business profile of the calling user (supplier fallback)
    id: str
    business_name: Optional[str] = None
    business_address: Optional[str] = None
    business_ic: Optional[str] = None
    business_dic: Optional[str] = None
    business_bank_account: Optional[str] = None
    business_bank_code: Optional[str] = None
    isdoc_enabled: bool = True


EncodedField = Optional[Union[str, List[Any], Dict[str, Any]]]


class ExtractedFields(BaseModel):
    """
    Typed view over the transaction's open `extra` map.

    Built once at the assembler boundary. Unknown attributes are kept, empty
    strings count as missing, encoded fields stay raw for their owning component.
    """
    model_config = ConfigDict(extra="allow", frozen=True)

    invoice_number: Optional[str] = None
    variable_symbol: Optional[str] = None
    constant_symbol: Optional[str] = None
    specific_symbol: Optional[str] = None

    due_date: Optional[date] = None
    tax_date: Optional[date] = None

    supplier_name: Optional[str] = None
    supplier_address: Optional[str] = None
    supplier_ic: Optional[str] = None
    supplier_dic: Optional[str] = None
    supplier_bank_account: Optional[str] = None
    supplier_bank_code: Optional[str] = None

    customer_name: Optional[str] = None
    customer_address: Optional[str] = None
    customer_ic: Optional[str] = None
    customer_dic: Optional[str] = None

    payment_method: Optional[str] = None

    line_items: EncodedField = None
    total_without_vat: Any = None
    total: Any = None
    vat_rate: Any = None
    vat: Any = None
    total_vat_base: EncodedField = None
    total_vat_amounts: EncodedField = None

    order_number: Optional[str] = None
    delivery_note_number: Optional[str] = None
    notes: Optional[str] = None

    @field_validator(
        "invoice_number", "variable_symbol", "constant_symbol", "specific_symbol",
        "supplier_name", "supplier_address", "supplier_ic", "supplier_dic",
        "supplier_bank_account", "supplier_bank_code",
        "customer_name", "customer_address", "customer_ic", "customer_dic",
        "payment_method", "order_number", "delivery_note_number", "notes",
        mode="before",
    )
    @classmethod
    def text_or_none(cls, v: Any) -> Optional[str]:
        """Numbers become text (IČ 12345678), blanks become None."""
        if v is None or isinstance(v, bool):
            return None
        if isinstance(v, (int, float, Decimal)):
            v = str(v)
        if not isinstance(v, str):
            return None
        v = v.strip()
        return v or None

    @field_validator("due_date", "tax_date", mode="before")
    @classmethod
    def lenient_date(cls, v: Any) -> Optional[date]:
        parsed = to_date(v)
        if parsed is None and v not in (None, ""):
            logger.warning("Ignoring unparseable date value: %r", v)
        return parsed

    @field_validator(
        "line_items", "total_without_vat", "total", "vat_rate", "vat",
        "total_vat_base", "total_vat_amounts",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        if isinstance(v, bool):
            return None
        return v

    @classmethod
    def from_extra(cls, extra: Optional[Dict[str, Any]]) -> "ExtractedFields":
        return cls.model_validate(extra or {})


# ====================================================
# Canonical invoice document
# ====================================================

class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class Address(_Frozen):
    street: str = ""
    building_number: str = ""
    city: str = ""
    postal_code: str = ""
    country: str = ""
    country_code: str = ""


class BankAccount(_Frozen):
    account_number: str
    bank_code: str
    iban: Optional[str] = None
    bic: Optional[str] = None


class Party(_Frozen):
    name: str
    ic: Optional[str] = None
    dic: Optional[str] = None
    address: Address = Field(default_factory=Address)
    bank_account: Optional[BankAccount] = None


class LineItem(_Frozen):
    id: str
    description: str = ""
    quantity: Decimal = Decimal("1")
    unit: str
    unit_price: Decimal = Decimal("0")
    total_price: Decimal = Decimal("0")
    vat_rate: Decimal = Decimal("0")
    vat_amount: Decimal = Decimal("0")


class VatEntry(_Frozen):
    base: Decimal
    amount: Decimal


class Totals(_Frozen):
    total_without_vat: Decimal
    total_vat: Decimal
    total_with_vat: Decimal
    vat_breakdown: Dict[str, VatEntry] = Field(default_factory=dict)


class PaymentInfo(_Frozen):
    variable_symbol: Optional[str] = None
    constant_symbol: Optional[str] = None
    specific_symbol: Optional[str] = None
    due_date: date
    payment_method: str = ""
    payment_method_code: str = "42"


class InvoiceDocument(_Frozen): ##     Built, serialized, validated and discarded within one export
    id: str
    uuid: str
    issue_date: date
    tax_point_date: Optional[date] = None
    currency_code: str

    supplier: Party
    customer: Party

    line_items: List[LineItem] = Field(default_factory=list)
    totals: Totals
    payment_info: PaymentInfo
