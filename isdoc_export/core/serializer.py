"""
ISDOC 6.0.2 rendering.

Element order below is mandated by the ISDOC schema (xs:sequence) and must
not be permuted.
"""
from datetime import date
from decimal import Decimal
from typing import Optional

from lxml import etree

from ..schema.models import InvoiceDocument, LineItem, Party, VatEntry
from .coercion import format_number
from .vat import quantize_money

ISDOC_VERSION = "6.0.2"
ISDOC_NAMESPACE = "http://isdoc.cz/namespace/2013"
XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"
SCHEMA_LOCATION = f"{ISDOC_NAMESPACE} http://isdoc.cz/namespace/2013/isdoc-invoice-{ISDOC_VERSION}.xsd"

DOCUMENT_TYPE_INVOICE = "1"
AGREEMENT_REFERENCE = "Příjemce souhlasí s elektronickou formou faktury"
VAT_CALCULATION_FROM_BOTTOM = "0"
PAYMENT_MEANS_BANK_TRANSFER = "42"
UNKNOWN_CUSTOMER_ID = "00000000"

NSMAP = {None: ISDOC_NAMESPACE, "xsi": XSI_NAMESPACE}


def _q(tag: str) -> str:
    return f"{{{ISDOC_NAMESPACE}}}{tag}"


def _ele(parent: etree._Element, tag: str, text: Optional[str] = None) -> etree._Element:
    element = etree.SubElement(parent, _q(tag))
    if text is not None:
        element.text = text
    return element


def format_amount(value: Decimal) -> str:
    return f"{quantize_money(value):.2f}"


def format_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def _party(parent: etree._Element, wrapper: str, party: Party, default_id: str = "") -> None:
    node = _ele(_ele(parent, wrapper), "Party")

    _ele(_ele(node, "PartyIdentification"), "ID", party.ic or default_id)
    _ele(_ele(node, "PartyName"), "Name", party.name)

    address = _ele(node, "PostalAddress")
    _ele(address, "StreetName", party.address.street)
    _ele(address, "BuildingNumber", party.address.building_number)
    _ele(address, "CityName", party.address.city)
    _ele(address, "PostalZone", party.address.postal_code)
    country = _ele(address, "Country")
    _ele(country, "IdentificationCode", party.address.country_code)
    _ele(country, "Name", party.address.country)

    if party.dic:
        tax_scheme = _ele(node, "PartyTaxScheme")
        _ele(tax_scheme, "CompanyID", party.dic)
        _ele(tax_scheme, "TaxScheme", "VAT")


def _invoice_line(parent: etree._Element, position: int, item: LineItem) -> None:
    line = _ele(parent, "InvoiceLine")
    _ele(line, "ID", str(position))

    if item.quantity:
        quantity = _ele(line, "InvoicedQuantity", format_number(item.quantity))
        quantity.set("unitCode", item.unit)

    _ele(line, "LineExtensionAmount", format_amount(item.total_price))
    _ele(line, "LineExtensionAmountTaxInclusive", format_amount(item.total_price + item.vat_amount))
    _ele(line, "LineExtensionTaxAmount", format_amount(item.vat_amount))
    _ele(line, "UnitPrice", format_amount(item.unit_price))
    _ele(line, "UnitPriceTaxInclusive", format_amount(item.unit_price * (1 + item.vat_rate / 100)))

    category = _ele(line, "ClassifiedTaxCategory")
    _ele(category, "Percent", format_number(item.vat_rate))
    _ele(category, "VATCalculationMethod", VAT_CALCULATION_FROM_BOTTOM)

    _ele(_ele(line, "Item"), "Description", item.description)


def _tax_sub_total(parent: etree._Element, rate: str, entry: VatEntry) -> None:
    sub_total = _ele(parent, "TaxSubTotal")
    inclusive = entry.base + entry.amount

    _ele(sub_total, "TaxableAmount", format_amount(entry.base))
    _ele(sub_total, "TaxAmount", format_amount(entry.amount))
    _ele(sub_total, "TaxInclusiveAmount", format_amount(inclusive))
    _ele(sub_total, "AlreadyClaimedTaxableAmount", "0")
    _ele(sub_total, "AlreadyClaimedTaxAmount", "0")
    _ele(sub_total, "AlreadyClaimedTaxInclusiveAmount", "0")
    _ele(sub_total, "DifferenceTaxableAmount", format_amount(entry.base))
    _ele(sub_total, "DifferenceTaxAmount", format_amount(entry.amount))
    _ele(sub_total, "DifferenceTaxInclusiveAmount", format_amount(inclusive))

    _ele(_ele(sub_total, "TaxCategory"), "Percent", rate)


def build_isdoc_tree(doc: InvoiceDocument) -> etree._Element:
    invoice = etree.Element(_q("Invoice"), nsmap=NSMAP)
    invoice.set(f"{{{XSI_NAMESPACE}}}schemaLocation", SCHEMA_LOCATION)
    invoice.set("version", ISDOC_VERSION)

    _ele(invoice, "DocumentType", DOCUMENT_TYPE_INVOICE)
    _ele(invoice, "ID", doc.id)
    _ele(invoice, "UUID", doc.uuid)
    _ele(invoice, "IssueDate", format_date(doc.issue_date))
    if doc.tax_point_date:
        _ele(invoice, "TaxPointDate", format_date(doc.tax_point_date))
    _ele(invoice, "VATApplicable", "true")
    _ele(invoice, "ElectronicPossibilityAgreementReference", AGREEMENT_REFERENCE)

    _ele(invoice, "LocalCurrencyCode", doc.currency_code)
    _ele(invoice, "CurrRate", "1")
    _ele(invoice, "RefCurrRate", "1")

    _party(invoice, "AccountingSupplierParty", doc.supplier)
    _party(invoice, "AccountingCustomerParty", doc.customer, default_id=UNKNOWN_CUSTOMER_ID)

    lines = _ele(invoice, "InvoiceLines")
    for position, item in enumerate(doc.line_items, start=1):
        _invoice_line(lines, position, item)

    totals = doc.totals
    tax_total = _ele(invoice, "TaxTotal")
    for rate, entry in totals.vat_breakdown.items():
        _tax_sub_total(tax_total, rate, entry)
    _ele(tax_total, "TaxAmount", format_amount(totals.total_vat))

    monetary = _ele(invoice, "LegalMonetaryTotal")
    _ele(monetary, "TaxExclusiveAmount", format_amount(totals.total_without_vat))
    _ele(monetary, "TaxInclusiveAmount", format_amount(totals.total_with_vat))
    _ele(monetary, "AlreadyClaimedTaxExclusiveAmount", "0")
    _ele(monetary, "AlreadyClaimedTaxInclusiveAmount", "0")
    _ele(monetary, "DifferenceTaxExclusiveAmount", format_amount(totals.total_without_vat))
    _ele(monetary, "DifferenceTaxInclusiveAmount", format_amount(totals.total_with_vat))
    _ele(monetary, "PaidDepositsAmount", "0")
    _ele(monetary, "PayableAmount", format_amount(totals.total_with_vat))

    bank_account = doc.supplier.bank_account
    if bank_account:
        payment = _ele(_ele(invoice, "PaymentMeans"), "Payment")
        _ele(payment, "PaidAmount", format_amount(totals.total_with_vat))
        _ele(payment, "PaymentMeansCode", PAYMENT_MEANS_BANK_TRANSFER)

        details = _ele(payment, "Details")
        info = doc.payment_info
        _ele(details, "PaymentDueDate", format_date(info.due_date))
        _ele(details, "ID", bank_account.account_number)
        _ele(details, "BankCode", bank_account.bank_code)
        _ele(details, "Name", doc.supplier.name)
        if bank_account.iban:
            _ele(details, "IBAN", bank_account.iban)
        if bank_account.bic:
            _ele(details, "BIC", bank_account.bic)
        if info.variable_symbol:
            _ele(details, "VariableSymbol", info.variable_symbol)
        if info.constant_symbol:
            _ele(details, "ConstantSymbol", info.constant_symbol)
        if info.specific_symbol:
            _ele(details, "SpecificSymbol", info.specific_symbol)

    return invoice


def generate_isdoc_xml(doc: InvoiceDocument) -> str:
    """Render the document as pretty-printed UTF-8 ISDOC XML text."""
    tree = build_isdoc_tree(doc)
    return etree.tostring(
        tree,
        pretty_print=True,
        xml_declaration=True,
        encoding="UTF-8",
    ).decode("utf-8")
