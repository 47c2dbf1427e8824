import json
from datetime import date

import pytest

from isdoc_export.core.assembler import InvoiceAssembler
from isdoc_export.orchestrator import ExportOrchestrator
from isdoc_export.schema.models import Transaction, UserProfile

FIXED_TODAY = date(2024, 3, 1)


@pytest.fixture
def profile():
    return UserProfile(
        id="user-1",
        business_name="Dodavatel s.r.o.",
        business_address="Hlavní 123, 110 00 Praha 1",
        business_ic="12345678",
        business_dic="CZ12345678",
        business_bank_account="123456789",
        business_bank_code="0100",
    )


@pytest.fixture
def full_extra():
    """Fully populated extraction output of a real-looking Czech invoice."""
    return {
        "invoice_number": "2024-0042",
        "variable_symbol": "20240042",
        "constant_symbol": "0308",
        "specific_symbol": "77",
        "due_date": "2024-03-15",
        "tax_date": "2024-03-01",
        "supplier_name": "Extrahovaný Dodavatel a.s.",
        "supplier_address": "Vinohradská 1245/53, 120 00 Praha 2",
        "supplier_ic": "11223344",
        "supplier_dic": "CZ11223344",
        "supplier_bank_account": "2900000001",
        "supplier_bank_code": "2010",
        "customer_name": "Odběratel s.r.o.",
        "customer_address": "Dlouhá 5, 602 00 Brno",
        "customer_ic": "87654321",
        "customer_dic": "CZ87654321",
        "payment_method": "Převodním příkazem",
        "line_items": json.dumps([
            {"code": "DEV", "description": "Programování", "quantity": 40, "unit": "hod",
             "unit_price": 250, "total": 10000, "vat_rate": 21, "vat_amount": 2100},
        ]),
        "total_without_vat": "10000",
        "vat": "2100",
        "vat_rate": "21",
        "total_vat_base": '{"21": 10000}',
        "total_vat_amounts": '{"21": 2100}',
    }


@pytest.fixture
def full_transaction(full_extra):
    return Transaction(
        id="tx-001",
        name="Vývoj webové aplikace",
        amount=1210000,
        currency_code="CZK",
        issued_at=date(2024, 3, 1),
        counterparty="Odběratel s.r.o.",
        extra=full_extra,
    )


@pytest.fixture
def assembler():
    return InvoiceAssembler(today=lambda: FIXED_TODAY)


@pytest.fixture
def orchestrator(assembler):
    return ExportOrchestrator(assembler=assembler)
