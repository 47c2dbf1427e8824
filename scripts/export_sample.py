from isdoc_export.orchestrator import ExportOrchestrator
from isdoc_export.schema.models import Transaction, UserProfile
from pprint import pprint
import json

transaction = Transaction(
    id="tx-sample-001",
    name="Vývoj webové aplikace",
    amount=1210000,
    currency_code="CZK",
    issued_at="2024-03-01",
    counterparty="Odběratel s.r.o.",
    extra={
        "invoice_number": "2024-0042",
        "tax_date": "2024-03-01",
        "vat_rate": "21",
        "customer_ic": "87654321",
        "customer_dic": "CZ87654321",
        "customer_address": "Dlouhá 5, 602 00 Brno",
        "payment_method": "Příkazem",
        "line_items": json.dumps([
            {"code": "DEV", "description": "Programování", "quantity": 40, "unit": "hod",
             "unit_price": 250, "total": 10000, "vat_rate": 21, "vat_amount": 2100},
        ]),
        "total_vat_base": '{"21": 10000}',
        "total_vat_amounts": '{"21": 2100}',
    },
)

profile = UserProfile(
    id="user-1",
    business_name="Dodavatel s.r.o.",
    business_address="Hlavní 123, 110 00 Praha 1",
    business_ic="12345678",
    business_dic="CZ12345678",
    business_bank_account="123456789",
    business_bank_code="0100",
)

result = ExportOrchestrator().process(transaction, profile, {"trace_id": "sample", "execution_id": "sample"})

print("\n================ EVENTS ================\n")
pprint([event.model_dump() for event in result.events])

print("\n================ VALIDATION ================\n")
pprint(result.validation)

if result.payload:
    print(f"\n================ {result.payload.file_name} ================\n")
    print(result.payload.content)
