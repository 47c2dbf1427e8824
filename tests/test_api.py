"""
Tests for API endpoints.
"""
import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_validator
from api.main import app
from isdoc_config import settings

client = TestClient(app)

pytestmark = pytest.mark.api

PROFILE = {
    "id": "user-1",
    "business_name": "Dodavatel s.r.o.",
    "business_address": "Hlavní 123, 110 00 Praha 1",
    "business_ic": "12345678",
    "business_dic": "CZ12345678",
    "business_bank_account": "123456789",
    "business_bank_code": "0100",
}


def _transaction(tx_id="tx-001", **extra):
    return {
        "id": tx_id,
        "name": "Vývoj webové aplikace",
        "amount": 1210000,
        "currency_code": "CZK",
        "issued_at": "2024-03-01",
        "extra": {"invoice_number": "2024/0042", "vat_rate": "21", **extra},
    }


def test_health_check():
    """Test health endpoint returns 200 and correct structure."""
    response = client.get("/health")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "healthy"
    assert data["version"] == settings.APP_VERSION
    assert data["checks"]["api"] is True
    assert "isdoc_enabled" in data["checks"]


def test_export_returns_document_and_audit_trail():
    response = client.post("/v1/export/isdoc", json={
        "transaction": _transaction(),
        "profile": PROFILE,
        "context": {"trace_id": "trace-123"},
    })

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "success"
    assert data["valid"] is True
    assert data["trace_id"] == "trace-123"
    assert data["execution_id"].startswith("isdoc_")
    assert data["file_name"] == "invoice_2024_0042.isdoc"
    assert "<ID>2024/0042</ID>" in data["content"]
    assert [e["stage"] for e in data["events"]] == ["ASSEMBLE", "SERIALIZE", "VALIDATE"]


def test_export_invalid_document_is_422_with_body():
    response = client.post("/v1/export/isdoc", json={
        "transaction": _transaction(line_items="[broken"),
        "profile": PROFILE,
    })

    assert response.status_code == 422
    data = response.json()
    assert data["valid"] is False
    assert data["errors"] == ["Missing required element: InvoiceLines"]
    assert data["content"] is None


def test_export_disabled_profile_is_403():
    response = client.post("/v1/export/isdoc", json={
        "transaction": _transaction(),
        "profile": {**PROFILE, "isdoc_enabled": False},
    })

    assert response.status_code == 403
    assert "not enabled" in response.json()["detail"]


def test_export_rejects_unsafe_trace_id():
    response = client.post("/v1/export/isdoc", json={
        "transaction": _transaction(),
        "profile": PROFILE,
        "context": {"trace_id": "../etc"},
    })

    assert response.status_code == 422


def test_download_file():
    response = client.post("/v1/export/isdoc/file", json={"transaction": _transaction(), "profile": PROFILE})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/xml")
    assert 'filename="invoice_2024_0042.isdoc"' in response.headers["content-disposition"]
    assert response.text.startswith("<?xml")


def test_download_invalid_document_is_422():
    response = client.post("/v1/export/isdoc/file", json={
        "transaction": _transaction(line_items="[broken"),
        "profile": PROFILE,
    })

    assert response.status_code == 422
    assert response.json()["detail"] == ["Missing required element: InvoiceLines"]


def test_download_disabled_profile_is_403():
    response = client.post("/v1/export/isdoc/file", json={
        "transaction": _transaction(),
        "profile": {**PROFILE, "isdoc_enabled": False},
    })

    assert response.status_code == 403


def test_batch_export_partial_success():
    response = client.post("/v1/export/isdoc/batch", json={
        "transactions": [
            _transaction("tx-1", invoice_number="A-1"),
            _transaction("tx-2", invoice_number="A-2", line_items="{}"),
        ],
        "profile": PROFILE,
    })

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert [f["file_name"] for f in data["exports"]] == ["invoice_A-1.isdoc"]
    assert [f["transaction_id"] for f in data["failures"]] == ["tx-2"]


def test_batch_export_empty_is_422():
    response = client.post("/v1/export/isdoc/batch", json={"transactions": [], "profile": PROFILE})

    assert response.status_code == 422
    assert response.json()["error"] == "No transactions found"


def test_batch_export_disabled_is_403():
    response = client.post("/v1/export/isdoc/batch", json={
        "transactions": [_transaction()],
        "profile": {**PROFILE, "isdoc_enabled": False},
    })

    assert response.status_code == 403


def test_batch_export_too_large(monkeypatch):
    monkeypatch.setattr(settings, "API_MAX_BATCH_SIZE", 1)

    response = client.post("/v1/export/isdoc/batch", json={
        "transactions": [_transaction("tx-1"), _transaction("tx-2")],
        "profile": PROFILE,
    })

    assert response.status_code == 413


def test_validate_endpoint_roundtrips_exported_document():
    exported = client.post("/v1/export/isdoc/file", json={"transaction": _transaction(), "profile": PROFILE})

    response = client.post("/v1/validate/isdoc", content=exported.content,
                           headers={"Content-Type": "application/xml"})

    assert response.status_code == 200
    assert response.json() == {"valid": True, "errors": []}


def test_validate_endpoint_reports_errors():
    response = client.post("/v1/validate/isdoc", content="<Invoice><ID>1</ID></Invoice>".encode("utf-8"))

    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is False
    assert "Invalid or missing ISDOC namespace" in data["errors"]


def test_validate_endpoint_rejects_non_utf8():
    response = client.post("/v1/validate/isdoc", content=b"\xff\xfe<\x00")

    assert response.status_code == 422


def test_missing_profile_in_request_is_422():
    response = client.post("/v1/export/isdoc", json={"transaction": _transaction()})

    assert response.status_code == 422


def test_validator_is_built_once():
    assert get_validator() is get_validator()
