import logging
import threading
from pathlib import Path
from typing import Callable, List, Optional, Protocol

import httpx
from lxml import etree

from ..schema.orchestrator_models import ValidationResult
from .serializer import ISDOC_NAMESPACE, ISDOC_VERSION

logger = logging.getLogger(__name__)

REQUIRED_ELEMENTS = [
    "DocumentType",
    "ID",
    "UUID",
    "IssueDate",
    "VATApplicable",
    "ElectronicPossibilityAgreementReference",
    "LocalCurrencyCode",
    "CurrRate",
    "RefCurrRate",
    "AccountingSupplierParty",
    "AccountingCustomerParty",
    "InvoiceLines",
    "TaxTotal",
    "LegalMonetaryTotal",
]


class DocumentValidator(Protocol):
    def validate(self, content: str) -> ValidationResult:
        ...


def _parse(content: str) -> etree._Element:
    # bytes: lxml refuses str input that carries an encoding declaration
    return etree.fromstring(content.encode("utf-8"))


def well_formedness_error(content: str) -> Optional[str]:
    try:
        _parse(content)
    except (etree.XMLSyntaxError, UnicodeEncodeError) as e:
        return str(e)
    return None


class StructuralValidator:
    """
    Shallow ISDOC check: well-formed XML, required opening tags present,
    version and default namespace as expected. Not a schema validation.
    """

    def validate(self, content: str) -> ValidationResult:
        syntax_error = well_formedness_error(content)
        if syntax_error:
            return ValidationResult(valid=False, errors=[syntax_error])

        errors: List[str] = []

        for element in REQUIRED_ELEMENTS:
            if f"<{element}>" not in content:
                errors.append(f"Missing required element: {element}")

        if f'version="{ISDOC_VERSION}"' not in content:
            errors.append("Invalid or missing ISDOC version attribute")

        if f'xmlns="{ISDOC_NAMESPACE}"' not in content:
            errors.append("Invalid or missing ISDOC namespace")

        return ValidationResult(valid=not errors, errors=errors)


def fetch_schema(url: str, timeout: float = 30.0) -> bytes:
    response = httpx.get(url, timeout=timeout, follow_redirects=True)
    response.raise_for_status()
    return response.content


class SchemaCache:
    """
    Process-wide copy of the official ISDOC XSD.

    Loaded once on first use, read-only afterwards, never invalidated.
    """

    def __init__(self, url: str, loader: Optional[Callable[[str], bytes]] = None):
        self.url = url
        self._loader = loader or fetch_schema
        self._content: Optional[bytes] = None
        self._lock = threading.Lock()

    @classmethod
    def from_local_file(cls, path: str) -> "SchemaCache":
        return cls(url=Path(path).resolve().as_uri(), loader=lambda _url: Path(path).read_bytes())

    @property
    def loaded(self) -> bool:
        return self._content is not None

    def get(self) -> bytes:
        if self._content is None:
            with self._lock:
                if self._content is None:
                    logger.info("Loading ISDOC schema from %s", self.url)
                    self._content = self._loader(self.url)
        return self._content


class SchemaValidator:
    """
    Full XSD validation against the schema held by a SchemaCache.

    Shared between request threads. The compiled schema keeps its error log
    on the object, so validating and reading that log happen under one lock.
    """

    def __init__(self, cache: SchemaCache):
        self.cache = cache
        self._schema: Optional[etree.XMLSchema] = None
        self._lock = threading.Lock()

    def _compiled(self) -> etree.XMLSchema:
        if self._schema is None:
            with self._lock:
                if self._schema is None:
                    schema_doc = etree.fromstring(self.cache.get(), base_url=self.cache.url)
                    self._schema = etree.XMLSchema(schema_doc)
        return self._schema

    def validate(self, content: str) -> ValidationResult:
        try:
            document = _parse(content)
        except (etree.XMLSyntaxError, UnicodeEncodeError) as e:
            return ValidationResult(valid=False, errors=[str(e)])

        try:
            schema = self._compiled()
        except (httpx.HTTPError, OSError, etree.XMLSyntaxError, etree.XMLSchemaParseError) as e:
            logger.error("Failed to load ISDOC schema: %s", e)
            return ValidationResult(valid=False, errors=[f"Could not load ISDOC schema for validation: {e}"])

        with self._lock:
            try:
                schema.assertValid(document)
            except etree.DocumentInvalid as e:
                errors = [f"Line {err.line}: {err.message}" for err in e.error_log] or [str(e)]
                return ValidationResult(valid=False, errors=errors)

        return ValidationResult(valid=True, errors=[])


class CompositeValidator:
    """Runs validators in order, stopping at the first failure."""

    def __init__(self, *validators: DocumentValidator):
        self.validators = validators

    def validate(self, content: str) -> ValidationResult:
        for validator in self.validators:
            result = validator.validate(content)
            if not result.valid:
                return result
        return ValidationResult(valid=True, errors=[])


def validate_isdoc_xml(content: str) -> ValidationResult:
    return StructuralValidator().validate(content)
