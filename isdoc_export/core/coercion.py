import json
import logging
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Suffixes/prefixes the extractor tends to leave on numeric values
VALUE_MARKERS = ["Kč", "KČ", "CZK", "EUR", "€", "USD", "$", "%"]

DATE_FORMATS = ["%Y-%m-%d", "%d.%m.%Y", "%d. %m. %Y", "%d/%m/%Y"]

# Anything larger is an extraction artefact, not an invoice amount
MAX_MAGNITUDE = Decimal("1e15")


def to_decimal(value: Any) -> Optional[Decimal]:
    """
    Coerce a loosely-typed extracted value to Decimal.

    Accepts numbers and strings like "1 234,50 Kč", "1.234,50", "1234.50", "21 %".
    Returns None when the value is not a finite number or is out of range.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        cleaned = value.strip()
        for marker in VALUE_MARKERS:
            cleaned = cleaned.replace(marker, '')
        cleaned = re.sub(r"\s+", "", cleaned)

        if not cleaned:
            return None

        # CZ: 1.234,50 | US: 1,234.50
        if ',' in cleaned and '.' in cleaned:
            if cleaned.rfind(',') > cleaned.rfind('.'):
                cleaned = cleaned.replace('.', '').replace(',', '.')
            else:
                cleaned = cleaned.replace(',', '')
        elif ',' in cleaned:
            cleaned = cleaned.replace(',', '.')

        try:
            result = Decimal(cleaned)
        except (InvalidOperation, ValueError):
            return None
    else:
        return None

    if not result.is_finite():
        return None
    if abs(result) >= MAX_MAGNITUDE:
        logger.warning("Ignoring out-of-range numeric value: %s", result)
        return None
    return result


def decimal_or(value: Any, default: Decimal) -> Decimal:
    coerced = to_decimal(value)
    return default if coerced is None else coerced


def to_date(value: Any) -> Optional[date]:
    """Parse ISO dates/datetimes and Czech DD.MM.YYYY dates. None if unparseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    return None


def decode_json(raw: Any, expected: type, field_name: str) -> Optional[Any]:
    """
    Decode an encoded extracted field (JSON text or already-decoded structure).

    Malformed input is recovered here: logs a warning and returns None so the
    caller can substitute its empty/default structure.
    """
    if raw is None:
        return None

    decoded = raw
    if isinstance(raw, (str, bytes)):
        try:
            decoded = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("Failed to decode %s: %s", field_name, e)
            return None

    if not isinstance(decoded, expected):
        logger.warning(
            "Failed to decode %s: expected %s, got %s",
            field_name, expected.__name__, type(decoded).__name__
        )
        return None

    return decoded


def format_number(value: Decimal) -> str:
    """Plain representation without exponent or trailing zeros (21, 12.5, 0)."""
    normalized = value.normalize()
    if normalized == 0:
        return "0"
    return format(normalized, "f")
