import logging
from decimal import Decimal
from typing import Any, List, Optional

from ..schema.models import LineItem
from .coercion import decimal_or, decode_json

logger = logging.getLogger(__name__)

DEFAULT_UNIT_CODE = "ks"
DEFAULT_ITEM_DESCRIPTION = "Položka faktury"

ONE = Decimal("1")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def parse_line_items(raw: Any) -> List[LineItem]:
    """
    Decode the extracted `line_items` array.

    Malformed encoding yields an empty list (logged), NOT the synthesized
    single item of `synthesize_line_item`.
    """
    items = decode_json(raw, list, "line_items")
    if items is None:
        return []

    line_items = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            item = {}

        code = item.get("code")
        line_items.append(LineItem(
            id=str(code) if code not in (None, "") else f"ITEM-{index + 1}",
            description=str(item.get("description") or ""),
            quantity=decimal_or(item.get("quantity"), ONE),
            unit=str(item.get("unit") or DEFAULT_UNIT_CODE),
            unit_price=decimal_or(item.get("unit_price"), ZERO),
            total_price=decimal_or(item.get("total"), ZERO),
            vat_rate=decimal_or(item.get("vat_rate"), ZERO),
            vat_amount=decimal_or(item.get("vat_amount"), ZERO),
        ))

    return line_items


def synthesize_line_item(
        amount_minor: int,
        description: Optional[str],
        vat_rate: Any,
        vat_amount: Any,
) -> LineItem:
    """Single line built from transaction totals: price = amount / (1 + rate/100)."""
    rate = decimal_or(vat_rate, ZERO)
    total_with_vat = Decimal(amount_minor or 0) / HUNDRED
    divisor = ONE + rate / HUNDRED
    price = total_with_vat / divisor if divisor != 0 else total_with_vat

    return LineItem(
        id="ITEM-1",
        description=description or DEFAULT_ITEM_DESCRIPTION,
        quantity=ONE,
        unit=DEFAULT_UNIT_CODE,
        unit_price=price,
        total_price=price,
        vat_rate=rate,
        vat_amount=decimal_or(vat_amount, ZERO),
    )


def normalize_line_items(
        raw: Any,
        amount_minor: int,
        description: Optional[str] = None,
        vat_rate: Any = None,
        vat_amount: Any = None,
) -> List[LineItem]:
    if raw is None:
        return [synthesize_line_item(amount_minor, description, vat_rate, vat_amount)]

    return parse_line_items(raw)
