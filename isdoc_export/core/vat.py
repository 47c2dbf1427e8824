import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, NamedTuple

from ..schema.models import VatEntry
from .coercion import decimal_or, decode_json, format_number, to_decimal

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")
DEFAULT_FALLBACK_RATE = "21"


def quantize_money(value: Decimal) -> Decimal:
    try:
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"Amount {value} cannot be represented with two decimals") from None


class ResolvedTotals(NamedTuple):
    total_without_vat: Decimal
    total_vat: Decimal
    total_with_vat: Decimal


def resolve_totals(
        amount_minor: int,
        total_without_vat: Any = None,
        vat: Any = None,
        vat_rate: Any = None,
) -> ResolvedTotals:
    """
    Invoice-level totals. Explicit extracted values win over values computed
    from the transaction amount; the result always satisfies
    with_vat == without_vat + vat.
    """
    explicit_base = to_decimal(total_without_vat)
    explicit_vat = to_decimal(vat)
    computed_total = Decimal(amount_minor or 0) / HUNDRED

    if explicit_base is not None and explicit_vat is not None:
        base, tax = explicit_base, explicit_vat
        if abs((base + tax) - computed_total) > CENT:
            logger.warning(
                "Extracted totals (%s + %s) differ from transaction amount %s",
                base, tax, computed_total
            )
        return ResolvedTotals(quantize_money(base), quantize_money(tax), quantize_money(base) + quantize_money(tax))

    total_with_vat = quantize_money(computed_total)

    if explicit_base is not None:
        base = quantize_money(explicit_base)
        return ResolvedTotals(base, total_with_vat - base, total_with_vat)

    if explicit_vat is not None:
        tax = quantize_money(explicit_vat)
        return ResolvedTotals(total_with_vat - tax, tax, total_with_vat)

    rate = decimal_or(vat_rate, ZERO)
    divisor = Decimal("1") + rate / HUNDRED
    base = quantize_money(computed_total / divisor) if divisor != 0 else total_with_vat
    return ResolvedTotals(base, total_with_vat - base, total_with_vat)


def _non_negative(value: Decimal, rate: str, label: str) -> Decimal:
    if value < 0:
        logger.warning("Clamping negative VAT %s for rate %s: %s", label, rate, value)
        return ZERO
    return value


def rate_key(rate: Any, default: Any = DEFAULT_FALLBACK_RATE) -> str:
    """Breakdown key for a rate: "21", "12", "12.5". Non-numeric rates use `default`."""
    numeric = to_decimal(rate)
    if numeric is None:
        numeric = to_decimal(default)
    if numeric is None:
        return DEFAULT_FALLBACK_RATE
    return format_number(numeric)


def build_vat_breakdown(
        raw_bases: Any,
        raw_amounts: Any,
        fallback_rate: Any,
        total_without_vat: Decimal,
        total_vat: Decimal,
        default_rate: Any = DEFAULT_FALLBACK_RATE,
) -> Dict[str, VatEntry]:
    """
    Per-rate VAT breakdown.

    Both maps present: one entry per rate of the base map, amounts looked up by
    the same raw key (missing/invalid -> 0). Keys are normalized ("21 %",
    "21.0" -> "21") and entries sharing a normalized rate are summed.
    Otherwise, or when a map cannot be decoded, a single entry keyed by the
    fallback rate carries the totals.
    """
    bases = decode_json(raw_bases, dict, "total_vat_base") if raw_bases is not None else None
    amounts = decode_json(raw_amounts, dict, "total_vat_amounts") if raw_amounts is not None else None

    if bases is None or amounts is None:
        key = rate_key(fallback_rate, default=default_rate)
        return {
            key: VatEntry(
                base=_non_negative(total_without_vat, key, "base"),
                amount=_non_negative(total_vat, key, "amount"),
            )
        }

    breakdown: Dict[str, VatEntry] = {}
    for rate, raw_base in bases.items():
        key = rate_key(rate, default=default_rate)
        base = _non_negative(decimal_or(raw_base, ZERO), key, "base")
        amount = _non_negative(decimal_or(amounts.get(rate), ZERO), key, "amount")

        previous = breakdown.get(key)
        if previous is not None:
            base += previous.base
            amount += previous.amount
        breakdown[key] = VatEntry(base=base, amount=amount)

    return breakdown


def breakdown_mismatch(breakdown: Dict[str, VatEntry], total_without_vat: Decimal) -> Decimal:
    """Σ base − total_without_vat. Reported, never corrected."""
    return sum((entry.base for entry in breakdown.values()), ZERO) - total_without_vat
