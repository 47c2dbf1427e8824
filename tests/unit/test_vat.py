import logging
from decimal import Decimal

import pytest

from isdoc_export.core.vat import (
    breakdown_mismatch,
    build_vat_breakdown,
    quantize_money,
    rate_key,
    resolve_totals,
)

pytestmark = pytest.mark.unit


def test_totals_computed_from_amount_and_rate():
    totals = resolve_totals(12100, vat_rate="21")

    assert totals.total_with_vat == Decimal("121.00")
    assert totals.total_without_vat == Decimal("100.00")
    assert totals.total_vat == Decimal("21.00")


def test_totals_without_rate_have_no_vat():
    totals = resolve_totals(12100)

    assert totals.total_without_vat == Decimal("121.00")
    assert totals.total_vat == Decimal("0.00")


def test_explicit_totals_take_precedence():
    totals = resolve_totals(99999, total_without_vat="1 000,00", vat="210")

    assert totals.total_without_vat == Decimal("1000.00")
    assert totals.total_vat == Decimal("210.00")
    assert totals.total_with_vat == Decimal("1210.00")


def test_explicit_base_only():
    totals = resolve_totals(12100, total_without_vat="100")

    assert totals.total_vat == Decimal("21.00")
    assert totals.total_with_vat == Decimal("121.00")


def test_explicit_vat_only():
    totals = resolve_totals(12100, vat="21", vat_rate="15")

    assert totals.total_without_vat == Decimal("100.00")


@pytest.mark.parametrize(
    "amount,base,vat,rate",
    [
        (10000, None, None, "21"),
        (12345, None, None, "12"),
        (99, None, None, "21"),
        (0, None, None, None),
        (12100, "100.004", "21.004", None),
        (-12100, None, None, "21"),
        (77777, "abc", "xyz", "21"),
    ],
)
def test_totals_invariant(amount, base, vat, rate):
    totals = resolve_totals(amount, total_without_vat=base, vat=vat, vat_rate=rate)

    assert abs(totals.total_without_vat + totals.total_vat - totals.total_with_vat) <= Decimal("0.01")


def test_breakdown_from_both_maps():
    breakdown = build_vat_breakdown(
        '{"21": "100", "12": 50}',
        {"21": 21},
        "21",
        Decimal("150"),
        Decimal("21"),
    )

    assert list(breakdown.keys()) == ["21", "12"]
    assert breakdown["21"].base == Decimal("100")
    assert breakdown["21"].amount == Decimal("21")
    assert breakdown["12"].base == Decimal("50")
    assert breakdown["12"].amount == Decimal("0")


@pytest.mark.parametrize("bases,amounts", [(None, '{"21": 21}'), ('{"21": 100}', None), (None, None)])
def test_breakdown_falls_back_to_totals_when_a_map_is_missing(bases, amounts):
    breakdown = build_vat_breakdown(bases, amounts, None, Decimal("100.00"), Decimal("21.00"))

    assert list(breakdown.keys()) == ["21"]
    assert breakdown["21"].base == Decimal("100.00")
    assert breakdown["21"].amount == Decimal("21.00")


def test_breakdown_fallback_uses_given_rate():
    breakdown = build_vat_breakdown(None, None, "12.0", Decimal("100"), Decimal("12"))

    assert list(breakdown.keys()) == ["12"]


def test_breakdown_malformed_map_falls_back(caplog):
    with caplog.at_level(logging.WARNING):
        breakdown = build_vat_breakdown('{"21": ', '{"21": 21}', "21", Decimal("100"), Decimal("21"))

    assert breakdown["21"].base == Decimal("100")
    assert "total_vat_base" in caplog.text


def test_breakdown_clamps_negative_values():
    breakdown = build_vat_breakdown('{"21": -100}', '{"21": -21}', "21", Decimal("0"), Decimal("0"))

    assert breakdown["21"].base == Decimal("0")
    assert breakdown["21"].amount == Decimal("0")


def test_breakdown_fallback_clamps_negative_totals():
    breakdown = build_vat_breakdown(None, None, "21", Decimal("-100"), Decimal("-21"))

    assert breakdown["21"].base >= 0
    assert breakdown["21"].amount >= 0


def test_breakdown_mismatch_is_reported_not_corrected():
    breakdown = build_vat_breakdown('{"21": 90}', '{"21": 18.9}', "21", Decimal("100"), Decimal("21"))

    assert breakdown_mismatch(breakdown, Decimal("100")) == Decimal("-10")
    assert breakdown["21"].base == Decimal("90")


@pytest.mark.parametrize("rate,key", [("21", "21"), (21, "21"), ("12.50", "12.5"), ("0", "0"), ("n/a", "21")])
def test_rate_key(rate, key):
    assert rate_key(rate) == key


def test_breakdown_keys_are_normalized():
    breakdown = build_vat_breakdown('{"21 %": "100"}', '{"21 %": "21"}', "21", Decimal("100"), Decimal("21"))

    assert list(breakdown.keys()) == ["21"]
    assert breakdown["21"].amount == Decimal("21")


def test_breakdown_merges_equivalent_rates():
    breakdown = build_vat_breakdown(
        '{"21": 100, "21.0": 50, "12": 10}',
        '{"21": 21, "21.0": 10.5, "12": 1.2}',
        "21",
        Decimal("160"),
        Decimal("32.7"),
    )

    assert list(breakdown.keys()) == ["21", "12"]
    assert breakdown["21"].base == Decimal("150")
    assert breakdown["21"].amount == Decimal("31.5")


def test_breakdown_non_numeric_rate_uses_configured_default():
    breakdown = build_vat_breakdown(None, None, "n/a", Decimal("100"), Decimal("15"), default_rate="15")

    assert list(breakdown.keys()) == ["15"]


def test_rate_key_default():
    assert rate_key("n/a", default="12") == "12"
    assert rate_key(None, default="12.0") == "12"


def test_quantize_out_of_range_is_readable():
    with pytest.raises(ValueError, match="cannot be represented with two decimals"):
        quantize_money(Decimal("1e40"))
