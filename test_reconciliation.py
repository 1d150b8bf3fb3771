from decimal import Decimal

import pytest

from reconciliation import (
    MATCHED,
    OVER,
    SHORT,
    classify,
    money,
    to_decimal,
    validate_deposit,
)


def test_exact_half_is_validated():
    v = validate_deposit("1000", "0", "500")

    assert v.required == Decimal("500")
    assert v.after_processing == Decimal("500")
    assert v.variance == 0
    assert v.status == MATCHED
    assert v.label == "VALIDATED"
    assert not v.is_short


def test_short_when_prior_plus_amount_below_half():
    v = validate_deposit(1000, 200, 100)

    assert v.status == SHORT
    assert v.is_short
    assert v.label == "SHORT 200.00"
    assert v.variance == Decimal("-200")


def test_over_when_prior_plus_amount_above_half():
    v = validate_deposit("1000.00", "400.00", "200.00")

    assert v.status == OVER
    assert v.label == "OVER 100.00"


def test_cents_are_not_lost_to_floats():
    # 0.1 + 0.2 style drift must not turn an exact match into SHORT/OVER
    v = validate_deposit("0.60", "0.10", "0.20")
    assert v.status == MATCHED


def test_missing_values_count_as_zero():
    v = validate_deposit(None, "", "250")

    assert v.sales_order_total == 0
    assert v.prior_deposits == 0
    assert v.status == OVER
    assert v.label == "OVER 250.00"


@pytest.mark.parametrize("amount", ["0", "100", "250", "499.99", "500", "750"])
def test_variance_grows_with_amount(amount):
    lower = validate_deposit(1000, 0, amount).variance
    higher = validate_deposit(1000, 0, to_decimal(amount) + 1).variance
    assert higher - lower == 1


def test_as_dict_uses_two_decimal_strings():
    d = validate_deposit("1,234.5", "100", "517.25").as_dict()

    assert d == {
        "sales_order_total": "1234.50",
        "required": "617.25",
        "prior_deposits": "100.00",
        "to_be_processed": "517.25",
        "after_processing": "617.25",
        "variance": "0.00",
        "status": "matched",
        "label": "VALIDATED",
    }


def test_classify_returns_status_only():
    assert classify(1000, 0, 500) == MATCHED
    assert classify(1000, 0, 499) == SHORT
    assert classify(1000, 0, 501) == OVER


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1,234.56", Decimal("1234.56")),
        ("$99", Decimal("99")),
        (12.5, Decimal("12.5")),
        ("abc", Decimal("0")),
        ("NaN", Decimal("0")),
        (None, Decimal("0")),
    ],
)
def test_to_decimal(raw, expected):
    assert to_decimal(raw) == expected


def test_money_rounds_to_cents():
    assert money("10") == "10.00"
    assert money("-3.456") == "-3.46"


def test_abs_variance_falls_then_rises_around_required():
    amounts = [Decimal(a) for a in ("0", "100", "200", "300", "400", "500", "600")]
    gaps = [abs(validate_deposit(1000, 200, a).variance) for a in amounts]

    assert gaps == [Decimal(g) for g in ("300", "200", "100", "0", "100", "200", "300")]
    assert [validate_deposit(1000, 200, a).status for a in amounts][3] == MATCHED
