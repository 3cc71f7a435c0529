from decimal import Decimal

import pytest

from projekta.errors import ValidationError
from projekta.utils import percent_of, positive_money, require_positive_amount


def test_require_positive_amount_rounds_to_cents():
    assert require_positive_amount("12.345") == Decimal("12.35")
    assert require_positive_amount("0,5") == Decimal("0.50")


@pytest.mark.parametrize("raw", ["0", "-1", "0.004"])
def test_require_positive_amount_rejects_non_positive(raw):
    with pytest.raises(ValidationError) as excinfo:
        require_positive_amount(raw, "total_amount")

    assert excinfo.value.fields == {"total_amount": "must be positive"}


def test_require_positive_amount_missing():
    with pytest.raises(ValidationError) as excinfo:
        require_positive_amount("")

    assert excinfo.value.fields == {"amount": "required"}


def test_positive_money():
    assert positive_money("100") == Decimal("100.00")
    assert positive_money("0.004") is None
    assert positive_money("-3") is None
    assert positive_money(None) is None


def test_percent_of_zero_denominator():
    assert percent_of(Decimal("50"), Decimal("0")) == Decimal("0.00")
    assert percent_of(Decimal("1"), Decimal("3")) == Decimal("33.33")
