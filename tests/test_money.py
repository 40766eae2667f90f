from decimal import Decimal

import pytest

from rewards_api.core.exceptions import BadRequestError
from rewards_api.core.money import format_amount, positive_amount, round_amount


def test_format_amount_two_decimals():
    assert format_amount(10) == "10.00"
    assert format_amount(3.0) == "3.00"
    assert format_amount(0.1 + 0.2) == "0.30"
    assert format_amount(None) == "0.00"
    assert format_amount(-1) == "-1.00"
    assert format_amount(Decimal("2.005")) == "2.01"


def test_round_amount():
    assert round_amount("99.999") == 100.0
    assert round_amount(12.345) == 12.35


def test_format_amount_never_negative_zero():
    assert format_amount(0.3 - 0.1 - 0.2) == "0.00"
    assert format_amount(-0.001) == "0.00"


def test_positive_amount_validation():
    assert positive_amount("10") == 10.0
    assert positive_amount(0.005) == 0.01
    for bad in (float("nan"), float("inf"), "Infinity", "abc", 0, -1, 0.004):
        with pytest.raises(BadRequestError):
            positive_amount(bad)
