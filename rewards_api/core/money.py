"""Monetary rounding and the two-decimal wire format."""

from decimal import ROUND_HALF_UP, Decimal

from rewards_api.core.exceptions import BadRequestError

CENT = Decimal("0.01")


def to_decimal(value: float | int | str | Decimal | None) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_amount(value: float | int | str | Decimal | None) -> float:
    """Round to whole cents; stored amounts are always cent-exact floats."""
    return float(to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))


def format_amount(value: float | int | str | Decimal | None) -> str:
    """Render an amount with exactly two decimals: 10 -> "10.00"."""
    amount = to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    if amount == 0:
        # float drift like -1e-17 must not render as "-0.00"
        amount = CENT * 0
    return str(amount)


def positive_amount(value: float | int | str | Decimal) -> float:
    """Validate client money input: finite and greater than 0, rounded to cents."""
    try:
        amount = to_decimal(value)
    except ArithmeticError as e:
        raise BadRequestError("amount must be a number", details={"amount": str(value)}) from e
    if not amount.is_finite():
        raise BadRequestError("amount must be a finite number", details={"amount": str(value)})
    rounded = round_amount(amount)
    if rounded <= 0:
        raise BadRequestError("amount must be greater than 0", details={"amount": rounded})
    return rounded
