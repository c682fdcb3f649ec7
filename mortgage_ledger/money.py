"""Fixed-point money helpers shared by the models and the calculator."""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from mortgage_ledger.exceptions import InvalidArgumentError

CENTS = Decimal("0.01")
RATE_PLACES = Decimal("1E-10")
ZERO = Decimal("0")


def to_decimal(value: object, name: str) -> Decimal:
    """Coerce a numeric input to ``Decimal`` without going through binary floats.

    Raises
    ------
    InvalidArgumentError
        If the value is missing or not numeric.
    """
    if value is None:
        raise InvalidArgumentError(f"{name} must not be None")
    if isinstance(value, bool):
        raise InvalidArgumentError(f"{name} must be numeric, got bool")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except InvalidOperation as exc:
            raise InvalidArgumentError(f"{name} must be numeric, got {value!r}") from exc
    if not result.is_finite():
        raise InvalidArgumentError(f"{name} must be finite, got {value!r}")
    return result


def round_money(value: Decimal) -> Decimal:
    """Round to cents, half-up."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def round_rate(value: Decimal) -> Decimal:
    """Round to 10 fractional digits, half-up."""
    return value.quantize(RATE_PLACES, rounding=ROUND_HALF_UP)
