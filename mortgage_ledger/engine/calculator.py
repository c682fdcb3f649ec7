"""Amortization arithmetic on fixed-point decimals.

Every function is pure. Rates are annual percentages (``4.5`` means 4.5%).
Intermediate rates and powers keep 10 fractional digits, money results are
rounded to cents, and all rounding is half-up at each step so results match
the figures lenders quote to the penny.
"""

from decimal import ROUND_HALF_UP, Decimal, localcontext

from mortgage_ledger.exceptions import InvalidArgumentError
from mortgage_ledger.money import ZERO, round_money, round_rate, to_decimal

MONTHS_PER_YEAR = 12
PERCENT_PLACES = Decimal("0.0001")

# Enough significant digits that only the explicit quantize steps round
_PRECISION = 50


def monthly_rate(annual_rate: Decimal | int | str | None) -> Decimal:
    """Convert an annual percentage to a monthly decimal rate.

    Returns ``0`` for a missing rate.
    """
    if annual_rate is None:
        return ZERO
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return round_rate(to_decimal(annual_rate, "annual_rate") / Decimal(1200))


def monthly_payment(
    principal: Decimal | int | str,
    annual_rate: Decimal | int | str,
    term_years: int,
) -> Decimal:
    """Calculate the fixed monthly installment.

    ``M = P * r(1+r)^n / ((1+r)^n - 1)`` with ``r`` the monthly rate and
    ``n`` the number of monthly payments; ``M = P / n`` when ``r`` is zero.

    Parameters
    ----------
    principal : Decimal
        Original loan amount, must be positive.
    annual_rate : Decimal
        Annual interest rate percentage, must not be negative.
    term_years : int
        Loan term in years, at least 1.

    Returns
    -------
    Decimal
        Monthly payment rounded to cents.

    Raises
    ------
    InvalidArgumentError
        If any input is missing or out of range.
    """
    principal = to_decimal(principal, "principal")
    if principal <= ZERO:
        raise InvalidArgumentError("Principal must be positive")
    annual_rate = to_decimal(annual_rate, "annual_rate")
    if annual_rate < ZERO:
        raise InvalidArgumentError("Interest rate cannot be negative")
    if term_years is None or isinstance(term_years, bool) or not isinstance(term_years, int):
        raise InvalidArgumentError("Term must be a whole number of years")
    if term_years <= 0:
        raise InvalidArgumentError("Term must be positive")

    rate = monthly_rate(annual_rate)
    number_of_payments = term_years * MONTHS_PER_YEAR

    with localcontext() as ctx:
        ctx.prec = _PRECISION
        if rate == ZERO:
            return round_money(principal / number_of_payments)

        growth = _power(rate + 1, number_of_payments)
        numerator = rate * growth
        denominator = growth - 1
        return round_money(round_rate(principal * numerator / denominator))


def monthly_interest(balance: Decimal | int | str, annual_rate: Decimal | int | str) -> Decimal:
    """Interest accrued on ``balance`` for one month, rounded to cents."""
    balance = to_decimal(balance, "balance")
    if balance < ZERO:
        raise InvalidArgumentError("Balance cannot be negative")
    annual_rate = to_decimal(annual_rate, "annual_rate")
    if annual_rate < ZERO:
        raise InvalidArgumentError("Interest rate cannot be negative")

    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return round_money(balance * monthly_rate(annual_rate))


def principal_portion(payment: Decimal | int | str, interest: Decimal | int | str) -> Decimal:
    """Part of ``payment`` left after ``interest``. Can be negative."""
    payment = to_decimal(payment, "monthly_payment")
    interest = to_decimal(interest, "monthly_interest")
    return round_money(payment - interest)


def remaining_balance(previous_balance: Decimal | int | str, principal_paid: Decimal | int | str) -> Decimal:
    """Balance after paying ``principal_paid``, floored at zero."""
    previous_balance = to_decimal(previous_balance, "previous_balance")
    principal_paid = to_decimal(principal_paid, "principal_paid")
    return round_money(max(ZERO, previous_balance - principal_paid))


def percentage_repaid(
    original_amount: Decimal | int | str | None,
    amount_repaid: Decimal | int | str | None,
) -> float:
    """Share of the original loan repaid, as a percentage.

    The ratio is rounded to 4 places before scaling, so ``36000`` of
    ``360000`` gives ``10.0``. Returns ``0.0`` when either amount is
    missing or the original amount is zero.
    """
    if original_amount is None or amount_repaid is None:
        return 0.0
    original_amount = to_decimal(original_amount, "original_amount")
    if original_amount == ZERO:
        return 0.0
    amount_repaid = to_decimal(amount_repaid, "amount_repaid")

    with localcontext() as ctx:
        ctx.prec = _PRECISION
        ratio = (amount_repaid / original_amount).quantize(PERCENT_PLACES, rounding=ROUND_HALF_UP)
        return float(ratio * 100)


def total_interest(
    payment: Decimal | int | str,
    number_of_payments: int,
    original_principal: Decimal | int | str,
) -> Decimal:
    """Lifetime interest: ``payment * number_of_payments - original_principal``."""
    payment = to_decimal(payment, "monthly_payment")
    if number_of_payments is None:
        raise InvalidArgumentError("number_of_payments must not be None")
    original_principal = to_decimal(original_principal, "original_principal")
    return round_money(payment * number_of_payments - original_principal)


def remaining_payments(original_payments: int | None, payments_completed: int | None) -> int:
    """Installments left, never below zero. Missing inputs give ``0``."""
    if original_payments is None or payments_completed is None:
        return 0
    return max(0, original_payments - payments_completed)


def _power(base: Decimal, exponent: int) -> Decimal:
    """``base ** exponent`` by repeated multiplication, rounding each step to 10 places."""
    if exponent < 0:
        raise InvalidArgumentError("Exponent must be non-negative")
    result = Decimal(1)
    for _ in range(exponent):
        result = round_rate(result * base)
    return result
