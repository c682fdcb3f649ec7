"""Payment classification and interest/principal split."""

from dataclasses import dataclass
from decimal import Decimal

from mortgage_ledger.engine import calculator
from mortgage_ledger.models.enums import PaymentType
from mortgage_ledger.money import ZERO, round_money

DEFAULT_TOLERANCE = Decimal("0.05")


@dataclass(frozen=True)
class PaymentSplit:
    """How one payment divides between interest and principal."""

    payment_type: PaymentType
    principal: Decimal
    interest: Decimal
    balance_before: Decimal
    balance_after: Decimal


def classify_payment(
    amount: Decimal,
    expected_payment: Decimal,
    topup_reason: str | None = None,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> PaymentType:
    """Decide whether a cash amount is a scheduled installment or a top-up.

    A non-blank ``topup_reason`` always means TOPUP. Otherwise the amount
    is SCHEDULED when it lies within ``expected * (1 ± tolerance)``
    inclusive, and TOPUP outside that band.
    """
    if topup_reason is not None and topup_reason.strip():
        return PaymentType.TOPUP

    band = expected_payment * tolerance
    if expected_payment - band <= amount <= expected_payment + band:
        return PaymentType.SCHEDULED
    return PaymentType.TOPUP


def split_payment(
    payment_type: PaymentType,
    amount: Decimal,
    balance: Decimal,
    annual_rate: Decimal,
) -> PaymentSplit:
    """Split ``amount`` against the outstanding ``balance``.

    Scheduled payments settle the month's interest first (never more than
    the amount itself) and put the rest towards principal. Top-ups go
    entirely to principal.
    """
    if payment_type == PaymentType.TOPUP:
        interest = ZERO
        principal = round_money(amount)
    else:
        interest = min(calculator.monthly_interest(balance, annual_rate), amount)
        principal = round_money(max(ZERO, amount - interest))

    return PaymentSplit(
        payment_type=payment_type,
        principal=principal,
        interest=round_money(interest),
        balance_before=balance,
        balance_after=calculator.remaining_balance(balance, principal),
    )
