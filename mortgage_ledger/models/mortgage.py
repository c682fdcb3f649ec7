"""Mortgage models: creation terms, the ledger entity and its summary view."""

import calendar
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from mortgage_ledger.exceptions import InvalidArgumentError, LedgerInconsistencyError
from mortgage_ledger.models.enums import MortgageType, ProductType
from mortgage_ledger.money import CENTS, ZERO, round_money, round_rate, to_decimal

MAX_INTEREST_RATE = Decimal("30")
MIN_TERM_YEARS = 1
MAX_TERM_YEARS = 40
MAX_LENDER_LENGTH = 255
MAX_NOTES_LENGTH = 1000


def add_months(start: date, months: int) -> date:
    """Shift a date by whole months, clamping to the last day of the target month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def months_between(start: date, end: date) -> int:
    """Count complete months from ``start`` to ``end`` (negative if ``end`` is earlier)."""
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if months > 0 and end.day < start.day:
        months -= 1
    elif months < 0 and end.day > start.day:
        months += 1
    return months


@dataclass(frozen=True)
class MortgageTerms:
    """Validated terms for a new mortgage.

    Construction fails with ``InvalidArgumentError`` when any term is out
    of range, so a ``MortgageTerms`` instance is always safe to hand to the
    ledger. Enum fields also accept their string values.
    """

    lender: str
    original_loan_amount: Decimal
    interest_rate: Decimal  # Annual percentage (e.g., 4.5 for 4.5%)
    term_years: int
    mortgage_type: MortgageType
    product_type: ProductType
    start_date: date
    notes: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.lender, str) or not self.lender.strip():
            raise InvalidArgumentError("Lender is required")
        if len(self.lender) > MAX_LENDER_LENGTH:
            raise InvalidArgumentError(f"Lender name must not exceed {MAX_LENDER_LENGTH} characters")

        amount = to_decimal(self.original_loan_amount, "original_loan_amount")
        if amount <= ZERO:
            raise InvalidArgumentError("Loan amount must be greater than 0")

        rate = to_decimal(self.interest_rate, "interest_rate")
        if not ZERO <= rate <= MAX_INTEREST_RATE:
            raise InvalidArgumentError(f"Interest rate must be between 0 and {MAX_INTEREST_RATE}")

        if isinstance(self.term_years, bool) or not isinstance(self.term_years, int):
            raise InvalidArgumentError("Term years must be a whole number")
        if not MIN_TERM_YEARS <= self.term_years <= MAX_TERM_YEARS:
            raise InvalidArgumentError(
                f"Term must be between {MIN_TERM_YEARS} and {MAX_TERM_YEARS} years"
            )

        if not isinstance(self.start_date, date):
            raise InvalidArgumentError("Start date is required")
        if self.notes is not None and len(self.notes) > MAX_NOTES_LENGTH:
            raise InvalidArgumentError(f"Notes must not exceed {MAX_NOTES_LENGTH} characters")

        try:
            mortgage_type = MortgageType(self.mortgage_type)
            product_type = ProductType(self.product_type)
        except ValueError as exc:
            raise InvalidArgumentError(str(exc)) from exc

        object.__setattr__(self, "original_loan_amount", amount)
        object.__setattr__(self, "interest_rate", rate)
        object.__setattr__(self, "mortgage_type", mortgage_type)
        object.__setattr__(self, "product_type", product_type)

    @property
    def end_date(self) -> date:
        """Start date plus the term in years."""
        return add_months(self.start_date, self.term_years * 12)


@dataclass
class Mortgage:
    """One financing instrument against one property.

    Running totals (``current_balance``, ``principal_paid_to_date``,
    ``interest_paid_to_date``) only move through :meth:`apply_payment`.
    """

    mortgage_id: str
    property_id: str
    user_id: str
    sequence_number: int  # 1-based, unique per property
    lender: str
    original_loan_amount: Decimal
    interest_rate: Decimal
    term_years: int
    mortgage_type: MortgageType
    product_type: ProductType
    start_date: date
    end_date: date
    monthly_payment: Decimal  # Fixed at creation
    current_balance: Decimal
    principal_paid_to_date: Decimal = ZERO
    interest_paid_to_date: Decimal = ZERO
    is_active: bool = True
    linked_to_mortgage_id: str | None = None  # Remortgage predecessor
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_remortgaged(self) -> bool:
        """Whether this mortgage replaced an earlier one."""
        return self.linked_to_mortgage_id is not None

    @property
    def number_of_payments(self) -> int:
        return self.term_years * 12

    @property
    def monthly_interest_rate(self) -> Decimal:
        return round_rate(self.interest_rate / Decimal(1200))

    def covers(self, on: date) -> bool:
        """Whether ``on`` falls inside ``[start_date, end_date]``."""
        return self.start_date <= on <= self.end_date

    def payment_number_for_date(self, on: date) -> int:
        """Projected installment number for a date (0 before the start date)."""
        if on < self.start_date:
            return 0
        return months_between(self.start_date, on) + 1

    def due_date_for(self, payment_number: int) -> date:
        """Due date of the n-th monthly installment, anchored on the start date."""
        return add_months(self.start_date, payment_number)

    def due_dates(self) -> Iterator[date]:
        """Every installment due date over the term, in order."""
        for payment_number in range(1, self.number_of_payments + 1):
            yield self.due_date_for(payment_number)

    def is_payment_due_on(self, on: date) -> bool:
        """Whether ``on`` is one of this mortgage's monthly due dates."""
        if not self.covers(on):
            return False
        # Calendar months, not complete months: a 31st start falls due on the 28th/29th/30th
        elapsed = (on.year - self.start_date.year) * 12 + (on.month - self.start_date.month)
        return 1 <= elapsed <= self.number_of_payments and self.due_date_for(elapsed) == on

    def apply_payment(self, principal_delta: Decimal, interest_delta: Decimal) -> Decimal:
        """Move the running totals for one settled payment.

        Parameters
        ----------
        principal_delta : Decimal
            Principal portion of the payment.
        interest_delta : Decimal
            Interest portion of the payment.

        Returns
        -------
        Decimal
            The new current balance, floored at zero.

        Notes
        -----
        Principal beyond the outstanding balance is not counted towards
        ``principal_paid_to_date`` so the balance invariant keeps holding
        for overpayments.
        """
        if principal_delta < ZERO or interest_delta < ZERO:
            raise InvalidArgumentError("Payment portions cannot be negative")

        retired = min(principal_delta, self.current_balance)
        self.current_balance = round_money(max(ZERO, self.current_balance - principal_delta))
        self.principal_paid_to_date = round_money(self.principal_paid_to_date + retired)
        self.interest_paid_to_date = round_money(self.interest_paid_to_date + interest_delta)
        self.updated_at = datetime.now()
        return self.current_balance

    def verify_balance(self) -> None:
        """Check ``current_balance == original_loan_amount - principal_paid_to_date``.

        Raises
        ------
        LedgerInconsistencyError
            If the totals disagree by more than one cent or went negative.
        """
        if self.current_balance < ZERO:
            raise LedgerInconsistencyError(self.mortgage_id, "current balance is negative")
        if self.principal_paid_to_date < ZERO or self.interest_paid_to_date < ZERO:
            raise LedgerInconsistencyError(self.mortgage_id, "paid-to-date totals are negative")
        expected = self.original_loan_amount - self.principal_paid_to_date
        if abs(self.current_balance - expected) > CENTS:
            raise LedgerInconsistencyError(
                self.mortgage_id,
                f"current balance {self.current_balance} does not match "
                f"original amount less principal paid ({expected})",
            )


@dataclass
class MortgageSummary:
    """Raw figures describing a mortgage's progress.

    Formatting (currency symbols, "N years M months" text) belongs to the
    presentation layer; everything here is a plain number or date.

    The ``*_paid`` totals add up the PAID rows as recorded and may exceed
    the mortgage's ``principal_paid_to_date`` after an overpayment.
    """

    mortgage_id: str
    lender: str
    sequence_number: int
    is_active: bool
    original_loan_amount: Decimal
    current_balance: Decimal
    monthly_payment: Decimal
    end_date: date
    remaining_payments: int
    remaining_years: int
    remaining_months: int
    percentage_repaid: float
    projected_total_interest: Decimal
    principal_paid: Decimal
    interest_paid: Decimal
    total_paid: Decimal
