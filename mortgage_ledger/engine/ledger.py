"""Mortgage ledger: creation, balance movements and read queries."""

import logging
import uuid
from datetime import date
from decimal import Decimal

from mortgage_ledger.engine import calculator
from mortgage_ledger.exceptions import (
    InvalidArgumentError,
    MortgageNotFoundError,
    PropertyNotFoundError,
)
from mortgage_ledger.models import Mortgage, MortgageSummary, MortgageTerms
from mortgage_ledger.models.mortgage import MAX_INTEREST_RATE, months_between
from mortgage_ledger.money import ZERO, to_decimal
from mortgage_ledger.store.properties import PropertyDirectory
from mortgage_ledger.store.repository import LedgerRepository, UnitOfWork

logger = logging.getLogger(__name__)


def property_lock_key(property_id: str) -> str:
    return f"property:{property_id}"


class MortgageLedger:
    """Authoritative record of each mortgage's terms and running totals.

    Every read and write is scoped by the owning user: a mortgage that
    belongs to someone else is reported exactly like a missing one.

    Parameters
    ----------
    repository : LedgerRepository
        Storage for mortgages and payments.
    properties : PropertyDirectory
        Ownership check for ``(property_id, user_id)`` pairs.
    """

    def __init__(self, repository: LedgerRepository, properties: PropertyDirectory) -> None:
        self._repository = repository
        self._properties = properties

    def create(self, user_id: str, property_id: str, terms: MortgageTerms) -> Mortgage:
        """Open a new mortgage on a property.

        The monthly payment is fixed here from the terms, the balance starts
        at the full loan amount and the sequence number continues the
        property's numbering.

        Raises
        ------
        PropertyNotFoundError
            If the user does not own the property.
        """
        self.require_property(property_id, user_id)

        with self._repository.lock(property_lock_key(property_id)):
            sequence_number = self._repository.next_sequence_number(property_id)
            mortgage = self.build(user_id, property_id, terms, sequence_number)
            with self._repository.transaction() as uow:
                uow.save_mortgage(mortgage)

        logger.info(
            "Created mortgage %s on property %s (sequence %d, monthly payment %s)",
            mortgage.mortgage_id,
            property_id,
            sequence_number,
            mortgage.monthly_payment,
        )
        return mortgage

    def build(
        self,
        user_id: str,
        property_id: str,
        terms: MortgageTerms,
        sequence_number: int,
        linked_to_mortgage_id: str | None = None,
    ) -> Mortgage:
        """Construct an active, unpersisted mortgage from validated terms."""
        monthly_payment = calculator.monthly_payment(
            terms.original_loan_amount,
            terms.interest_rate,
            terms.term_years,
        )
        return Mortgage(
            mortgage_id=str(uuid.uuid4()),
            property_id=property_id,
            user_id=user_id,
            sequence_number=sequence_number,
            lender=terms.lender,
            original_loan_amount=terms.original_loan_amount,
            interest_rate=terms.interest_rate,
            term_years=terms.term_years,
            mortgage_type=terms.mortgage_type,
            product_type=terms.product_type,
            start_date=terms.start_date,
            end_date=terms.end_date,
            monthly_payment=monthly_payment,
            current_balance=terms.original_loan_amount,
            principal_paid_to_date=ZERO,
            interest_paid_to_date=ZERO,
            is_active=True,
            linked_to_mortgage_id=linked_to_mortgage_id,
            notes=terms.notes,
        )

    def apply_payment(
        self,
        uow: UnitOfWork,
        mortgage: Mortgage,
        principal_delta: Decimal,
        interest_delta: Decimal,
    ) -> Decimal:
        """Move a mortgage's balances inside the caller's unit of work.

        Must be called in the same ``transaction()`` block that saves the
        matching payment, so neither can be committed without the other.

        Returns
        -------
        Decimal
            The new current balance.
        """
        new_balance = mortgage.apply_payment(principal_delta, interest_delta)
        uow.save_mortgage(mortgage)
        return new_balance

    def update_interest_rate(self, user_id: str, mortgage_id: str, new_rate: Decimal | int | str) -> Mortgage:
        """Change the rate used for future interest calculations.

        Past payments are untouched and the fixed monthly payment is NOT
        recalculated, so after a rate change the schedule no longer
        amortizes exactly over the original term.
        """
        rate = to_decimal(new_rate, "interest_rate")
        if not ZERO <= rate <= MAX_INTEREST_RATE:
            raise InvalidArgumentError(f"Interest rate must be between 0 and {MAX_INTEREST_RATE}")

        with self._repository.lock(mortgage_id):
            mortgage = self.get_mortgage(user_id, mortgage_id)
            previous = mortgage.interest_rate
            mortgage.interest_rate = rate
            with self._repository.transaction() as uow:
                uow.save_mortgage(mortgage)

        logger.info(
            "Mortgage %s interest rate changed %s -> %s; monthly payment stays %s",
            mortgage_id,
            previous,
            rate,
            mortgage.monthly_payment,
        )
        return mortgage

    def require_property(self, property_id: str, user_id: str) -> None:
        if not self._properties.exists(property_id, user_id):
            raise PropertyNotFoundError(property_id)

    # Query methods
    def get_mortgage(self, user_id: str, mortgage_id: str) -> Mortgage:
        """Get a mortgage owned by ``user_id``."""
        mortgage = self._repository.find_mortgage_for_user(mortgage_id, user_id)
        if mortgage is None:
            raise MortgageNotFoundError(mortgage_id)
        return mortgage

    def get_mortgages_for_property(self, user_id: str, property_id: str) -> list[Mortgage]:
        """All mortgages on a property, oldest in the chain first."""
        self.require_property(property_id, user_id)
        return self._repository.find_mortgages_by_property(property_id)

    def get_active_mortgages_for_property(self, user_id: str, property_id: str) -> list[Mortgage]:
        self.require_property(property_id, user_id)
        return self._repository.find_active_mortgages_by_property(property_id)

    def get_mortgages_for_user(self, user_id: str) -> list[Mortgage]:
        return self._repository.find_mortgages_by_user(user_id)

    def get_active_mortgages_for_user(self, user_id: str) -> list[Mortgage]:
        return self._repository.find_active_mortgages_by_user(user_id)

    def summarize(self, user_id: str, mortgage_id: str, as_of: date | None = None) -> MortgageSummary:
        """Progress figures for a mortgage as of a date (default today).

        ``percentage_repaid`` follows ``principal_paid_to_date``, which stops at
        the original loan amount. ``principal_paid``, ``interest_paid`` and
        ``total_paid`` are sums over the PAID rows, so an overpayment that
        clears the loan reports more principal than was owed.
        """
        mortgage = self.get_mortgage(user_id, mortgage_id)
        as_of = as_of or date.today()

        elapsed = max(0, months_between(mortgage.start_date, as_of))
        remaining = calculator.remaining_payments(mortgage.number_of_payments, elapsed)

        return MortgageSummary(
            mortgage_id=mortgage.mortgage_id,
            lender=mortgage.lender,
            sequence_number=mortgage.sequence_number,
            is_active=mortgage.is_active,
            original_loan_amount=mortgage.original_loan_amount,
            current_balance=mortgage.current_balance,
            monthly_payment=mortgage.monthly_payment,
            end_date=mortgage.end_date,
            remaining_payments=remaining,
            remaining_years=remaining // 12,
            remaining_months=remaining % 12,
            percentage_repaid=calculator.percentage_repaid(
                mortgage.original_loan_amount, mortgage.principal_paid_to_date
            ),
            projected_total_interest=calculator.total_interest(
                mortgage.monthly_payment, mortgage.number_of_payments, mortgage.original_loan_amount
            ),
            principal_paid=self._repository.sum_principal_paid(mortgage_id),
            interest_paid=self._repository.sum_interest_paid(mortgage_id),
            total_paid=self._repository.sum_total_paid(mortgage_id),
        )
