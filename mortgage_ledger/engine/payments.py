"""Payment recording, scheduled-payment generation and settlement."""

import logging
import uuid
from datetime import date

from mortgage_ledger.config import PaymentPolicyConfig
from mortgage_ledger.engine import calculator
from mortgage_ledger.engine.classifier import classify_payment, split_payment
from mortgage_ledger.engine.ledger import MortgageLedger
from mortgage_ledger.exceptions import (
    InvalidArgumentError,
    MortgageNotFoundError,
    PaymentNotFoundError,
)
from mortgage_ledger.models import (
    Mortgage,
    Payment,
    PaymentSource,
    PaymentStatus,
    PaymentType,
)
from mortgage_ledger.money import ZERO, to_decimal
from mortgage_ledger.store.repository import LedgerRepository

logger = logging.getLogger(__name__)


class PaymentRecorder:
    """Classifies, records and settles mortgage payments.

    Each operation holds the mortgage's lock from the balance read to the
    commit, and writes the payment and the ledger update in one unit of
    work.
    """

    def __init__(
        self,
        repository: LedgerRepository,
        ledger: MortgageLedger,
        policy: PaymentPolicyConfig | None = None,
    ) -> None:
        self._repository = repository
        self._ledger = ledger
        self._policy = policy or PaymentPolicyConfig()

    def record_payment(
        self,
        user_id: str,
        mortgage_id: str,
        amount: object,
        payment_date: date,
        topup_reason: str | None = None,
    ) -> Payment:
        """Record money received against a mortgage.

        Parameters
        ----------
        user_id : str
            Caller; must own the mortgage.
        mortgage_id : str
            Mortgage being paid.
        amount : Decimal
            Cash received, must be positive.
        payment_date : date
            Date the money arrived; used as both due and actual date.
        topup_reason : str | None
            Free text. Any non-blank reason makes the payment a top-up.

        Returns
        -------
        Payment
            The PAID payment entry.

        Raises
        ------
        MortgageNotFoundError
            If the mortgage does not exist or belongs to another user.
        InvalidArgumentError
            If the amount or date is invalid.
        """
        amount = to_decimal(amount, "amount")
        if amount <= ZERO:
            raise InvalidArgumentError("Payment amount must be greater than 0")
        if not isinstance(payment_date, date):
            raise InvalidArgumentError("Payment date is required")

        with self._repository.lock(mortgage_id):
            mortgage = self._ledger.get_mortgage(user_id, mortgage_id)
            payment_type = classify_payment(
                amount,
                mortgage.monthly_payment,
                topup_reason,
                tolerance=self._policy.scheduled_tolerance,
            )
            split = split_payment(payment_type, amount, mortgage.current_balance, mortgage.interest_rate)

            outstanding = None
            if payment_type == PaymentType.SCHEDULED:
                generated = self._repository.find_scheduled_payment(mortgage_id, payment_date)
                if generated is not None and generated.status == PaymentStatus.SCHEDULED:
                    outstanding = generated

            with self._repository.transaction() as uow:
                if outstanding is not None:
                    # Money landing on a generated entry's due date settles that entry
                    payment = outstanding
                    payment.principal = split.principal
                    payment.interest = split.interest
                    payment.total_amount = amount
                    payment.settle(payment_date, split.balance_before, split.balance_after)
                else:
                    payment = Payment(
                        payment_id=str(uuid.uuid4()),
                        mortgage_id=mortgage_id,
                        payment_type=payment_type,
                        source=PaymentSource.USER_INITIATED,
                        due_date=payment_date,
                        actual_payment_date=payment_date,
                        principal=split.principal,
                        interest=split.interest,
                        total_amount=amount,
                        balance_before=split.balance_before,
                        balance_after=split.balance_after,
                        status=PaymentStatus.PAID,
                        payment_number=(
                            self._repository.find_max_payment_number(mortgage_id) + 1
                            if payment_type == PaymentType.SCHEDULED
                            else None
                        ),
                        topup_reason=topup_reason,
                    )
                uow.save_payment(payment)
                self._ledger.apply_payment(uow, mortgage, split.principal, split.interest)

        logger.info(
            "Recorded %s payment %s on mortgage %s: principal=%s interest=%s balance %s -> %s",
            payment_type.value,
            payment.payment_id,
            mortgage_id,
            payment.principal,
            payment.interest,
            payment.balance_before,
            payment.balance_after,
        )
        return payment

    def generate_scheduled_payment(self, mortgage: Mortgage, due_date: date) -> Payment | None:
        """Create the SCHEDULED entry for a due date without touching balances.

        Returns ``None`` when an entry already exists for the mortgage and
        date, or when nothing is owed. The balance only moves when the
        entry is settled.

        Raises
        ------
        LedgerInconsistencyError
            If the mortgage's running totals no longer reconcile.
        """
        mortgage_id = mortgage.mortgage_id
        with self._repository.lock(mortgage_id):
            if self._repository.exists_scheduled_payment(mortgage_id, due_date):
                logger.debug("Payment already scheduled for mortgage %s on %s", mortgage_id, due_date)
                return None

            current = self._repository.get_mortgage(mortgage_id)
            if current is None:
                raise MortgageNotFoundError(mortgage_id)
            current.verify_balance()
            if current.current_balance == ZERO:
                logger.debug("Mortgage %s is fully repaid, nothing to schedule", mortgage_id)
                return None

            split = split_payment(
                PaymentType.SCHEDULED,
                current.monthly_payment,
                current.current_balance,
                current.interest_rate,
            )
            payment = Payment(
                payment_id=str(uuid.uuid4()),
                mortgage_id=mortgage_id,
                payment_type=PaymentType.SCHEDULED,
                source=PaymentSource.SYSTEM_GENERATED,
                due_date=due_date,
                principal=split.principal,
                interest=split.interest,
                total_amount=current.monthly_payment,
                balance_before=current.current_balance,
                status=PaymentStatus.SCHEDULED,
                payment_number=self._repository.find_max_payment_number(mortgage_id) + 1,
            )
            with self._repository.transaction() as uow:
                uow.save_payment(payment)

        logger.debug(
            "Generated payment %d for mortgage %s due %s",
            payment.payment_number,
            mortgage_id,
            due_date,
        )
        return payment

    def mark_payment_as_paid(
        self,
        payment_id: str,
        actual_payment_date: date,
        user_id: str | None = None,
    ) -> Payment:
        """Settle a generated SCHEDULED entry and move the ledger.

        Entries that are not SCHEDULED (already PAID, or MISSED) are left
        as they are and returned unchanged. When ``user_id`` is given the
        payment must belong to one of that user's mortgages.
        """
        payment = self._repository.get_payment(payment_id)
        if payment is None:
            raise PaymentNotFoundError(payment_id)

        with self._repository.lock(payment.mortgage_id):
            payment = self._repository.get_payment(payment_id)
            if user_id is None:
                mortgage = self._repository.get_mortgage(payment.mortgage_id)
                if mortgage is None:
                    raise MortgageNotFoundError(payment.mortgage_id)
            else:
                mortgage = self._repository.find_mortgage_for_user(payment.mortgage_id, user_id)
                if mortgage is None:
                    raise PaymentNotFoundError(payment_id)

            if payment.status != PaymentStatus.SCHEDULED:
                logger.debug("Payment %s is %s, not settling", payment_id, payment.status.value)
                return payment

            balance_before = mortgage.current_balance
            balance_after = calculator.remaining_balance(balance_before, payment.principal)
            with self._repository.transaction() as uow:
                payment.settle(actual_payment_date, balance_before, balance_after)
                uow.save_payment(payment)
                self._ledger.apply_payment(uow, mortgage, payment.principal, payment.interest)

        logger.info(
            "Payment %s on mortgage %s marked paid on %s, balance now %s",
            payment_id,
            payment.mortgage_id,
            actual_payment_date,
            balance_after,
        )
        return payment

    def mark_payment_missed(self, payment_id: str, as_of: date) -> bool:
        """Flip one SCHEDULED entry due on or before ``as_of`` to MISSED.

        Returns ``False`` if it was settled (or is not yet due) by the time
        the mortgage lock was acquired.
        """
        payment = self._repository.get_payment(payment_id)
        if payment is None:
            raise PaymentNotFoundError(payment_id)

        with self._repository.lock(payment.mortgage_id):
            payment = self._repository.get_payment(payment_id)
            if not payment.is_overdue(as_of):
                return False
            payment.mark_missed()
            with self._repository.transaction() as uow:
                uow.save_payment(payment)

        logger.debug("Payment %s on mortgage %s marked missed", payment_id, payment.mortgage_id)
        return True

    def mark_overdue_payments(self, as_of: date) -> list[Payment]:
        """Mark every SCHEDULED entry due on or before ``as_of`` as MISSED.

        Balances are never touched. A failure on one entry is logged and
        the rest are still processed.

        Returns
        -------
        list[Payment]
            The entries that were marked.
        """
        marked = []
        for payment in self._repository.find_overdue_payments(as_of):
            try:
                if self.mark_payment_missed(payment.payment_id, as_of):
                    payment.status = PaymentStatus.MISSED
                    marked.append(payment)
            except Exception as exc:
                logger.error("Failed to mark payment %s as missed: %s", payment.payment_id, exc)

        logger.info("Marked %d payments as missed (due on or before %s)", len(marked), as_of)
        return marked

    # Query methods
    def get_payment_history(self, user_id: str, mortgage_id: str) -> list[Payment]:
        """All payments on a mortgage, latest due date first."""
        self._ledger.get_mortgage(user_id, mortgage_id)
        return self._repository.find_payments_by_mortgage(mortgage_id)

    def get_topup_payments(self, user_id: str, mortgage_id: str) -> list[Payment]:
        self._ledger.get_mortgage(user_id, mortgage_id)
        return self._repository.find_topup_payments(mortgage_id)
