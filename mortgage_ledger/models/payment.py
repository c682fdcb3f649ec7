"""Payment model: one append-only ledger entry against a mortgage."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from mortgage_ledger.exceptions import InvalidEntityStateError
from mortgage_ledger.models.enums import PaymentSource, PaymentStatus, PaymentType


@dataclass
class Payment:
    """Mortgage payment (scheduled installment or top-up)."""

    payment_id: str
    mortgage_id: str
    payment_type: PaymentType
    source: PaymentSource
    due_date: date
    principal: Decimal
    interest: Decimal
    total_amount: Decimal
    status: PaymentStatus
    payment_number: int | None = None  # Scheduled payments only
    actual_payment_date: date | None = None
    balance_before: Decimal | None = None
    balance_after: Decimal | None = None  # Unset until settled
    topup_reason: str | None = None
    created_at: datetime | None = None

    @property
    def is_scheduled(self) -> bool:
        return self.payment_type == PaymentType.SCHEDULED

    @property
    def is_topup(self) -> bool:
        return self.payment_type == PaymentType.TOPUP

    @property
    def is_paid(self) -> bool:
        return self.status == PaymentStatus.PAID

    @property
    def is_settled(self) -> bool:
        return self.balance_after is not None

    def is_overdue(self, as_of: date) -> bool:
        """Whether this entry is still unsettled with a due date on or before ``as_of``."""
        return self.status == PaymentStatus.SCHEDULED and self.due_date <= as_of

    def settle(
        self,
        actual_payment_date: date,
        balance_before: Decimal,
        balance_after: Decimal,
    ) -> None:
        """Transition SCHEDULED -> PAID."""
        if self.status != PaymentStatus.SCHEDULED:
            raise InvalidEntityStateError(
                f"Payment {self.payment_id} is {self.status.value}, only SCHEDULED payments can be settled"
            )
        self.status = PaymentStatus.PAID
        self.actual_payment_date = actual_payment_date
        self.balance_before = balance_before
        self.balance_after = balance_after

    def mark_missed(self) -> None:
        """Transition SCHEDULED -> MISSED (terminal)."""
        if self.status != PaymentStatus.SCHEDULED:
            raise InvalidEntityStateError(
                f"Payment {self.payment_id} is {self.status.value}, only SCHEDULED payments can be missed"
            )
        self.status = PaymentStatus.MISSED
