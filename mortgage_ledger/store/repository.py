"""Data-access interface the ledger engine depends on."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date
from decimal import Decimal

from mortgage_ledger.models import Mortgage, Payment, PaymentStatus, PaymentType


class UnitOfWork:
    """Writes staged inside one ``LedgerRepository.transaction()`` block.

    Nothing staged here is visible to other readers until the block exits
    cleanly; an exception anywhere in the block discards all of it.
    """

    def __init__(self) -> None:
        self.mortgages: dict[str, Mortgage] = {}
        self.payments: dict[str, Payment] = {}

    def save_mortgage(self, mortgage: Mortgage) -> None:
        self.mortgages[mortgage.mortgage_id] = mortgage

    def save_payment(self, payment: Payment) -> None:
        self.payments[payment.payment_id] = payment

    def __len__(self) -> int:
        return len(self.mortgages) + len(self.payments)


class LedgerRepository(ABC):
    """Typed storage for mortgages and payments.

    Implementations must return detached copies from every read, so a
    caller mutating an entity changes nothing until it is saved through a
    committed :class:`UnitOfWork`. They must also enforce that generated
    (``SYSTEM_GENERATED``) scheduled entries are unique per
    ``(mortgage_id, due_date)`` and sequence numbers unique per property.
    Reads must be safe to call while another thread commits.
    """

    # Transactions and locking

    @abstractmethod
    def transaction(self) -> AbstractContextManager[UnitOfWork]:
        """Open a unit of work that commits every staged write or none."""

    @abstractmethod
    def lock(self, key: str) -> AbstractContextManager[None]:
        """Hold a re-entrant mutual-exclusion lock for ``key`` (e.g. a mortgage id)."""

    # Mortgages

    @abstractmethod
    def get_mortgage(self, mortgage_id: str) -> Mortgage | None:
        """Get a mortgage by id regardless of owner."""

    @abstractmethod
    def find_mortgage_for_user(self, mortgage_id: str, user_id: str) -> Mortgage | None:
        """Get a mortgage only if ``user_id`` owns it."""

    @abstractmethod
    def find_mortgages_by_property(self, property_id: str) -> list[Mortgage]:
        """All mortgages on a property, ordered by sequence number."""

    @abstractmethod
    def find_mortgages_by_user(self, user_id: str) -> list[Mortgage]:
        """All mortgages owned by a user, newest first."""

    @abstractmethod
    def find_active_mortgages(self) -> list[Mortgage]:
        """Every active mortgage in the store."""

    @abstractmethod
    def next_sequence_number(self, property_id: str) -> int:
        """Highest sequence number on the property plus one (1 if none)."""

    def find_active_mortgages_by_property(self, property_id: str) -> list[Mortgage]:
        return [m for m in self.find_mortgages_by_property(property_id) if m.is_active]

    def find_active_mortgages_by_user(self, user_id: str) -> list[Mortgage]:
        active = [m for m in self.find_mortgages_by_user(user_id) if m.is_active]
        return sorted(active, key=lambda m: m.sequence_number)

    def find_mortgages_covering(self, on: date) -> list[Mortgage]:
        """Active mortgages whose term contains ``on``."""
        return [m for m in self.find_active_mortgages() if m.covers(on)]

    # Payments

    @abstractmethod
    def get_payment(self, payment_id: str) -> Payment | None:
        """Get a payment by id."""

    @abstractmethod
    def find_payments_by_mortgage(self, mortgage_id: str) -> list[Payment]:
        """All payments for a mortgage, latest due date first."""

    @abstractmethod
    def find_scheduled_payment(self, mortgage_id: str, due_date: date) -> Payment | None:
        """The generated entry for a mortgage and due date, if any."""

    @abstractmethod
    def find_max_payment_number(self, mortgage_id: str) -> int:
        """Highest payment number on the mortgage, 0 if none."""

    @abstractmethod
    def find_overdue_payments(self, as_of: date) -> list[Payment]:
        """Payments still in SCHEDULED status with a due date on or before ``as_of``."""

    def exists_scheduled_payment(self, mortgage_id: str, due_date: date) -> bool:
        """Whether any SCHEDULED-type payment, generated or user-recorded, is due on ``due_date``."""
        return any(
            p.payment_type == PaymentType.SCHEDULED and p.due_date == due_date
            for p in self.find_payments_by_mortgage(mortgage_id)
        )

    def find_topup_payments(self, mortgage_id: str) -> list[Payment]:
        return [p for p in self.find_payments_by_mortgage(mortgage_id) if p.payment_type == PaymentType.TOPUP]

    def count_by_status(self, mortgage_id: str, status: PaymentStatus) -> int:
        return sum(1 for p in self.find_payments_by_mortgage(mortgage_id) if p.status == status)

    def sum_principal_paid(self, mortgage_id: str) -> Decimal:
        return sum((p.principal for p in self._paid(mortgage_id)), Decimal("0"))

    def sum_interest_paid(self, mortgage_id: str) -> Decimal:
        return sum((p.interest for p in self._paid(mortgage_id)), Decimal("0"))

    def sum_total_paid(self, mortgage_id: str) -> Decimal:
        return sum((p.total_amount for p in self._paid(mortgage_id)), Decimal("0"))

    def _paid(self, mortgage_id: str) -> list[Payment]:
        return [p for p in self.find_payments_by_mortgage(mortgage_id) if p.status == PaymentStatus.PAID]
