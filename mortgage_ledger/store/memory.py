"""In-memory ledger repository with transactional commits and per-key locks."""

import logging
import threading
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass, field, replace
from datetime import date, datetime

from mortgage_ledger.exceptions import (
    DuplicatePaymentError,
    InvalidEntityStateError,
    MortgageNotFoundError,
)
from mortgage_ledger.models import Mortgage, Payment, PaymentSource, PaymentStatus, PaymentType
from mortgage_ledger.store.repository import LedgerRepository, UnitOfWork

logger = logging.getLogger(__name__)


class KeyedLock:
    """One re-entrant lock per key, created on first use."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.RLock())
        with lock:
            yield


@dataclass
class InMemoryLedgerRepository(LedgerRepository):
    """Dictionary-backed ``LedgerRepository``.

    Reads hand out shallow copies and commits store copies, so entities
    held by callers are never shared with the store. Reads and commits
    share one lock, so a query never sees a half-applied unit of work.
    """

    _mortgages: dict[str, Mortgage] = field(default_factory=dict)
    _payments: dict[str, Payment] = field(default_factory=dict)

    # Relationship indexes
    _property_mortgages: dict[str, list[str]] = field(default_factory=dict)
    _mortgage_payments: dict[str, list[str]] = field(default_factory=dict)
    _sequence_index: dict[tuple[str, int], str] = field(default_factory=dict)
    _scheduled_index: dict[tuple[str, date], list[str]] = field(default_factory=dict)  # All SCHEDULED-type
    _generated_index: dict[tuple[str, date], str] = field(default_factory=dict)

    _commit_lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _keyed_locks: KeyedLock = field(default_factory=KeyedLock, repr=False)

    @contextmanager
    def transaction(self) -> Iterator[UnitOfWork]:
        uow = UnitOfWork()
        yield uow
        self._commit(uow)

    def lock(self, key: str) -> AbstractContextManager[None]:
        return self._keyed_locks.hold(key)

    def _commit(self, uow: UnitOfWork) -> None:
        with self._commit_lock:
            self._check_constraints(uow)
            now = datetime.now()

            for mortgage in uow.mortgages.values():
                stored = replace(mortgage)
                if stored.created_at is None:
                    stored.created_at = now
                stored.updated_at = now
                previous = self._mortgages.get(stored.mortgage_id)
                if previous is None:
                    self._property_mortgages.setdefault(stored.property_id, []).append(stored.mortgage_id)
                    self._mortgage_payments.setdefault(stored.mortgage_id, [])
                else:
                    self._sequence_index.pop((previous.property_id, previous.sequence_number), None)
                self._sequence_index[(stored.property_id, stored.sequence_number)] = stored.mortgage_id
                self._mortgages[stored.mortgage_id] = stored

            for payment in uow.payments.values():
                stored = replace(payment)
                if stored.created_at is None:
                    stored.created_at = now
                if stored.payment_id not in self._payments:
                    self._mortgage_payments[stored.mortgage_id].append(stored.payment_id)
                    if stored.payment_type == PaymentType.SCHEDULED:
                        key = (stored.mortgage_id, stored.due_date)
                        self._scheduled_index.setdefault(key, []).append(stored.payment_id)
                        if stored.source == PaymentSource.SYSTEM_GENERATED:
                            self._generated_index[key] = stored.payment_id
                self._payments[stored.payment_id] = stored

        logger.debug(
            "Committed unit of work: %d mortgages, %d payments",
            len(uow.mortgages),
            len(uow.payments),
        )

    def _check_constraints(self, uow: UnitOfWork) -> None:
        """Reject the whole unit of work before anything is written.

        Staged entities are checked against the stored indexes plus the
        keys claimed earlier in the same unit of work.
        """
        claimed_sequences: dict[tuple[str, int], str] = {}
        for mortgage in uow.mortgages.values():
            key = (mortgage.property_id, mortgage.sequence_number)
            owner = claimed_sequences.get(key) or self._sequence_index.get(key)
            if owner is not None and owner != mortgage.mortgage_id:
                raise InvalidEntityStateError(
                    f"Sequence number {mortgage.sequence_number} already used on property {mortgage.property_id}"
                )
            claimed_sequences[key] = mortgage.mortgage_id

        claimed_dates: dict[tuple[str, date], str] = {}
        for payment in uow.payments.values():
            if payment.mortgage_id not in self._mortgages and payment.mortgage_id not in uow.mortgages:
                raise MortgageNotFoundError(payment.mortgage_id)
            # Only the batch generator is limited to one entry per due date
            if payment.payment_type != PaymentType.SCHEDULED or payment.source != PaymentSource.SYSTEM_GENERATED:
                continue
            key = (payment.mortgage_id, payment.due_date)
            existing = claimed_dates.get(key) or self._generated_index.get(key)
            if existing is not None and existing != payment.payment_id:
                raise DuplicatePaymentError(
                    f"Scheduled payment already generated for mortgage {payment.mortgage_id} on {payment.due_date}"
                )
            claimed_dates[key] = payment.payment_id

    # Mortgages

    def get_mortgage(self, mortgage_id: str) -> Mortgage | None:
        with self._commit_lock:
            mortgage = self._mortgages.get(mortgage_id)
            return replace(mortgage) if mortgage else None

    def find_mortgage_for_user(self, mortgage_id: str, user_id: str) -> Mortgage | None:
        with self._commit_lock:
            mortgage = self._mortgages.get(mortgage_id)
            if mortgage is None or mortgage.user_id != user_id:
                return None
            return replace(mortgage)

    def find_mortgages_by_property(self, property_id: str) -> list[Mortgage]:
        with self._commit_lock:
            mortgages = [replace(self._mortgages[mid]) for mid in self._property_mortgages.get(property_id, [])]
        return sorted(mortgages, key=lambda m: m.sequence_number)

    def find_mortgages_by_user(self, user_id: str) -> list[Mortgage]:
        with self._commit_lock:
            mortgages = [replace(m) for m in self._mortgages.values() if m.user_id == user_id]
        return sorted(mortgages, key=lambda m: m.created_at or datetime.min, reverse=True)

    def find_active_mortgages(self) -> list[Mortgage]:
        with self._commit_lock:
            return [replace(m) for m in self._mortgages.values() if m.is_active]

    def next_sequence_number(self, property_id: str) -> int:
        with self._commit_lock:
            ids = self._property_mortgages.get(property_id, [])
            return max((self._mortgages[mid].sequence_number for mid in ids), default=0) + 1

    # Payments

    def get_payment(self, payment_id: str) -> Payment | None:
        with self._commit_lock:
            payment = self._payments.get(payment_id)
            return replace(payment) if payment else None

    def find_payments_by_mortgage(self, mortgage_id: str) -> list[Payment]:
        with self._commit_lock:
            payments = [replace(self._payments[pid]) for pid in self._mortgage_payments.get(mortgage_id, [])]
        return sorted(payments, key=lambda p: (p.due_date, p.payment_number or 0), reverse=True)

    def find_scheduled_payment(self, mortgage_id: str, due_date: date) -> Payment | None:
        with self._commit_lock:
            payment_id = self._generated_index.get((mortgage_id, due_date))
            return replace(self._payments[payment_id]) if payment_id else None

    def exists_scheduled_payment(self, mortgage_id: str, due_date: date) -> bool:
        with self._commit_lock:
            return bool(self._scheduled_index.get((mortgage_id, due_date)))

    def find_max_payment_number(self, mortgage_id: str) -> int:
        with self._commit_lock:
            ids = self._mortgage_payments.get(mortgage_id, [])
            return max((self._payments[pid].payment_number or 0 for pid in ids), default=0)

    def find_overdue_payments(self, as_of: date) -> list[Payment]:
        with self._commit_lock:
            overdue = [replace(p) for p in self._payments.values() if p.is_overdue(as_of)]
        return sorted(overdue, key=lambda p: (p.due_date, p.mortgage_id))

    def summary(self) -> dict[str, int]:
        """Return summary counts of all entities."""
        with self._commit_lock:
            return {
                "mortgages": len(self._mortgages),
                "active_mortgages": sum(1 for m in self._mortgages.values() if m.is_active),
                "payments": len(self._payments),
                "scheduled_payments": sum(
                    1 for p in self._payments.values() if p.status == PaymentStatus.SCHEDULED
                ),
            }
