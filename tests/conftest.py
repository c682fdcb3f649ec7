"""Pytest configuration and fixtures."""

from collections.abc import Callable
from datetime import date
from decimal import Decimal
from typing import Any

import pytest

from mortgage_ledger.engine import MortgageLedger, PaymentRecorder, RemortgageManager
from mortgage_ledger.models import (
    Mortgage,
    MortgageTerms,
    MortgageType,
    Payment,
    PaymentSource,
    PaymentStatus,
    PaymentType,
    ProductType,
)
from mortgage_ledger.store import InMemoryLedgerRepository, InMemoryPropertyDirectory


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def user_id() -> str:
    """Sample owning user ID."""
    return "user-test-001"


@pytest.fixture
def other_user_id() -> str:
    """A user who owns nothing in the fixtures."""
    return "user-test-999"


@pytest.fixture
def property_id() -> str:
    """Sample property ID."""
    return "prop-test-001"


@pytest.fixture
def repository() -> InMemoryLedgerRepository:
    """Empty in-memory ledger repository."""
    return InMemoryLedgerRepository()


@pytest.fixture
def properties(property_id: str, user_id: str) -> InMemoryPropertyDirectory:
    """Property directory with the sample property owned by the sample user."""
    return InMemoryPropertyDirectory({property_id: user_id})


@pytest.fixture
def ledger(repository: InMemoryLedgerRepository, properties: InMemoryPropertyDirectory) -> MortgageLedger:
    return MortgageLedger(repository, properties)


@pytest.fixture
def recorder(repository: InMemoryLedgerRepository, ledger: MortgageLedger) -> PaymentRecorder:
    return PaymentRecorder(repository, ledger)


@pytest.fixture
def remortgages(repository: InMemoryLedgerRepository, ledger: MortgageLedger) -> RemortgageManager:
    return RemortgageManager(repository, ledger)


@pytest.fixture
def terms() -> MortgageTerms:
    """25-year repayment mortgage of 360,000 at 4.5% (monthly payment 2001.00)."""
    return MortgageTerms(
        lender="Nationwide Building Society",
        original_loan_amount=Decimal("360000"),
        interest_rate=Decimal("4.5"),
        term_years=25,
        mortgage_type=MortgageType.REPAYMENT,
        product_type=ProductType.FIXED,
        start_date=date(2024, 1, 15),
    )


@pytest.fixture
def mortgage(ledger: MortgageLedger, user_id: str, property_id: str, terms: MortgageTerms) -> Mortgage:
    """The sample mortgage, created through the ledger."""
    return ledger.create(user_id, property_id, terms)


@pytest.fixture
def make_mortgage() -> Callable[..., Mortgage]:
    """Factory for detached mortgages (360,000 at 4.5% over 25 years)."""

    def _make(**overrides: Any) -> Mortgage:
        values: dict[str, Any] = {
            "mortgage_id": "mort-001",
            "property_id": "prop-001",
            "user_id": "user-001",
            "sequence_number": 1,
            "lender": "Halifax",
            "original_loan_amount": Decimal("360000.00"),
            "interest_rate": Decimal("4.5"),
            "term_years": 25,
            "mortgage_type": MortgageType.REPAYMENT,
            "product_type": ProductType.FIXED,
            "start_date": date(2024, 1, 15),
            "end_date": date(2049, 1, 15),
            "monthly_payment": Decimal("2001.00"),
            "current_balance": Decimal("360000.00"),
        }
        values.update(overrides)
        return Mortgage(**values)

    return _make


@pytest.fixture
def make_payment() -> Callable[..., Payment]:
    """Factory for a generated, unpaid first installment on ``mort-001``."""

    def _make(**overrides: Any) -> Payment:
        values: dict[str, Any] = {
            "payment_id": "pay-001",
            "mortgage_id": "mort-001",
            "payment_type": PaymentType.SCHEDULED,
            "source": PaymentSource.SYSTEM_GENERATED,
            "due_date": date(2024, 2, 15),
            "principal": Decimal("651.00"),
            "interest": Decimal("1350.00"),
            "total_amount": Decimal("2001.00"),
            "status": PaymentStatus.SCHEDULED,
            "payment_number": 1,
            "balance_before": Decimal("360000.00"),
        }
        values.update(overrides)
        return Payment(**values)

    return _make
