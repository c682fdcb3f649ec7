"""Tests for MortgageLedger."""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from mortgage_ledger.engine import MortgageLedger, PaymentRecorder
from mortgage_ledger.exceptions import (
    InvalidArgumentError,
    MortgageNotFoundError,
    PropertyNotFoundError,
)
from mortgage_ledger.models import Mortgage, MortgageTerms
from mortgage_ledger.store import InMemoryLedgerRepository, InMemoryPropertyDirectory


class TestCreate:
    """Tests for mortgage creation."""

    def test_create(self, mortgage: Mortgage, user_id: str, property_id: str) -> None:
        """Test a new mortgage starts at the full loan amount."""
        assert mortgage.user_id == user_id
        assert mortgage.property_id == property_id
        assert mortgage.sequence_number == 1
        assert mortgage.monthly_payment == Decimal("2001.00")
        assert mortgage.current_balance == Decimal("360000")
        assert mortgage.principal_paid_to_date == Decimal("0")
        assert mortgage.interest_paid_to_date == Decimal("0")
        assert mortgage.is_active is True
        assert mortgage.linked_to_mortgage_id is None
        assert mortgage.end_date == date(2049, 1, 15)

    def test_create_persists(
        self, mortgage: Mortgage, repository: InMemoryLedgerRepository
    ) -> None:
        """Test the mortgage is committed to the repository."""
        stored = repository.get_mortgage(mortgage.mortgage_id)

        assert stored is not None
        assert stored.created_at is not None
        assert stored.monthly_payment == Decimal("2001.00")

    def test_sequence_continues_per_property(
        self, ledger: MortgageLedger, mortgage: Mortgage, user_id: str, property_id: str, terms: MortgageTerms
    ) -> None:
        """Test later mortgages on the same property take the next number."""
        second = ledger.create(user_id, property_id, terms)

        assert second.sequence_number == 2

    def test_create_keeps_notes(
        self, ledger: MortgageLedger, user_id: str, property_id: str, terms: MortgageTerms
    ) -> None:
        """Test free-text notes travel with the mortgage."""
        mortgage = ledger.create(user_id, property_id, replace(terms, notes="Two-year fix"))

        assert mortgage.notes == "Two-year fix"

    def test_unknown_property(self, ledger: MortgageLedger, user_id: str, terms: MortgageTerms) -> None:
        """Test an unregistered property raises PropertyNotFoundError."""
        with pytest.raises(PropertyNotFoundError) as exc_info:
            ledger.create(user_id, "prop-unknown", terms)

        assert exc_info.value.entity_id == "prop-unknown"

    def test_property_of_another_user(
        self,
        ledger: MortgageLedger,
        repository: InMemoryLedgerRepository,
        other_user_id: str,
        property_id: str,
        terms: MortgageTerms,
    ) -> None:
        """Test another user's property is indistinguishable from a missing one."""
        with pytest.raises(PropertyNotFoundError):
            ledger.create(other_user_id, property_id, terms)

        assert repository.summary()["mortgages"] == 0


class TestUpdateInterestRate:
    """Tests for prospective rate changes."""

    def test_rate_changes_payment_does_not(
        self, ledger: MortgageLedger, mortgage: Mortgage, user_id: str
    ) -> None:
        """Test the fixed monthly payment is left alone."""
        updated = ledger.update_interest_rate(user_id, mortgage.mortgage_id, Decimal("6"))

        assert updated.interest_rate == Decimal("6")
        assert updated.monthly_payment == Decimal("2001.00")
        assert ledger.get_mortgage(user_id, mortgage.mortgage_id).interest_rate == Decimal("6")

    def test_new_rate_drives_next_split(
        self, ledger: MortgageLedger, recorder: PaymentRecorder, mortgage: Mortgage, user_id: str
    ) -> None:
        """Test interest on later payments uses the new rate."""
        ledger.update_interest_rate(user_id, mortgage.mortgage_id, "6")

        payment = recorder.record_payment(user_id, mortgage.mortgage_id, Decimal("2001.00"), date(2024, 2, 15))

        assert payment.interest == Decimal("1800.00")
        assert payment.principal == Decimal("201.00")

    @pytest.mark.parametrize("rate", ["-0.5", "30.5", None])
    def test_invalid_rate(self, ledger: MortgageLedger, mortgage: Mortgage, user_id: str, rate: str | None) -> None:
        """Test out-of-range rates are rejected."""
        with pytest.raises(InvalidArgumentError):
            ledger.update_interest_rate(user_id, mortgage.mortgage_id, rate)

    def test_other_user(self, ledger: MortgageLedger, mortgage: Mortgage, other_user_id: str) -> None:
        """Test another user's mortgage cannot be changed."""
        with pytest.raises(MortgageNotFoundError):
            ledger.update_interest_rate(other_user_id, mortgage.mortgage_id, Decimal("3"))


class TestQueries:
    """Tests for user-scoped reads."""

    def test_get_mortgage_scoped_by_user(
        self, ledger: MortgageLedger, mortgage: Mortgage, user_id: str, other_user_id: str
    ) -> None:
        """Test owners see their mortgage and nobody else does."""
        assert ledger.get_mortgage(user_id, mortgage.mortgage_id).mortgage_id == mortgage.mortgage_id

        with pytest.raises(MortgageNotFoundError):
            ledger.get_mortgage(other_user_id, mortgage.mortgage_id)
        with pytest.raises(MortgageNotFoundError):
            ledger.get_mortgage(user_id, "mort-missing")

    def test_property_and_user_lists(
        self,
        ledger: MortgageLedger,
        properties: InMemoryPropertyDirectory,
        mortgage: Mortgage,
        user_id: str,
        property_id: str,
        terms: MortgageTerms,
    ) -> None:
        """Test property chains and user portfolios."""
        properties.register("prop-test-002", user_id)
        second = ledger.create(user_id, "prop-test-002", terms)

        assert [m.mortgage_id for m in ledger.get_mortgages_for_property(user_id, property_id)] == [
            mortgage.mortgage_id
        ]
        assert len(ledger.get_active_mortgages_for_property(user_id, "prop-test-002")) == 1
        assert {m.mortgage_id for m in ledger.get_mortgages_for_user(user_id)} == {
            mortgage.mortgage_id,
            second.mortgage_id,
        }
        assert len(ledger.get_active_mortgages_for_user(user_id)) == 2

    def test_property_list_requires_ownership(
        self, ledger: MortgageLedger, mortgage: Mortgage, other_user_id: str, property_id: str
    ) -> None:
        """Test property listings are scoped by the owner."""
        with pytest.raises(PropertyNotFoundError):
            ledger.get_mortgages_for_property(other_user_id, property_id)

    def test_user_without_mortgages(self, ledger: MortgageLedger, other_user_id: str) -> None:
        """Test an empty portfolio is an empty list."""
        assert ledger.get_mortgages_for_user(other_user_id) == []


class TestSummarize:
    """Tests for MortgageSummary figures."""

    def test_new_mortgage(self, ledger: MortgageLedger, mortgage: Mortgage, user_id: str) -> None:
        """Test figures for an untouched mortgage a year in."""
        summary = ledger.summarize(user_id, mortgage.mortgage_id, as_of=date(2025, 1, 15))

        assert summary.remaining_payments == 288
        assert summary.remaining_years == 24
        assert summary.remaining_months == 0
        assert summary.percentage_repaid == 0.0
        assert summary.projected_total_interest == Decimal("240300.00")
        assert summary.total_paid == Decimal("0")

    def test_after_payments(
        self, ledger: MortgageLedger, recorder: PaymentRecorder, mortgage: Mortgage, user_id: str
    ) -> None:
        """Test repaid share and totals follow recorded payments."""
        recorder.record_payment(user_id, mortgage.mortgage_id, Decimal("2001.00"), date(2024, 2, 15))
        recorder.record_payment(
            user_id, mortgage.mortgage_id, Decimal("35349.00"), date(2024, 2, 20), topup_reason="Bonus"
        )

        summary = ledger.summarize(user_id, mortgage.mortgage_id, as_of=date(2024, 3, 1))

        assert summary.current_balance == Decimal("324000.00")
        assert summary.percentage_repaid == 10.0
        assert summary.principal_paid == Decimal("36000.00")
        assert summary.interest_paid == Decimal("1350.00")
        assert summary.total_paid == Decimal("37350.00")
        assert summary.remaining_payments == 299

    def test_overpayment_totals_follow_rows(
        self, ledger: MortgageLedger, recorder: PaymentRecorder, mortgage: Mortgage, user_id: str
    ) -> None:
        """Test paid totals keep the full amount paid while the repaid share stops at the loan."""
        recorder.record_payment(user_id, mortgage.mortgage_id, Decimal("400000.00"), date(2024, 2, 15))

        summary = ledger.summarize(user_id, mortgage.mortgage_id, as_of=date(2024, 3, 1))
        stored = ledger.get_mortgage(user_id, mortgage.mortgage_id)

        assert summary.current_balance == Decimal("0.00")
        assert summary.percentage_repaid == 100.0
        assert stored.principal_paid_to_date == Decimal("360000.00")
        assert summary.principal_paid == Decimal("400000.00")
        assert summary.total_paid == Decimal("400000.00")

    def test_before_start(self, ledger: MortgageLedger, mortgage: Mortgage, user_id: str) -> None:
        """Test the full term remains before the start date."""
        summary = ledger.summarize(user_id, mortgage.mortgage_id, as_of=date(2023, 6, 1))

        assert summary.remaining_payments == 300
