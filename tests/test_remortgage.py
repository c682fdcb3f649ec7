"""Tests for remortgage chains."""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest

from mortgage_ledger.engine import MortgageLedger, PaymentRecorder, RemortgageManager
from mortgage_ledger.exceptions import (
    InvalidArgumentError,
    InvalidEntityStateError,
    MortgageNotFoundError,
    PropertyNotFoundError,
)
from mortgage_ledger.models import Mortgage, MortgageTerms, ProductType
from mortgage_ledger.store import InMemoryLedgerRepository, InMemoryPropertyDirectory


@pytest.fixture
def new_terms(terms: MortgageTerms) -> MortgageTerms:
    """Five-year tracker replacing the sample mortgage."""
    return replace(
        terms,
        lender="Santander UK",
        original_loan_amount=Decimal("300000"),
        interest_rate=Decimal("3.9"),
        product_type=ProductType.TRACKER,
        start_date=date(2029, 1, 15),
    )


class TestRemortgage:
    """Tests for RemortgageManager.remortgage."""

    def test_replaces_mortgage(
        self,
        remortgages: RemortgageManager,
        repository: InMemoryLedgerRepository,
        mortgage: Mortgage,
        user_id: str,
        property_id: str,
        new_terms: MortgageTerms,
    ) -> None:
        """Test the old loan closes and the linked successor opens."""
        successor = remortgages.remortgage(user_id, mortgage.mortgage_id, new_terms)

        old = repository.get_mortgage(mortgage.mortgage_id)
        active = repository.find_active_mortgages_by_property(property_id)
        assert old.is_active is False
        assert successor.is_active is True
        assert successor.sequence_number == 2
        assert successor.linked_to_mortgage_id == mortgage.mortgage_id
        assert successor.is_remortgaged is True
        assert successor.current_balance == Decimal("300000")
        assert successor.lender == "Santander UK"
        assert [m.mortgage_id for m in active] == [successor.mortgage_id]

    def test_equity_release(
        self,
        remortgages: RemortgageManager,
        mortgage: Mortgage,
        user_id: str,
        new_terms: MortgageTerms,
    ) -> None:
        """Test released equity is added to the new loan."""
        successor = remortgages.remortgage(user_id, mortgage.mortgage_id, new_terms, Decimal("50000"))

        assert successor.original_loan_amount == Decimal("350000")
        assert successor.current_balance == Decimal("350000")
        assert successor.monthly_payment > Decimal("0")

    def test_negative_equity_release(
        self,
        remortgages: RemortgageManager,
        repository: InMemoryLedgerRepository,
        mortgage: Mortgage,
        user_id: str,
        new_terms: MortgageTerms,
    ) -> None:
        """Test a negative release is rejected and nothing changes."""
        with pytest.raises(InvalidArgumentError):
            remortgages.remortgage(user_id, mortgage.mortgage_id, new_terms, Decimal("-1"))

        assert repository.get_mortgage(mortgage.mortgage_id).is_active is True
        assert repository.summary()["mortgages"] == 1

    def test_inactive_mortgage(
        self,
        remortgages: RemortgageManager,
        mortgage: Mortgage,
        user_id: str,
        new_terms: MortgageTerms,
    ) -> None:
        """Test a closed mortgage cannot be remortgaged again."""
        remortgages.remortgage(user_id, mortgage.mortgage_id, new_terms)

        with pytest.raises(InvalidEntityStateError):
            remortgages.remortgage(user_id, mortgage.mortgage_id, new_terms)

    def test_other_user(
        self,
        remortgages: RemortgageManager,
        mortgage: Mortgage,
        other_user_id: str,
        new_terms: MortgageTerms,
    ) -> None:
        """Test another user's mortgage looks missing."""
        with pytest.raises(MortgageNotFoundError):
            remortgages.remortgage(other_user_id, mortgage.mortgage_id, new_terms)

    def test_property_sold(
        self,
        remortgages: RemortgageManager,
        properties: InMemoryPropertyDirectory,
        repository: InMemoryLedgerRepository,
        mortgage: Mortgage,
        user_id: str,
        other_user_id: str,
        property_id: str,
        new_terms: MortgageTerms,
    ) -> None:
        """Test the ownership check runs again at remortgage time."""
        properties.register(property_id, other_user_id)

        with pytest.raises(PropertyNotFoundError):
            remortgages.remortgage(user_id, mortgage.mortgage_id, new_terms)

        assert repository.get_mortgage(mortgage.mortgage_id).is_active is True

    def test_failed_commit_keeps_old_mortgage_active(
        self,
        remortgages: RemortgageManager,
        repository: InMemoryLedgerRepository,
        mortgage: Mortgage,
        user_id: str,
        property_id: str,
        new_terms: MortgageTerms,
    ) -> None:
        """Test deactivation and creation succeed or fail together."""
        with patch.object(
            InMemoryLedgerRepository,
            "_check_constraints",
            side_effect=InvalidEntityStateError("constraint violated"),
        ):
            with pytest.raises(InvalidEntityStateError):
                remortgages.remortgage(user_id, mortgage.mortgage_id, new_terms)

        active = repository.find_active_mortgages_by_property(property_id)
        assert [m.mortgage_id for m in active] == [mortgage.mortgage_id]
        assert repository.summary()["mortgages"] == 1

    def test_sequence_skips_numbers_in_use(
        self,
        ledger: MortgageLedger,
        remortgages: RemortgageManager,
        mortgage: Mortgage,
        user_id: str,
        property_id: str,
        terms: MortgageTerms,
        new_terms: MortgageTerms,
    ) -> None:
        """Test the successor never reuses a sequence number on the property."""
        ledger.create(user_id, property_id, terms)

        successor = remortgages.remortgage(user_id, mortgage.mortgage_id, new_terms)

        assert successor.sequence_number == 3

    def test_balance_history_is_preserved(
        self,
        remortgages: RemortgageManager,
        recorder: PaymentRecorder,
        repository: InMemoryLedgerRepository,
        mortgage: Mortgage,
        user_id: str,
        new_terms: MortgageTerms,
    ) -> None:
        """Test the closed mortgage keeps its balance and payments."""
        recorder.record_payment(user_id, mortgage.mortgage_id, Decimal("2001.00"), date(2024, 2, 15))

        remortgages.remortgage(user_id, mortgage.mortgage_id, new_terms)

        old = repository.get_mortgage(mortgage.mortgage_id)
        assert old.current_balance == Decimal("359349.00")
        assert len(repository.find_payments_by_mortgage(mortgage.mortgage_id)) == 1


class TestChain:
    """Tests for RemortgageManager.chain."""

    def test_chain_oldest_first(
        self,
        remortgages: RemortgageManager,
        mortgage: Mortgage,
        user_id: str,
        new_terms: MortgageTerms,
    ) -> None:
        """Test the chain walks predecessor links back to the first loan."""
        second = remortgages.remortgage(user_id, mortgage.mortgage_id, new_terms)
        third = remortgages.remortgage(user_id, second.mortgage_id, replace(new_terms, start_date=date(2034, 1, 15)))

        chain = remortgages.chain(user_id, third.mortgage_id)

        assert [m.mortgage_id for m in chain] == [mortgage.mortgage_id, second.mortgage_id, third.mortgage_id]
        assert [m.sequence_number for m in chain] == [1, 2, 3]
        assert [m.mortgage_id for m in remortgages.chain(user_id, mortgage.mortgage_id)] == [mortgage.mortgage_id]

    def test_chain_stops_on_cycle(
        self,
        remortgages: RemortgageManager,
        repository: InMemoryLedgerRepository,
        mortgage: Mortgage,
        user_id: str,
    ) -> None:
        """Test a corrupt self-link does not loop forever."""
        repository._mortgages[mortgage.mortgage_id].linked_to_mortgage_id = mortgage.mortgage_id

        chain = remortgages.chain(user_id, mortgage.mortgage_id)

        assert [m.mortgage_id for m in chain] == [mortgage.mortgage_id]
