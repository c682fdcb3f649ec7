"""Remortgage chains: closing a mortgage and opening its successor."""

import logging
from dataclasses import replace
from decimal import Decimal

from mortgage_ledger.engine.ledger import MortgageLedger, property_lock_key
from mortgage_ledger.exceptions import InvalidArgumentError, InvalidEntityStateError
from mortgage_ledger.models import Mortgage, MortgageTerms
from mortgage_ledger.money import ZERO, to_decimal
from mortgage_ledger.store.repository import LedgerRepository

logger = logging.getLogger(__name__)


class RemortgageManager:
    """Replaces an active mortgage with a linked successor."""

    def __init__(self, repository: LedgerRepository, ledger: MortgageLedger) -> None:
        self._repository = repository
        self._ledger = ledger

    def remortgage(
        self,
        user_id: str,
        existing_mortgage_id: str,
        terms: MortgageTerms,
        equity_release_amount: Decimal | int | str | None = None,
    ) -> Mortgage:
        """Deactivate a mortgage and open its replacement in one unit of work.

        Parameters
        ----------
        user_id : str
            Caller; must own the mortgage and its property.
        existing_mortgage_id : str
            Active mortgage being replaced.
        terms : MortgageTerms
            Terms of the new loan.
        equity_release_amount : Decimal | None
            Extra borrowing added on top of ``terms.original_loan_amount``.

        Returns
        -------
        Mortgage
            The new active mortgage, linked to the old one.

        Raises
        ------
        MortgageNotFoundError
            If the existing mortgage is unknown to the user.
        PropertyNotFoundError
            If the user no longer owns the property.
        InvalidEntityStateError
            If the existing mortgage has already been closed.
        """
        if equity_release_amount is not None:
            equity = to_decimal(equity_release_amount, "equity_release_amount")
            if equity < ZERO:
                raise InvalidArgumentError("Equity release amount cannot be negative")
            if equity > ZERO:
                terms = replace(terms, original_loan_amount=terms.original_loan_amount + equity)

        with self._repository.lock(existing_mortgage_id):
            existing = self._ledger.get_mortgage(user_id, existing_mortgage_id)
            self._ledger.require_property(existing.property_id, user_id)
            if not existing.is_active:
                raise InvalidEntityStateError(f"Mortgage {existing_mortgage_id} is not active")

            with self._repository.lock(property_lock_key(existing.property_id)):
                sequence_number = max(
                    existing.sequence_number + 1,
                    self._repository.next_sequence_number(existing.property_id),
                )
                successor = self._ledger.build(
                    user_id,
                    existing.property_id,
                    terms,
                    sequence_number,
                    linked_to_mortgage_id=existing.mortgage_id,
                )
                existing.is_active = False
                with self._repository.transaction() as uow:
                    uow.save_mortgage(existing)
                    uow.save_mortgage(successor)

        logger.info(
            "Remortgaged %s -> %s on property %s (sequence %d, balance carried %s, new loan %s)",
            existing.mortgage_id,
            successor.mortgage_id,
            existing.property_id,
            successor.sequence_number,
            existing.current_balance,
            successor.original_loan_amount,
        )
        return successor

    def chain(self, user_id: str, mortgage_id: str) -> list[Mortgage]:
        """Walk ``linked_to_mortgage_id`` back from a mortgage, oldest first."""
        current = self._ledger.get_mortgage(user_id, mortgage_id)
        chain = [current]
        seen = {current.mortgage_id}
        while current.linked_to_mortgage_id is not None:
            previous = self._repository.get_mortgage(current.linked_to_mortgage_id)
            if previous is None or previous.mortgage_id in seen:
                break
            chain.append(previous)
            seen.add(previous.mortgage_id)
            current = previous
        chain.reverse()
        return chain
