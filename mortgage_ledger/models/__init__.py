"""Domain models for the mortgage ledger."""

from mortgage_ledger.models.base import Event
from mortgage_ledger.models.enums import (
    MortgageType,
    PaymentSource,
    PaymentStatus,
    PaymentType,
    ProductType,
)
from mortgage_ledger.models.mortgage import Mortgage, MortgageSummary, MortgageTerms
from mortgage_ledger.models.payment import Payment

__all__ = [
    "Event",
    "Mortgage",
    "MortgageSummary",
    "MortgageTerms",
    "MortgageType",
    "Payment",
    "PaymentSource",
    "PaymentStatus",
    "PaymentType",
    "ProductType",
]
