"""Enumeration types for mortgage ledger entities."""

from enum import Enum


class MortgageType(str, Enum):
    REPAYMENT = "REPAYMENT"
    INTEREST_ONLY = "INTEREST_ONLY"


class ProductType(str, Enum):
    FIXED = "FIXED"
    VARIABLE = "VARIABLE"
    TRACKER = "TRACKER"
    OFFSET = "OFFSET"
    STANDARD_VARIABLE = "STANDARD_VARIABLE"


class PaymentType(str, Enum):
    SCHEDULED = "SCHEDULED"
    TOPUP = "TOPUP"


class PaymentSource(str, Enum):
    SYSTEM_GENERATED = "SYSTEM_GENERATED"
    USER_INITIATED = "USER_INITIATED"


class PaymentStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    PAID = "PAID"
    MISSED = "MISSED"
    # Never assigned by the recorder; kept so stored rows using it still load
    OVERPAID = "OVERPAID"
