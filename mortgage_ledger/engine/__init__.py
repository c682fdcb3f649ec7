"""Mortgage accounting engine: calculator, ledger, payments and remortgages."""

from mortgage_ledger.engine.classifier import PaymentSplit, classify_payment, split_payment
from mortgage_ledger.engine.ledger import MortgageLedger
from mortgage_ledger.engine.payments import PaymentRecorder
from mortgage_ledger.engine.remortgage import RemortgageManager

__all__ = [
    "MortgageLedger",
    "PaymentRecorder",
    "PaymentSplit",
    "RemortgageManager",
    "classify_payment",
    "split_payment",
]
