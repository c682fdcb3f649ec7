"""Storage for mortgages, payments and property ownership."""

from mortgage_ledger.store.memory import InMemoryLedgerRepository, KeyedLock
from mortgage_ledger.store.properties import InMemoryPropertyDirectory, PropertyDirectory
from mortgage_ledger.store.repository import LedgerRepository, UnitOfWork

__all__ = [
    "InMemoryLedgerRepository",
    "InMemoryPropertyDirectory",
    "KeyedLock",
    "LedgerRepository",
    "PropertyDirectory",
    "UnitOfWork",
]
