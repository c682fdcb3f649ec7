"""Property ownership lookups consumed by the ledger."""

import threading
from abc import ABC, abstractmethod


class PropertyDirectory(ABC):
    """Answers whether a user owns a property.

    The real directory lives in the property service; the ledger only asks
    this yes/no question before creating or remortgaging a mortgage.
    """

    @abstractmethod
    def exists(self, property_id: str, user_id: str) -> bool:
        """Whether ``property_id`` exists and belongs to ``user_id``."""


class InMemoryPropertyDirectory(PropertyDirectory):
    """Property directory backed by a ``property_id -> user_id`` mapping."""

    def __init__(self, owners: dict[str, str] | None = None) -> None:
        self._owners: dict[str, str] = dict(owners or {})
        self._lock = threading.Lock()

    def register(self, property_id: str, user_id: str) -> None:
        with self._lock:
            self._owners[property_id] = user_id

    def exists(self, property_id: str, user_id: str) -> bool:
        return self._owners.get(property_id) == user_id

    def __len__(self) -> int:
        return len(self._owners)
