"""Custom exception hierarchy for mortgage-ledger."""


class MortgageLedgerError(Exception):
    """Base exception for all mortgage-ledger errors."""


class InvalidArgumentError(MortgageLedgerError, ValueError):
    """Raised when a value is missing or outside its allowed domain."""


class EntityNotFoundError(MortgageLedgerError):
    """Raised when a referenced entity does not exist or is not visible to the caller."""

    entity = "Entity"

    def __init__(self, entity_id: object) -> None:
        self.entity_id = entity_id
        super().__init__(f"{self.entity} {entity_id} not found")


class MortgageNotFoundError(EntityNotFoundError):
    """Raised when a mortgage is absent or owned by another user."""

    entity = "Mortgage"


class PropertyNotFoundError(EntityNotFoundError):
    """Raised when the property/owner pair is unknown."""

    entity = "Property"


class PaymentNotFoundError(EntityNotFoundError):
    """Raised when a payment is absent or owned by another user."""

    entity = "Payment"


class InvalidEntityStateError(MortgageLedgerError):
    """Raised when an entity is in an invalid state for the operation."""


class DuplicatePaymentError(InvalidEntityStateError):
    """Raised when a scheduled payment already exists for a mortgage and due date."""


class LedgerInconsistencyError(MortgageLedgerError):
    """Raised when a mortgage's running totals no longer reconcile."""

    def __init__(self, mortgage_id: str, message: str) -> None:
        self.mortgage_id = mortgage_id
        super().__init__(f"Mortgage {mortgage_id}: {message}")


class ConfigurationError(MortgageLedgerError):
    """Raised when configuration is invalid or missing."""


class SinkError(MortgageLedgerError):
    """Raised when a sink operation fails."""
