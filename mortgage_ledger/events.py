"""Ledger event construction."""

import uuid
from datetime import datetime
from typing import Any

from mortgage_ledger.models import Event, Payment
from mortgage_ledger.sinks.serialization import to_dict

EVENT_SOURCE = "mortgage-ledger"

PAYMENT_GENERATED = "payment.generated"
PAYMENT_MISSED = "payment.missed"
RECONCILIATION_FAILED = "mortgage.reconciliation_failed"


def build_event(event_type: str, subject: str, data: dict[str, Any], **metadata: Any) -> Event:
    """Wrap ``data`` in the standard event envelope."""
    return Event(
        event_id=str(uuid.uuid4()),
        event_type=event_type,
        event_time=datetime.now(),
        source=EVENT_SOURCE,
        subject=subject,
        data=data,
        metadata=metadata,
    )


def payment_event(event_type: str, payment: Payment) -> Event:
    return build_event(event_type, payment.payment_id, to_dict(payment), mortgage_id=payment.mortgage_id)


def topic_for(prefix: str, event_type: str) -> str:
    """Topic name for an event type, e.g. ``portfolio.mortgage.payment-missed``."""
    return f"{prefix}.{event_type.replace('.', '-').replace('_', '-')}"
