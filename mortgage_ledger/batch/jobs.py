"""Daily batch jobs: payment generation, overdue marking and reconciliation."""

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Protocol

from mortgage_ledger import events
from mortgage_ledger.config import LedgerConfig
from mortgage_ledger.engine.payments import PaymentRecorder
from mortgage_ledger.exceptions import MortgageNotFoundError
from mortgage_ledger.models import Event, Mortgage, Payment
from mortgage_ledger.store.repository import LedgerRepository

logger = logging.getLogger(__name__)

GENERATE_JOB = "generate_scheduled_payments"
OVERDUE_JOB = "mark_overdue_payments"
RECONCILE_JOB = "reconcile_mortgages"


class EventSink(Protocol):
    """Anything with the sink ``write_batch`` signature."""

    def write_batch(self, topic: str, records: list[Any]) -> None: ...


@dataclass
class BatchResult:
    """Outcome of one batch run."""

    job: str
    run_date: date
    processed: int = 0
    succeeded: int = 0
    skipped: int = 0
    failed: int = 0
    failures: dict[str, str] = field(default_factory=dict)  # item id -> error
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: datetime | None = None

    @property
    def duration_seconds(self) -> float:
        end = self.finished_at or datetime.now()
        return (end - self.started_at).total_seconds()

    @property
    def ok(self) -> bool:
        return self.failed == 0


class PaymentBatchJobs:
    """Time-driven jobs run once per calendar day.

    Every item (mortgage or payment) is processed independently: a failure
    is logged, recorded on the :class:`BatchResult` and the run moves on.
    Items may be spread over a thread pool; the per-mortgage lock taken by
    the recorder still serializes work on any single mortgage.

    Parameters
    ----------
    repository : LedgerRepository
        Ledger storage.
    recorder : PaymentRecorder
        Payment operations the jobs delegate to.
    config : LedgerConfig | None
        Policy, worker count and topic prefix.
    sink : EventSink | None
        Destination for ledger events, if any.
    """

    def __init__(
        self,
        repository: LedgerRepository,
        recorder: PaymentRecorder,
        config: LedgerConfig | None = None,
        sink: EventSink | None = None,
    ) -> None:
        self._repository = repository
        self._recorder = recorder
        self.config = config or LedgerConfig()
        self._sink = sink

    def generate_scheduled_payments(self, run_date: date) -> BatchResult:
        """Create the SCHEDULED entry for every active mortgage due on ``run_date``.

        Mortgages whose term does not cover the date, or for which the date
        is not a monthly due date, are skipped. Re-running the same day is
        a no-op.
        """
        mortgages = self._repository.find_mortgages_covering(run_date)

        def generate(mortgage: Mortgage) -> Payment | None:
            if not mortgage.is_payment_due_on(run_date):
                return None
            return self._recorder.generate_scheduled_payment(mortgage, run_date)

        result, generated = self._run(GENERATE_JOB, run_date, mortgages, lambda m: m.mortgage_id, generate)
        self._emit(events.PAYMENT_GENERATED, [events.payment_event(events.PAYMENT_GENERATED, p) for p in generated])
        return result

    def mark_overdue_payments(self, run_date: date) -> BatchResult:
        """Flip SCHEDULED entries past their grace period to MISSED.

        An entry is overdue once its due date is on or before ``run_date``
        minus ``overdue_grace_days``. Balances are never touched.
        """
        as_of = run_date - timedelta(days=self.config.policy.overdue_grace_days)
        overdue = self._repository.find_overdue_payments(as_of)

        def mark(payment: Payment) -> Payment | None:
            if not self._recorder.mark_payment_missed(payment.payment_id, as_of):
                return None
            return self._repository.get_payment(payment.payment_id)

        result, marked = self._run(OVERDUE_JOB, run_date, overdue, lambda p: p.payment_id, mark)
        self._emit(events.PAYMENT_MISSED, [events.payment_event(events.PAYMENT_MISSED, p) for p in marked])
        return result

    def reconcile_mortgages(self, run_date: date) -> BatchResult:
        """Check the balance invariant on every active mortgage.

        Inconsistent mortgages are reported as failures and published as
        ``mortgage.reconciliation_failed`` events; nothing is corrected.
        """
        mortgages = self._repository.find_active_mortgages()

        def reconcile(mortgage: Mortgage) -> Mortgage:
            with self._repository.lock(mortgage.mortgage_id):
                current = self._repository.get_mortgage(mortgage.mortgage_id)
                if current is None:
                    raise MortgageNotFoundError(mortgage.mortgage_id)
                current.verify_balance()
            return current

        result, _ = self._run(RECONCILE_JOB, run_date, mortgages, lambda m: m.mortgage_id, reconcile)
        self._emit(
            events.RECONCILIATION_FAILED,
            [
                events.build_event(
                    events.RECONCILIATION_FAILED,
                    mortgage_id,
                    {"mortgage_id": mortgage_id, "run_date": run_date, "error": error},
                    mortgage_id=mortgage_id,
                )
                for mortgage_id, error in result.failures.items()
            ],
        )
        return result

    def run_all(self, run_date: date) -> list[BatchResult]:
        """Generate then mark overdue for one date."""
        return [self.generate_scheduled_payments(run_date), self.mark_overdue_payments(run_date)]

    def _run(
        self,
        job: str,
        run_date: date,
        items: Iterable[Any],
        key: Callable[[Any], str],
        action: Callable[[Any], Any],
    ) -> tuple[BatchResult, list[Any]]:
        items = list(items)
        result = BatchResult(job=job, run_date=run_date)
        outputs: list[Any] = []
        logger.info("Starting %s for %s: %d items", job, run_date, len(items))

        def process(item: Any) -> tuple[str, Any, Exception | None]:
            try:
                return key(item), action(item), None
            except Exception as exc:
                return key(item), None, exc

        workers = self.config.batch.workers
        if workers > 1 and len(items) > 1:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=job) as executor:
                outcomes = list(executor.map(process, items))
        else:
            outcomes = [process(item) for item in items]

        for item_id, output, error in outcomes:
            result.processed += 1
            if error is not None:
                result.failed += 1
                result.failures[item_id] = str(error)
                logger.error(
                    "%s failed for %s: %s",
                    job,
                    item_id,
                    error,
                    extra={"extra": {"job": job, "item_id": item_id, "run_date": run_date}},
                )
            elif output is None:
                result.skipped += 1
            else:
                result.succeeded += 1
                outputs.append(output)
                logger.debug("%s processed %s", job, item_id)

        result.finished_at = datetime.now()
        logger.info(
            "Finished %s for %s: processed=%d succeeded=%d skipped=%d failed=%d (%.2fs)",
            job,
            run_date,
            result.processed,
            result.succeeded,
            result.skipped,
            result.failed,
            result.duration_seconds,
        )
        return result, outputs

    def _emit(self, event_type: str, records: list[Event]) -> None:
        if self._sink is None or not records:
            return
        topic = events.topic_for(self.config.kafka.topic_prefix, event_type)
        try:
            self._sink.write_batch(topic, records)
        except Exception as exc:
            # Ledger writes are already committed; the events are lost, not the work
            logger.error("Failed to publish %d %s events to %s: %s", len(records), event_type, topic, exc)
