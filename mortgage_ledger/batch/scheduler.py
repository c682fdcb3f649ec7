"""Wall-clock triggers for the daily batch jobs."""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any

from mortgage_ledger.batch.jobs import GENERATE_JOB, OVERDUE_JOB, RECONCILE_JOB, PaymentBatchJobs
from mortgage_ledger.config import ScheduleConfig, parse_run_time

logger = logging.getLogger(__name__)


@dataclass
class DailyTrigger:
    """Runs ``job(run_date)`` at most once per calendar day, at or after ``run_at``.

    With ``day_of_month`` set the trigger only fires on that day of each
    month.
    """

    name: str
    run_at: time
    job: Callable[[date], Any]
    day_of_month: int | None = None
    last_run: date | None = None

    def is_due(self, now: datetime) -> bool:
        if self.last_run == now.date():
            return False
        if self.day_of_month is not None and now.day != self.day_of_month:
            return False
        return now.time() >= self.run_at

    def next_run_after(self, now: datetime) -> datetime:
        """Earliest time after ``now`` at which the trigger would fire."""
        day = now.date()
        if self.last_run == day or now.time() >= self.run_at:
            day += timedelta(days=1)
        while self.day_of_month is not None and day.day != self.day_of_month:
            day += timedelta(days=1)
        return datetime.combine(day, self.run_at)


class DailyScheduler:
    """Polls a set of daily triggers and runs the ones that are due.

    A job that raises is logged and counted as run for the day; it is tried
    again at its next slot.
    """

    def __init__(
        self,
        triggers: list[DailyTrigger],
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.triggers = sorted(triggers, key=lambda t: t.run_at)
        self._clock = clock

    @classmethod
    def for_jobs(
        cls,
        jobs: PaymentBatchJobs,
        schedule: ScheduleConfig | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> "DailyScheduler":
        """Wire the standard ledger jobs to their configured run times."""
        schedule = schedule or jobs.config.schedule
        return cls(
            [
                DailyTrigger(
                    RECONCILE_JOB,
                    parse_run_time(schedule.reconcile_at),
                    jobs.reconcile_mortgages,
                    day_of_month=schedule.reconcile_day_of_month,
                ),
                DailyTrigger(GENERATE_JOB, parse_run_time(schedule.generate_payments_at), jobs.generate_scheduled_payments),
                DailyTrigger(OVERDUE_JOB, parse_run_time(schedule.mark_overdue_at), jobs.mark_overdue_payments),
            ],
            clock=clock,
        )

    def run_pending(self, now: datetime | None = None) -> dict[str, Any]:
        """Run every due trigger once.

        Returns
        -------
        dict[str, Any]
            Job name to the job's return value (``None`` if it raised).
        """
        now = now or self._clock()
        results: dict[str, Any] = {}
        for trigger in self.triggers:
            if not trigger.is_due(now):
                continue
            run_date = now.date()
            logger.info("Running %s for %s", trigger.name, run_date)
            try:
                results[trigger.name] = trigger.job(run_date)
            except Exception as exc:
                logger.error("Job %s failed for %s: %s", trigger.name, run_date, exc)
                results[trigger.name] = None
            trigger.last_run = run_date
        return results

    def next_run(self, now: datetime | None = None) -> datetime | None:
        now = now or self._clock()
        return min((t.next_run_after(now) for t in self.triggers), default=None)

    def run_forever(self, stop_event: threading.Event, poll_seconds: float = 30.0) -> None:
        """Poll until ``stop_event`` is set."""
        logger.info("Scheduler started with %d triggers", len(self.triggers))
        while not stop_event.is_set():
            self.run_pending()
            stop_event.wait(poll_seconds)
        logger.info("Scheduler stopped")
