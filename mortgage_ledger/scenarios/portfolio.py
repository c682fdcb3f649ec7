"""Portfolio scenario: simulate a book of mortgages through daily batch runs."""

import logging
import random
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Any

from mortgage_ledger.batch import BatchResult, PaymentBatchJobs
from mortgage_ledger.config import LedgerConfig
from mortgage_ledger.engine import MortgageLedger, PaymentRecorder, RemortgageManager
from mortgage_ledger.generators import MortgageTermsGenerator, PropertyOwnerGenerator
from mortgage_ledger.models import Mortgage, PaymentStatus
from mortgage_ledger.models.mortgage import add_months
from mortgage_ledger.store import InMemoryLedgerRepository, InMemoryPropertyDirectory

logger = logging.getLogger(__name__)


@dataclass
class PortfolioResult:
    """What happened during a simulated run."""

    repository: InMemoryLedgerRepository
    start_date: date
    end_date: date
    mortgages_created: int = 0
    remortgages: int = 0
    payments_settled: int = 0
    payments_left_unpaid: int = 0
    topups: int = 0
    batch_results: list[BatchResult] = field(default_factory=list)

    @property
    def batch_failures(self) -> int:
        return sum(r.failed for r in self.batch_results)

    def summary(self) -> dict[str, Any]:
        """Counts for logging and reports."""
        return {
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "mortgages_created": self.mortgages_created,
            "remortgages": self.remortgages,
            "payments_settled": self.payments_settled,
            "payments_left_unpaid": self.payments_left_unpaid,
            "topups": self.topups,
            "batch_failures": self.batch_failures,
            **self.repository.summary(),
        }


class PortfolioScenario:
    """Open mortgages on synthetic properties and run the daily jobs over them.

    Each simulated day runs reconciliation on its day of the month, then
    generation; borrowers then settle or skip the entries falling due (and
    occasionally top up or remortgage) before the overdue marker runs.
    """

    def __init__(
        self,
        num_properties: int = 20,
        months: int = 12,
        start_date: date | None = None,
        on_time_rate: float = 0.92,
        topup_rate: float = 0.05,
        remortgage_rate: float = 0.01,
        config: LedgerConfig | None = None,
        sink: Any = None,
        seed: int | None = None,
    ) -> None:
        """Initialize portfolio scenario.

        Parameters
        ----------
        num_properties : int
            Number of properties, each with one initial mortgage.
        months : int
            Length of the simulation.
        start_date : date | None
            First simulated day (default: ``months`` months before today).
        on_time_rate : float
            Probability a due entry is settled on its due date.
        topup_rate : float
            Probability of an extra top-up alongside a due entry.
        remortgage_rate : float
            Probability a mortgage is replaced on one of its due dates.
        config : LedgerConfig | None
            Ledger configuration for the batch jobs.
        sink : Any
            Optional event sink for the batch jobs.
        seed : int | None
            Random seed for reproducibility.
        """
        self.num_properties = num_properties
        self.months = months
        self.start_date = start_date or add_months(date.today(), -months)
        self.on_time_rate = on_time_rate
        self.topup_rate = topup_rate
        self.remortgage_rate = remortgage_rate
        self.config = config or LedgerConfig()
        self.rng = random.Random(seed)

        self.repository = InMemoryLedgerRepository()
        self.properties = InMemoryPropertyDirectory()
        self.ledger = MortgageLedger(self.repository, self.properties)
        self.recorder = PaymentRecorder(self.repository, self.ledger, self.config.policy)
        self.remortgages = RemortgageManager(self.repository, self.ledger)
        self.jobs = PaymentBatchJobs(self.repository, self.recorder, self.config, sink=sink)

        self._owner_gen = PropertyOwnerGenerator(seed=seed)
        self._terms_gen = MortgageTermsGenerator(seed=seed)

    def run(self) -> PortfolioResult:
        """Run the simulation.

        Returns
        -------
        PortfolioResult
            Counters and the populated repository.
        """
        end_date = add_months(self.start_date, self.months)
        result = PortfolioResult(repository=self.repository, start_date=self.start_date, end_date=end_date)
        logger.info(
            "Starting portfolio scenario: %d properties, %s to %s",
            self.num_properties,
            self.start_date,
            end_date,
        )

        self._open_mortgages(result)

        day = self.start_date
        while day <= end_date:
            self._simulate_day(day, result)
            day += timedelta(days=1)

        logger.info("Portfolio scenario complete: %s", result.summary())
        return result

    def _open_mortgages(self, result: PortfolioResult) -> None:
        for _ in range(self.num_properties):
            owner = self._owner_gen.generate()
            self.properties.register(owner.property_id, owner.user_id)
            # Completion somewhere in the first month so every loan falls due during the run
            start = self.start_date + timedelta(days=self.rng.randint(0, 27))
            terms = self._terms_gen.generate(start_date=start)
            self.ledger.create(owner.user_id, owner.property_id, terms)
            result.mortgages_created += 1

    def _simulate_day(self, day: date, result: PortfolioResult) -> None:
        if day.day == self.config.schedule.reconcile_day_of_month:
            result.batch_results.append(self.jobs.reconcile_mortgages(day))
        result.batch_results.append(self.jobs.generate_scheduled_payments(day))

        due_today = [p for p in self.repository.find_overdue_payments(day) if p.due_date == day]
        for payment in due_today:
            mortgage = self.repository.get_mortgage(payment.mortgage_id)
            if mortgage is None:
                continue
            self._borrower_acts(mortgage, payment.payment_id, day, result)

        result.batch_results.append(self.jobs.mark_overdue_payments(day))

    def _borrower_acts(self, mortgage: Mortgage, payment_id: str, day: date, result: PortfolioResult) -> None:
        if self.rng.random() < self.on_time_rate:
            paid = self.recorder.mark_payment_as_paid(payment_id, day, user_id=mortgage.user_id)
            if paid.status == PaymentStatus.PAID:
                result.payments_settled += 1
        else:
            result.payments_left_unpaid += 1

        mortgage = self.repository.get_mortgage(mortgage.mortgage_id)
        if mortgage.current_balance <= 0 or not mortgage.is_active:
            return

        if self.rng.random() < self.topup_rate:
            amount = min(Decimal(self.rng.randint(5, 50) * 100), mortgage.current_balance)
            self.recorder.record_payment(
                mortgage.user_id,
                mortgage.mortgage_id,
                amount,
                day,
                topup_reason="Overpayment",
            )
            result.topups += 1

        if self.rng.random() < self.remortgage_rate:
            terms = self._terms_gen.generate_remortgage(mortgage, on=day)
            self.remortgages.remortgage(mortgage.user_id, mortgage.mortgage_id, terms)
            result.remortgages += 1
