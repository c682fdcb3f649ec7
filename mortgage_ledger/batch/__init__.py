"""Time-driven batch processing."""

from mortgage_ledger.batch.jobs import BatchResult, PaymentBatchJobs
from mortgage_ledger.batch.scheduler import DailyScheduler, DailyTrigger

__all__ = ["BatchResult", "DailyScheduler", "DailyTrigger", "PaymentBatchJobs"]
