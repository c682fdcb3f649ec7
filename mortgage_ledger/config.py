"""Configuration management for mortgage-ledger."""

from dataclasses import dataclass, field
from datetime import time
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from mortgage_ledger.exceptions import ConfigurationError


def parse_run_time(value: str) -> time:
    """Parse an ``HH:MM`` wall-clock time.

    Parameters
    ----------
    value : str
        Time of day, 24-hour clock.

    Returns
    -------
    time
        Parsed time.

    Raises
    ------
    ConfigurationError
        If the value is not a valid ``HH:MM`` string.
    """
    try:
        hours, minutes = value.strip().split(":")
        return time(int(hours), int(minutes))
    except (AttributeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid run time {value!r}, expected HH:MM") from exc


@dataclass
class ScheduleConfig:
    """Daily trigger times for the batch jobs."""

    generate_payments_at: str = "02:00"
    mark_overdue_at: str = "03:00"
    reconcile_at: str = "01:00"
    reconcile_day_of_month: int = 1

    def __post_init__(self) -> None:
        for value in (self.generate_payments_at, self.mark_overdue_at, self.reconcile_at):
            parse_run_time(value)
        if not 1 <= self.reconcile_day_of_month <= 28:
            raise ConfigurationError("reconcile_day_of_month must be between 1 and 28")


@dataclass
class PaymentPolicyConfig:
    """Payment classification and lifecycle policy."""

    scheduled_tolerance: Decimal = Decimal("0.05")
    overdue_grace_days: int = 1

    def __post_init__(self) -> None:
        if not Decimal("0") <= self.scheduled_tolerance < Decimal("1"):
            raise ConfigurationError("scheduled_tolerance must be in [0, 1)")
        if self.overdue_grace_days < 0:
            raise ConfigurationError("overdue_grace_days cannot be negative")


@dataclass
class BatchConfig:
    """Batch execution settings."""

    workers: int = 1

    def __post_init__(self) -> None:
        if self.workers < 1:
            raise ConfigurationError("workers must be at least 1")


@dataclass
class KafkaConfig:
    """Kafka producer configuration for ledger events."""

    bootstrap_servers: str = "localhost:9092"
    acks: str = "all"
    batch_size: int = 16384
    linger_ms: int = 5
    compression: str = "snappy"
    retries: int = 3
    topic_prefix: str = "portfolio.mortgage"

    def to_dict(self) -> dict[str, Any]:
        """Convert to confluent-kafka config dict."""
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "acks": self.acks,
            "batch.size": self.batch_size,
            "linger.ms": self.linger_ms,
            "compression.type": self.compression,
            "retries": self.retries,
        }


@dataclass
class OutputConfig:
    """Output configuration."""

    json_output_dir: Path = field(default_factory=lambda: Path("output"))
    pretty_json: bool = False


@dataclass
class LedgerConfig:
    """Main configuration for mortgage-ledger."""

    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    policy: PaymentPolicyConfig = field(default_factory=PaymentPolicyConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    log_level: str = "INFO"
    log_format: str = "standard"

    @classmethod
    def from_env(cls) -> "LedgerConfig":
        """Create config from environment variables."""
        import os

        schedule = ScheduleConfig(
            generate_payments_at=os.getenv("LEDGER_GENERATE_AT", "02:00"),
            mark_overdue_at=os.getenv("LEDGER_OVERDUE_AT", "03:00"),
            reconcile_at=os.getenv("LEDGER_RECONCILE_AT", "01:00"),
            reconcile_day_of_month=_env_int("LEDGER_RECONCILE_DAY", "1"),
        )

        try:
            tolerance = Decimal(os.getenv("LEDGER_SCHEDULED_TOLERANCE", "0.05"))
        except InvalidOperation as exc:
            raise ConfigurationError("LEDGER_SCHEDULED_TOLERANCE must be a decimal") from exc

        policy = PaymentPolicyConfig(
            scheduled_tolerance=tolerance,
            overdue_grace_days=_env_int("LEDGER_OVERDUE_GRACE_DAYS", "1"),
        )

        kafka = KafkaConfig(
            bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
            acks=os.getenv("KAFKA_ACKS", "all"),
            topic_prefix=os.getenv("KAFKA_TOPIC_PREFIX", "portfolio.mortgage"),
        )

        output = OutputConfig(
            json_output_dir=Path(os.getenv("OUTPUT_DIR", "output")),
            pretty_json=os.getenv("PRETTY_JSON", "false").lower() == "true",
        )

        return cls(
            schedule=schedule,
            policy=policy,
            batch=BatchConfig(workers=_env_int("LEDGER_BATCH_WORKERS", "1")),
            kafka=kafka,
            output=output,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard"),
        )


def _env_int(name: str, default: str) -> int:
    import os

    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
