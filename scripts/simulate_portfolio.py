#!/usr/bin/env python3
"""Simulate a mortgage portfolio through the daily batch jobs.

Opens mortgages on synthetic properties, runs generation, settlement and
overdue marking for every day of the period, and publishes ledger events
to the chosen sink. With ``--serve`` the scheduler keeps running against
the simulated book on the configured wall-clock times.

Usage:
    python scripts/simulate_portfolio.py --properties 50 --months 24
    python scripts/simulate_portfolio.py --sink kafka --kafka-bootstrap localhost:9092
    python scripts/simulate_portfolio.py --sink json --output-dir output --serve
"""

import argparse
import json
import logging
import signal
import sys
import threading
import time
from datetime import date
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from mortgage_ledger.batch import DailyScheduler
from mortgage_ledger.config import BatchConfig, LedgerConfig
from mortgage_ledger.logging import setup_logging
from mortgage_ledger.scenarios import PortfolioScenario
from mortgage_ledger.sinks import SINK_TYPES, create_sink

logger = logging.getLogger(__name__)


def serve(scenario: PortfolioScenario, poll_seconds: float) -> None:
    """Run the daily scheduler until interrupted."""
    scheduler = DailyScheduler.for_jobs(scenario.jobs, scenario.config.schedule)
    stop_event = threading.Event()

    def _stop(signum: int, frame: object) -> None:
        logger.info("Received signal %d, stopping scheduler", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)

    logger.info("Next batch run at %s", scheduler.next_run())
    scheduler.run_forever(stop_event, poll_seconds=poll_seconds)


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Mortgage portfolio simulator")
    parser.add_argument("--properties", type=int, default=20, help="Number of properties (default: 20)")
    parser.add_argument("--months", type=int, default=12, help="Months to simulate (default: 12)")
    parser.add_argument(
        "--start-date",
        type=date.fromisoformat,
        default=None,
        help="First simulated day, YYYY-MM-DD (default: --months before today)",
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    parser.add_argument("--on-time-rate", type=float, default=0.92, help="Share of entries settled on time")
    parser.add_argument("--topup-rate", type=float, default=0.05, help="Chance of a top-up per due date")
    parser.add_argument("--sink", choices=[*SINK_TYPES, "none"], default="none", help="Event sink")
    parser.add_argument("--output-dir", type=Path, default=None, help="Directory for the json sink")
    parser.add_argument("--kafka-bootstrap", default=None, help="Kafka bootstrap servers")
    parser.add_argument("--workers", type=int, default=None, help="Batch worker threads")
    parser.add_argument("--serve", action="store_true", help="Keep running the daily scheduler")
    parser.add_argument("--poll-seconds", type=float, default=30.0, help="Scheduler poll interval")
    args = parser.parse_args()

    config = LedgerConfig.from_env()
    if args.output_dir is not None:
        config.output.json_output_dir = args.output_dir
    if args.kafka_bootstrap is not None:
        config.kafka.bootstrap_servers = args.kafka_bootstrap
    if args.workers is not None:
        config.batch = BatchConfig(workers=args.workers)

    setup_logging(config.log_level, config.log_format)

    sink = None if args.sink == "none" else create_sink(args.sink, config)

    logger.info("=" * 60)
    logger.info("Mortgage portfolio simulation")
    logger.info("=" * 60)
    logger.info("Properties: %d", args.properties)
    logger.info("Months: %d", args.months)
    logger.info("Seed: %d", args.seed)
    logger.info("Sink: %s", args.sink)

    started = time.perf_counter()
    scenario = PortfolioScenario(
        num_properties=args.properties,
        months=args.months,
        start_date=args.start_date,
        on_time_rate=args.on_time_rate,
        topup_rate=args.topup_rate,
        config=config,
        sink=sink,
        seed=args.seed,
    )
    try:
        result = scenario.run()
        print(json.dumps(result.summary(), indent=2))
        logger.info("Simulation finished in %.1fs", time.perf_counter() - started)

        if args.serve:
            serve(scenario, args.poll_seconds)
    finally:
        if sink is not None:
            sink.close()


if __name__ == "__main__":
    main()
