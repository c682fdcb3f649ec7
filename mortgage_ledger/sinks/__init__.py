"""Output sinks for ledger events."""

from mortgage_ledger.config import LedgerConfig
from mortgage_ledger.exceptions import ConfigurationError
from mortgage_ledger.sinks.console import ConsoleSink
from mortgage_ledger.sinks.json_file import JsonFileSink
from mortgage_ledger.sinks.kafka import KafkaSink

SINK_TYPES = ("console", "json", "kafka")


def create_sink(kind: str, config: LedgerConfig | None = None) -> ConsoleSink | JsonFileSink | KafkaSink:
    """Build a sink by name from configuration.

    Parameters
    ----------
    kind : str
        One of ``console``, ``json`` or ``kafka``.
    config : LedgerConfig | None
        Output directory and Kafka settings.

    Raises
    ------
    ConfigurationError
        If ``kind`` is not a known sink type.
    """
    config = config or LedgerConfig()
    if kind == "console":
        return ConsoleSink(pretty=config.output.pretty_json, max_records=10)
    if kind == "json":
        return JsonFileSink(config.output.json_output_dir, pretty=config.output.pretty_json)
    if kind == "kafka":
        return KafkaSink(config.kafka)
    raise ConfigurationError(f"Unknown sink type {kind!r}, expected one of {', '.join(SINK_TYPES)}")


__all__ = ["SINK_TYPES", "ConsoleSink", "JsonFileSink", "KafkaSink", "create_sink"]
