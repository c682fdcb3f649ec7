"""JSON Lines file sink for ledger events."""

import json
import logging
from pathlib import Path
from typing import Any

from mortgage_ledger.exceptions import SinkError
from mortgage_ledger.sinks.serialization import to_dict

logger = logging.getLogger(__name__)


class JsonFileSink:
    """Append records to one ``.jsonl`` file per topic."""

    def __init__(self, output_dir: str | Path, pretty: bool = False) -> None:
        """Initialize JSON file sink.

        Parameters
        ----------
        output_dir : str | Path
            Directory to write JSON Lines files.
        pretty : bool
            Indent each record. Output is then no longer one record per line.
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.pretty = pretty
        self._counts: dict[str, int] = {}

    def path_for(self, topic: str) -> Path:
        # Use topic name as filename (replace dots with underscores)
        return self.output_dir / (topic.replace(".", "_") + ".jsonl")

    def write_batch(self, topic: str, records: list[Any]) -> None:
        """Append a batch of records to the topic's file."""
        file_path = self.path_for(topic)
        try:
            with open(file_path, "a", encoding="utf-8") as f:
                for record in records:
                    data = to_dict(record)
                    if self.pretty:
                        f.write(json.dumps(data, indent=2, ensure_ascii=False, default=str) + "\n")
                    else:
                        f.write(json.dumps(data, ensure_ascii=False, default=str) + "\n")
        except OSError as exc:
            raise SinkError(f"Cannot write to {file_path}: {exc}") from exc

        self._counts[topic] = self._counts.get(topic, 0) + len(records)

    def close(self) -> None:
        """Log summary."""
        logger.info("JSON files written to: %s", self.output_dir)
        for topic, count in self._counts.items():
            logger.info("  %s: %d records", topic, count)
