"""CLI logging: stderr console output plus an in-memory record of every batch run.

`captioner run --forensics` writes the in-memory record to disk when an image failed,
so a provider error can be inspected after the fact."""

import logging
import sys
from collections import deque
from datetime import datetime, timezone
from pathlib import Path

from captioner.core.config import get_config

FLIGHT_LOG_CAPACITY = 50_000
DEFAULT_FORENSICS_DIR = Path.cwd() / "logs" / "forensics"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


_flight_logger: "FlightLogger | None" = None


class FlightLogger(logging.Handler):
    """
    Keeps the most recent records of a captioner process, at every level, in a ring buffer.

    Nothing is written until dump(run_id) is called; the file is
    forensics_dir/{run_id}_{timestamp}.log, one formatted record per line.
    """

    def __init__(
        self,
        capacity: int = FLIGHT_LOG_CAPACITY,
        forensics_dir: str | Path | None = None,
    ) -> None:
        super().__init__(level=logging.DEBUG)
        self._buffer: deque[logging.LogRecord] = deque(maxlen=capacity)
        self._forensics_dir = Path(forensics_dir if forensics_dir is not None else DEFAULT_FORENSICS_DIR)

    def emit(self, record: logging.LogRecord) -> None:
        self._buffer.append(record)

    def dump(self, run_id: str) -> str:
        """Write buffer to forensics dir; return path to the written file."""
        self._forensics_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        filepath = self._forensics_dir / f"{run_id}_{timestamp}.log"
        formatter = self.formatter or logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)
        with open(filepath, "w") as f:
            for record in self._buffer:
                f.write(formatter.format(record) + "\n")
        return str(filepath)

    def __len__(self) -> int:
        return len(self._buffer)


def get_flight_logger() -> FlightLogger | None:
    """Return the global FlightLogger handler created by setup_logging(), if any."""
    return _flight_logger


def setup_logging(verbose: bool = False) -> None:
    """
    Route captioner logs for one CLI invocation.

    Provider failures, skipped uploads and run progress reach stderr at log_level
    (WARNING unless captioner.yml says otherwise; --verbose lowers it to DEBUG). Every
    record is also kept by a fresh FlightLogger for `run --forensics`. Calling this again
    replaces the previous handlers.
    """
    global _flight_logger
    cfg = get_config()
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.DEBUG if verbose else cfg.log_level)
    _flight_logger = FlightLogger(forensics_dir=cfg.forensics_dir)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.DEBUG)
    for handler in (console, _flight_logger):
        handler.setFormatter(formatter)
        root.addHandler(handler)
