"""Logging setup: console handler at the configured level plus an in-memory FlightLogger for forensics."""

import logging
import sys
from collections import deque
from datetime import datetime, timezone
from pathlib import Path

from artlens.core.config import get_config

FLIGHT_LOG_CAPACITY = 50_000
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
# Third-party HTTP clients log every request at INFO/DEBUG.
QUIET_LOGGERS = ("httpx", "httpcore", "urllib3")

_flight_logger: "FlightLogger | None" = None


def _formatter() -> logging.Formatter:
    return logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)


class FlightLogger(logging.Handler):
    """
    Ring buffer of the most recent log records (all levels), written out on demand.

    The orchestrator calls dump("analysis", request_id) when a batch fails fatally, which
    writes {forensics_dir}/analysis_{request_id}_{utc timestamp}.log.
    """

    def __init__(self, capacity: int = FLIGHT_LOG_CAPACITY, forensics_dir: str | Path | None = None) -> None:
        super().__init__(level=logging.DEBUG)
        self._buffer: deque[logging.LogRecord] = deque(maxlen=capacity)
        self._forensics_dir = Path(forensics_dir) if forensics_dir is not None else Path("logs") / "forensics"

    def emit(self, record: logging.LogRecord) -> None:
        self._buffer.append(record)

    def __len__(self) -> int:
        return len(self._buffer)

    def dump(self, name: str, request_id: str | None = None) -> str:
        """Write the buffered records to the forensics dir; return the file path."""
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        parts = [name, request_id, stamp] if request_id is not None else [name, stamp]
        self._forensics_dir.mkdir(parents=True, exist_ok=True)
        path = self._forensics_dir / ("_".join(parts) + ".log")
        formatter = self.formatter or _formatter()
        lines = [formatter.format(record) for record in list(self._buffer)]
        path.write_text("".join(line + "\n" for line in lines))
        return str(path)


def get_flight_logger() -> FlightLogger | None:
    """FlightLogger installed by setup_logging(), or None when logging was never set up."""
    return _flight_logger


def setup_logging() -> None:
    """
    Configure the root logger from config. Safe to call more than once (handlers are replaced).

    Root level is DEBUG so the FlightLogger sees everything; the console handler filters to
    log_level and the HTTP client loggers are capped at WARNING.
    """
    global _flight_logger
    cfg = get_config()
    formatter = _formatter()

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(cfg.log_level.upper())
    console.setFormatter(formatter)
    root.addHandler(console)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    flight = FlightLogger(forensics_dir=cfg.forensics_dir)
    flight.setFormatter(formatter)
    root.addHandler(flight)
    _flight_logger = flight
