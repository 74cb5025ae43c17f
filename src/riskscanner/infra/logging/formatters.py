from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from pythonjsonlogger.json import JsonFormatter

# Attributes every LogRecord carries; anything else arrived through `extra`
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def _event_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RESERVED}


class EventJSONFormatter(JsonFormatter):
    """One JSON object per line; structured fields passed via `extra` are kept top-level."""

    def __init__(self, *, run_id: str | None = None) -> None:
        super().__init__(json_ensure_ascii=False)
        self._run_id = run_id

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['message'] = record.getMessage()
        if self._run_id:
            log_record['run_id'] = self._run_id


class ConsoleFormatter(logging.Formatter):
    """Human-readable console output: `time level event key=value ...`."""

    def __init__(self) -> None:
        super().__init__(fmt='%(asctime)s %(levelname)-7s %(message)s', datefmt='%H:%M:%S')

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = {k: v for k, v in _event_fields(record).items() if k != "type" and v is not None}
        if fields:
            line += " " + " ".join(f"{k}={v}" for k, v in fields.items())
        return line
