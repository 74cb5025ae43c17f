from __future__ import annotations

import logging
from logging import Handler
from pathlib import Path

from .formatters import ConsoleFormatter, EventJSONFormatter


def build_jsonl_file_handler(path: Path, *, run_id: str | None = None, level: int = logging.INFO) -> Handler:
    """Append-mode file handler writing one JSON event per line."""
    path.parent.mkdir(parents=True, exist_ok=True)
    h = logging.FileHandler(path, encoding="utf-8", mode="a")
    h.setLevel(level)
    h.setFormatter(EventJSONFormatter(run_id=run_id))
    return h


def build_console_handler(level: int = logging.INFO) -> Handler:
    # stderr, so --json output on stdout stays machine-readable
    h = logging.StreamHandler()
    h.setLevel(level)
    h.setFormatter(ConsoleFormatter())
    return h
