from __future__ import annotations

from .logger import AnalysisLogger
from .handlers import build_jsonl_file_handler, build_console_handler
from .formatters import EventJSONFormatter, ConsoleFormatter

__all__ = [
    "AnalysisLogger",
    "build_jsonl_file_handler",
    "build_console_handler",
    "EventJSONFormatter",
    "ConsoleFormatter",
]
