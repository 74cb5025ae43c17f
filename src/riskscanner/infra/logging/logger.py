from __future__ import annotations

import logging
from pathlib import Path

from dependency_injector.resources import Resource

from .handlers import build_console_handler, build_jsonl_file_handler


class AnalysisLogger(Resource):
    """Structured event logger for scans and analyses.

    Keyword arguments become structured fields on the record. A JSONL file is written per
    run when `run_id` is set; console output is optional.
    """

    def init(
        self,
        *,
        logs_dir: Path,
        run_id: str | None = None,
        logger_name: str = "riskscanner",
        console_output: bool = False,
        level: str = "INFO",
    ) -> "AnalysisLogger":
        numeric_level = getattr(logging, level.upper())
        self._logger = logging.getLogger(logger_name)
        self._logger.setLevel(numeric_level)
        self._logger.propagate = False

        self._logger.handlers.clear()
        self._handlers: list[logging.Handler] = []

        if run_id:
            handler = build_jsonl_file_handler(logs_dir / f"{run_id}.jsonl", run_id=run_id, level=numeric_level)
            self._logger.addHandler(handler)
            self._handlers.append(handler)

        if console_output:
            handler = build_console_handler(level=numeric_level)
            self._logger.addHandler(handler)
            self._handlers.append(handler)

        if not self._handlers:
            self._logger.addHandler(logging.NullHandler())

        return self

    def shutdown(self, resource: "AnalysisLogger") -> None:
        """Flush and close handlers so log files are complete and released."""
        for handler in self._handlers:
            handler.flush()
            handler.close()
        self._handlers.clear()
        self._logger.handlers.clear()

    def debug(self, message: str, **kwargs) -> None:
        self._logger.debug(message, extra=kwargs or None)

    def info(self, message: str, **kwargs) -> None:
        self._logger.info(message, extra=kwargs or None)

    def warning(self, message: str, **kwargs) -> None:
        self._logger.warning(message, extra=kwargs or None)

    def error(self, message: str, exc_info: bool = False, **kwargs) -> None:
        self._logger.error(message, extra=kwargs or None, exc_info=exc_info)

    def exception(self, message: str, **kwargs) -> None:
        self._logger.exception(message, extra=kwargs or None)
