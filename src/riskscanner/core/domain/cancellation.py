from __future__ import annotations

import threading
import time


class CancellationToken:
    """Cooperative cancellation signal shared by the orchestrator and its workers.

    Cancelled either explicitly via `cancel()` (e.g. client disconnect) or implicitly once the
    optional deadline passes.
    """

    def __init__(self, *, timeout: float | None = None) -> None:
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._event.set()
            return True
        return False

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None when there is no deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())
