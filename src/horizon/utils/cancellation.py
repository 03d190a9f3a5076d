"""Cooperative cancellation for long-running analysis runs.

A run checks its token at every per-file boundary and once more before the
aggregation request; in-flight requests are never interrupted.
"""

import threading


class AnalysisCancelled(Exception):
    """Raised at a checkpoint after cancellation was requested."""

    pass


class CancellationToken:
    """Thread-safe, one-way cancellation flag."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """True once cancel() has been called."""
        return self._event.is_set()

    def raise_if_cancelled(self, where: str = "") -> None:
        """Raise AnalysisCancelled if cancellation was requested.

        Args:
            where: Checkpoint name included in the exception message
        """
        if self._event.is_set():
            suffix = f" at {where}" if where else ""
            raise AnalysisCancelled(f"Analysis cancelled{suffix}")
