"""Progress reporting for analysis runs.

Events are broadcast to every subscribed observer on a best-effort basis:
an observer that raises is logged and skipped, and never stops the run.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    """Progress of a map stage.

    Attributes:
        percent: round(100 * completed / total), 0-100
        completed: Files finished so far
        total: Files in the run
        path: Relative path of the file that just finished
    """

    percent: int
    completed: int = 0
    total: int = 0
    path: str | None = None

    @classmethod
    def for_step(cls, completed: int, total: int, path: str | None = None) -> "ProgressEvent":
        """Build the event emitted after the completed-th of total files."""
        percent = round(100 * completed / total) if total else 100
        return cls(percent=percent, completed=completed, total=total, path=path)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire shape ``{"percent": n}`` plus context."""
        return {
            "percent": self.percent,
            "completed": self.completed,
            "total": self.total,
            "path": self.path,
        }


ProgressObserver = Callable[[ProgressEvent], None]


class ProgressBroadcaster:
    """Fans progress events out to observers."""

    def __init__(self) -> None:
        self._observers: list[ProgressObserver] = []
        self._lock = threading.Lock()

    def subscribe(self, observer: ProgressObserver) -> Callable[[], None]:
        """Register an observer.

        Returns:
            Function that unsubscribes the observer
        """
        with self._lock:
            self._observers.append(observer)

        def unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    def emit(self, event: ProgressEvent) -> None:
        """Deliver event to every observer."""
        with self._lock:
            observers = list(self._observers)
        for observer in observers:
            try:
                observer(event)
            except Exception as e:
                logger.warning("Progress observer failed: %s", e)
