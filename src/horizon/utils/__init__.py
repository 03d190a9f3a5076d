"""Logic Horizon utility modules.

- logging: Standardized logging with human/verbose/JSON modes
- progress: Best-effort progress broadcasting
- cancellation: Cooperative cancellation checkpoints
"""

from horizon.utils.cancellation import AnalysisCancelled, CancellationToken
from horizon.utils.logging import get_logger, setup_logging
from horizon.utils.progress import ProgressBroadcaster, ProgressEvent

__all__ = [
    "AnalysisCancelled",
    "CancellationToken",
    "ProgressBroadcaster",
    "ProgressEvent",
    "get_logger",
    "setup_logging",
]
