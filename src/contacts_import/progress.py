from __future__ import annotations

import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


def percent_complete(processed: int, total: int) -> int:
    if total <= 0:
        return 100
    # Halves round up: 1 of 8 is 13%.
    return min(100, int(processed * 100 / total + 0.5))


class ProgressReporter:
    """Counts processed rows and reports the completion percentage after each one."""

    def __init__(self, total: int, callback: Optional[ProgressCallback] = None):
        self.total = total
        self.processed = 0
        self.callback = callback

    def advance(self) -> int:
        self.processed += 1
        percent = percent_complete(self.processed, self.total)
        if self.callback is not None:
            self.callback(percent)
        return percent


def log_progress(label: str) -> ProgressCallback:
    last_reported = {"percent": -1}

    def _report(percent: int) -> None:
        if percent != last_reported["percent"]:
            last_reported["percent"] = percent
            logger.info("%s: %d%%", label, percent)

    return _report
