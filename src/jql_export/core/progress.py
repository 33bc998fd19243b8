"""Progress/ETA bookkeeping for fetch and export runs."""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from datetime import datetime, timezone

from jql_export.core.data_models import ProgressInfo, ProgressStage

ProgressCallback = Callable[[ProgressInfo], None]


class ProgressTracker:
    """Build :class:`ProgressInfo` events and hand them to a callback.

    Events are fire-and-forget: the tracker keeps no history and does not
    guard against a failing callback.
    """

    def __init__(
        self,
        total: int,
        callback: ProgressCallback | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        start_time: datetime | None = None,
    ) -> None:
        self.total = total
        self._callback = callback
        self._clock = clock
        self._started = clock()
        self.start_time = start_time or datetime.now(timezone.utc)

    def emit(
        self,
        stage: ProgressStage,
        current: int,
        message: str,
        *,
        with_eta: bool = False,
    ) -> ProgressInfo:
        """Emit one event; ``complete`` is always reported at 100%."""
        current = min(current, self.total)
        if stage is ProgressStage.COMPLETE:
            percentage = 100
        else:
            percentage = percentage_of(current, self.total)
        info = ProgressInfo(
            current=current,
            total=self.total,
            percentage=percentage,
            stage=stage,
            message=message,
            start_time=self.start_time,
            estimated_time_remaining=self.eta_seconds(current) if with_eta else None,
        )
        if self._callback is not None:
            self._callback(info)
        return info

    def eta_seconds(self, processed: int) -> int | None:
        """Estimate whole seconds left after *processed* of ``total`` items."""
        if processed <= 0:
            return None
        elapsed = self._clock() - self._started
        estimated_total = elapsed / processed * self.total
        return max(0, round_half_up(estimated_total - elapsed))


def percentage_of(current: int, total: int) -> int:
    """Integer percentage of *current* over *total*; 0 when *total* is 0."""
    if total <= 0:
        return 0
    return round_half_up(current / total * 100)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
