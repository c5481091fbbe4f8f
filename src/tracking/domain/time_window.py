"""Scheduled time window audit for delivery events."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from tracking.domain.model import utc


@dataclass(frozen=True)
class TimeWindowVerdict:
    on_time: bool
    early_by: Optional[timedelta] = None
    late_by: Optional[timedelta] = None


class TimeWindowAuditor:
    """
    Compare an event's capture time to the task's scheduled window.

    Early or late events are still recorded; the verdict only feeds the state
    machine's SUSPICIOUS decision.
    """

    def audit(self, task, recorded_at: datetime) -> TimeWindowVerdict:
        start = utc(task.scheduled_start)
        end = utc(task.scheduled_end)
        at = utc(recorded_at)

        if at < start:
            return TimeWindowVerdict(on_time=False, early_by=start - at)
        if at > end:
            return TimeWindowVerdict(on_time=False, late_by=at - end)
        return TimeWindowVerdict(on_time=True)
