"""
Task status transitions.

    PENDING -> IN_PROGRESS -> COMPLETED
        \\            |          ^
         +--> SUSPICIOUS -------+   (only a fully valid FINAL closes it)

A geofence or time window violation taints the delivery for audit purposes:
SUSPICIOUS never heals on a later valid PICKUP or TRANSIT.
"""
from dataclasses import dataclass

from tracking.domain.exceptions import TaskLockedError
from tracking.domain.model import EventType, TaskStatus


@dataclass(frozen=True)
class Transition:
    previous: TaskStatus
    current: TaskStatus

    @property
    def changed(self) -> bool:
        return self.previous != self.current


class TaskStateMachine:

    def transition(
        self,
        task_id,
        current: TaskStatus,
        event_type: EventType,
        geofence_ok: bool,
        on_time: bool,
    ) -> Transition:
        """
        Compute the next status for an accepted event.

        Raises:
            TaskLockedError: the task is already COMPLETED
        """
        if current == TaskStatus.COMPLETED:
            raise TaskLockedError(task_id)

        violated = not (geofence_ok and on_time)

        if violated:
            return Transition(current, TaskStatus.SUSPICIOUS)

        if event_type == EventType.FINAL:
            return Transition(current, TaskStatus.COMPLETED)

        if current == TaskStatus.PENDING and event_type == EventType.PICKUP:
            return Transition(current, TaskStatus.IN_PROGRESS)

        # TRANSIT checkpoints and valid events on a SUSPICIOUS task keep the status
        return Transition(current, current)
