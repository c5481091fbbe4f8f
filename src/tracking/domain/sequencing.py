"""
Event sequencing rules for a task.

Each event type is recorded at most once per task and a recorded FINAL locks the
task against any further event. By default no ordering is enforced between the
types beyond that; strict ordering additionally requires PICKUP before TRANSIT
and FINAL.
"""
import logging
from typing import Iterable, Set

from tracking.domain.exceptions import (
    DuplicateEventError,
    OutOfOrderEventError,
    TaskLockedError,
)
from tracking.domain.model import EventType

logger = logging.getLogger(__name__)

# event type -> event types that must already be recorded (strict ordering only)
STRICT_PREREQUISITES = {
    EventType.PICKUP: (),
    EventType.TRANSIT: (EventType.PICKUP,),
    EventType.FINAL: (EventType.PICKUP,),
}


class EventSequencer:

    def __init__(self, strict_ordering: bool = False):
        self.strict_ordering = strict_ordering

    def next_allowed(self, existing_types: Iterable[EventType], task_locked: bool) -> Set[EventType]:
        """Event types that may be submitted now."""
        if task_locked:
            return set()
        existing = set(existing_types)
        allowed = {event_type for event_type in EventType if event_type not in existing}
        if self.strict_ordering:
            allowed = {
                event_type for event_type in allowed
                if all(required in existing for required in STRICT_PREREQUISITES[event_type])
            }
        return allowed

    def check(self, task_id, event_type: EventType, existing_types: Iterable[EventType], task_locked: bool) -> None:
        """
        Raise if event_type is not permitted now.

        Raises:
            TaskLockedError: FINAL already recorded
            DuplicateEventError: event_type already recorded
            OutOfOrderEventError: strict ordering and a prerequisite is missing
        """
        existing = set(existing_types)
        if task_locked or EventType.FINAL in existing:
            raise TaskLockedError(task_id)
        if event_type in existing:
            raise DuplicateEventError(task_id, event_type)
        if self.strict_ordering:
            for required in STRICT_PREREQUISITES[event_type]:
                if required not in existing:
                    raise OutOfOrderEventError(task_id, event_type, required)
        logger.debug(f"Event {event_type.value} permitted for task {task_id}")
