"""
Sealed-pack delivery domain model.

A Task is one sealed-pack delivery assignment and the aggregate root: it owns
its TaskEvents (PICKUP, TRANSIT, FINAL), which refer back to it by task_id only.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, TYPE_CHECKING

from tracking.domain.events import (
    EventRecorded,
    TaskCompleted,
    TaskCreated,
    TaskMarkedSuspicious,
    TaskStatusChanged,
)

if TYPE_CHECKING:
    from tracking.domain.state_machine import Transition


class TaskStatus(str, Enum):
    """Delivery task status"""
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    SUSPICIOUS = "SUSPICIOUS"


class EventType(str, Enum):
    """Chain-of-custody checkpoints, each recorded at most once per task"""
    PICKUP = "PICKUP"
    TRANSIT = "TRANSIT"
    FINAL = "FINAL"


class ExamType(str, Enum):
    REGULAR = "REGULAR"
    COMPARTMENTAL = "COMPARTMENTAL"


DEFAULT_GEOFENCE_RADIUS_METERS = 100.0


def utc(value: datetime) -> datetime:
    """Normalise a timestamp to aware UTC; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float


@dataclass(eq=False)
class TaskEvent:
    """One recorded occurrence for a task. Immutable once persisted."""
    event_id: str
    task_id: str                       # back-reference, never an ownership pointer
    event_type: EventType
    recorded_at: datetime              # client-reported capture time
    latitude: float
    longitude: float
    recorded_by: str
    received_at: datetime              # server receipt time
    geofence_ok: bool = True
    on_time: bool = True
    distance_meters: Optional[float] = None  # None when no reference point configured
    status_after: Optional[TaskStatus] = None
    evidence_hash: Optional[str] = None      # SHA-256 of photo evidence, hex

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)


@dataclass(eq=False)
class Task:
    task_id: str
    sealed_pack_code: str
    source_location: str
    destination_location: str
    assigned_user_id: str
    scheduled_start: datetime
    scheduled_end: datetime
    pickup_latitude: Optional[float] = None
    pickup_longitude: Optional[float] = None
    destination_latitude: Optional[float] = None
    destination_longitude: Optional[float] = None
    geofence_radius_meters: float = DEFAULT_GEOFENCE_RADIUS_METERS
    exam_type: ExamType = ExamType.REGULAR
    status: TaskStatus = TaskStatus.PENDING
    created_at: Optional[datetime] = None
    version_number: int = 0
    events: List = field(default_factory=list)

    @property
    def pickup_point(self) -> Optional[Coordinate]:
        if self.pickup_latitude is None or self.pickup_longitude is None:
            return None
        return Coordinate(self.pickup_latitude, self.pickup_longitude)

    @property
    def destination_point(self) -> Optional[Coordinate]:
        if self.destination_latitude is None or self.destination_longitude is None:
            return None
        return Coordinate(self.destination_latitude, self.destination_longitude)

    def reference_point(self, event_type: EventType) -> Optional[Coordinate]:
        """PICKUP and TRANSIT are checked against the pickup point, FINAL against the destination."""
        if event_type == EventType.FINAL:
            return self.destination_point
        return self.pickup_point

    def create(self, created_by: str) -> None:
        """
        Mark task as created and generate the TaskCreated domain event.
        """
        if self.created_at is None:
            self.created_at = datetime.now(timezone.utc)
        self.events.append(
            TaskCreated(
                task_id=self.task_id,
                sealed_pack_code=self.sealed_pack_code,
                assigned_user_id=self.assigned_user_id,
                created_by=created_by,
                created_at=self.created_at,
            )
        )

    def record_event(self, event: TaskEvent, transition: Transition) -> None:
        """
        Apply an accepted event to the task.

        The caller has already run sequencing, geofence, time window and the
        state machine; this only moves the status and raises domain events.
        """
        self.status = transition.current
        self.version_number += 1
        event.status_after = transition.current

        self.events.append(
            EventRecorded(
                task_id=self.task_id,
                event_id=event.event_id,
                event_type=event.event_type.value,
                recorded_by=event.recorded_by,
                recorded_at=event.recorded_at,
                received_at=event.received_at,
                geofence_ok=event.geofence_ok,
                on_time=event.on_time,
                distance_meters=event.distance_meters,
            )
        )

        if not transition.changed:
            return

        self.events.append(
            TaskStatusChanged(
                task_id=self.task_id,
                previous_status=transition.previous.value,
                new_status=transition.current.value,
                changed_by=event.recorded_by,
                changed_at=event.received_at,
            )
        )

        if transition.current == TaskStatus.SUSPICIOUS:
            self.events.append(
                TaskMarkedSuspicious(
                    task_id=self.task_id,
                    sealed_pack_code=self.sealed_pack_code,
                    triggering_event_type=event.event_type.value,
                    geofence_ok=event.geofence_ok,
                    on_time=event.on_time,
                    changed_by=event.recorded_by,
                    changed_at=event.received_at,
                )
            )
        elif transition.current == TaskStatus.COMPLETED:
            self.events.append(
                TaskCompleted(
                    task_id=self.task_id,
                    sealed_pack_code=self.sealed_pack_code,
                    completed_by=event.recorded_by,
                    completed_at=event.received_at,
                    was_suspicious=transition.previous == TaskStatus.SUSPICIOUS,
                )
            )
