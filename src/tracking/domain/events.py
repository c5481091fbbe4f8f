"""Domain events for the sealed-pack tracking service."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from shared.domain.commands import Event


@dataclass
class TaskCreated(Event):
    """Event raised when a delivery task has been created in PENDING status."""
    task_id: str
    sealed_pack_code: str
    assigned_user_id: str
    created_by: str
    created_at: datetime


@dataclass
class EventRecorded(Event):
    """Event raised when a PICKUP / TRANSIT / FINAL event has been accepted."""
    task_id: str
    event_id: str
    event_type: str
    recorded_by: str
    recorded_at: datetime  # Client capture time
    received_at: datetime  # Server receipt time
    geofence_ok: bool
    on_time: bool
    distance_meters: Optional[float] = None


@dataclass
class TaskStatusChanged(Event):
    """Event raised whenever an accepted event moves the task to a new status."""
    task_id: str
    previous_status: str
    new_status: str
    changed_by: str
    changed_at: datetime


@dataclass
class TaskMarkedSuspicious(Event):
    """Event raised when a geofence or time window violation taints the task."""
    task_id: str
    sealed_pack_code: str
    triggering_event_type: str
    geofence_ok: bool
    on_time: bool
    changed_by: str
    changed_at: datetime


@dataclass
class TaskCompleted(Event):
    """Event raised when a fully valid FINAL event closes the task."""
    task_id: str
    sealed_pack_code: str
    completed_by: str
    completed_at: datetime
    was_suspicious: bool = False
