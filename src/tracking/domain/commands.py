"""Commands for the sealed-pack tracking service."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from shared.domain.commands import Command


@dataclass
class CreateTask(Command):
    """Command to create a delivery task in PENDING status."""
    sealed_pack_code: str
    source_location: str
    destination_location: str
    assigned_user_id: str
    scheduled_start: datetime
    scheduled_end: datetime
    created_by: str
    pickup_latitude: Optional[float] = None
    pickup_longitude: Optional[float] = None
    destination_latitude: Optional[float] = None
    destination_longitude: Optional[float] = None
    geofence_radius_meters: float = 100
    exam_type: str = "REGULAR"
    task_id: Optional[str] = None  # generated when not supplied


@dataclass
class SubmitEvent(Command):
    """Command to record a PICKUP / TRANSIT / FINAL event for a task."""
    task_id: str
    event_type: str
    recorded_at: datetime  # Client capture time
    latitude: float
    longitude: float
    submitted_by: str
    evidence_hash: Optional[str] = None
