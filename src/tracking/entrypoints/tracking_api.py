"""
Tracking API Entrypoint - Thin API with Command Dispatch
API receives payloads and dispatches commands through message bus
"""
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException
from pydantic import BaseModel
from sqlalchemy import create_engine
import logging

import config
from tracking import views
from tracking.adapters import orm
from tracking.domain.authorization import AuthorizationPolicy, CallerIdentity, Operation
from tracking.domain.commands import CreateTask, SubmitEvent
from tracking.domain.exceptions import (
    AuthorizationError,
    DuplicateEventError,
    NotAssignedError,
    NotFoundError,
    OutOfOrderEventError,
    TaskLockedError,
    TrackingError,
    ValidationError,
)
from tracking.domain.model import TaskEvent, utc
from tracking.service_layer import messagebus
from tracking.service_layer.engine import DeliveryTrackingEngine
from tracking.service_layer.unit_of_work import SqlAlchemyUnitOfWork

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Sealed-Pack Tracking API",
    description="Chain-of-custody event tracking for sealed exam packs",
    version="1.0.0"
)

policy = AuthorizationPolicy()

ERROR_STATUS_CODES = {
    NotFoundError: 404,
    DuplicateEventError: 409,
    TaskLockedError: 409,
    OutOfOrderEventError: 409,
    ValidationError: 422,
    NotAssignedError: 403,
    AuthorizationError: 403,
}


# Initialize database and ORM mappers (Cosmic Python pattern)
@app.on_event("startup")
async def startup_event():
    engine = create_engine(config.get_postgres_uri())
    orm.metadata.create_all(engine)
    orm.start_mappers()
    logger.info("Tracking database initialized")


def get_uow():
    return SqlAlchemyUnitOfWork()


def get_caller(
    x_user_id: str = Header(...),
    x_user_role: str = Header(...),
) -> CallerIdentity:
    return CallerIdentity(user_id=x_user_id, role=x_user_role.upper())


def _authorize(caller: CallerIdentity, operation: Operation):
    try:
        policy.authorize(caller, operation)
    except AuthorizationError as e:
        logger.warning(f"Denied {operation.value} for user {caller.user_id}: {e}")
        raise HTTPException(status_code=403, detail=str(e))


def _http_error(error: TrackingError) -> HTTPException:
    status_code = ERROR_STATUS_CODES.get(type(error), 400)
    if isinstance(error, ValidationError):
        return HTTPException(status_code=status_code, detail=error.errors)
    return HTTPException(status_code=status_code, detail=str(error))


def _serialize_event(event: TaskEvent):
    return {
        "event_id": event.event_id,
        "task_id": event.task_id,
        "event_type": event.event_type.value,
        "recorded_at": utc(event.recorded_at).isoformat(),
        "received_at": utc(event.received_at).isoformat(),
        "latitude": event.latitude,
        "longitude": event.longitude,
        "recorded_by": event.recorded_by,
        "geofence_ok": event.geofence_ok,
        "on_time": event.on_time,
        "distance_meters": event.distance_meters,
        "status_after": event.status_after.value if event.status_after else None,
        "evidence_hash": event.evidence_hash,
    }


# ---------- Request/Response models ----------

class CreateTaskRequest(BaseModel):
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
    geofence_radius_meters: float = 100
    exam_type: str = "REGULAR"

    model_config = {
        "json_schema_extra": {
            "example": {
                "sealed_pack_code": "SP-2024-0001",
                "source_location": "District Treasury, Kohima",
                "destination_location": "Govt. Higher Secondary School, Kohima",
                "assigned_user_id": "agent-17",
                "scheduled_start": "2024-03-01T10:00:00+05:30",
                "scheduled_end": "2024-03-01T12:00:00+05:30",
                "pickup_latitude": 25.6747,
                "pickup_longitude": 94.1086,
                "geofence_radius_meters": 100,
                "exam_type": "REGULAR",
            }
        }
    }


class CreateTaskResponse(BaseModel):
    task_id: str
    status: str


class SubmitEventRequest(BaseModel):
    event_type: str
    recorded_at: datetime  # Client capture time
    latitude: float
    longitude: float
    evidence_hash: Optional[str] = None


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "sealed-pack-tracking-api",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.post("/api/admin/tasks", response_model=CreateTaskResponse, status_code=201)
def create_task(
    request: CreateTaskRequest,
    caller: CallerIdentity = Depends(get_caller),
    uow=Depends(get_uow),
):
    """
    Create a delivery task in PENDING status.

    Following Cosmic Python pattern: API receives payload and dispatches command.
    """
    _authorize(caller, Operation.CREATE_TASK)

    cmd = CreateTask(
        sealed_pack_code=request.sealed_pack_code,
        source_location=request.source_location,
        destination_location=request.destination_location,
        assigned_user_id=request.assigned_user_id,
        scheduled_start=request.scheduled_start,
        scheduled_end=request.scheduled_end,
        created_by=caller.user_id,
        pickup_latitude=request.pickup_latitude,
        pickup_longitude=request.pickup_longitude,
        destination_latitude=request.destination_latitude,
        destination_longitude=request.destination_longitude,
        geofence_radius_meters=request.geofence_radius_meters,
        exam_type=request.exam_type,
    )
    try:
        [task_id] = messagebus.handle(cmd, uow)
    except TrackingError as e:
        raise _http_error(e)

    return CreateTaskResponse(task_id=task_id, status="PENDING")


@app.get("/api/admin/tasks/{task_id}")
def get_task(
    task_id: str,
    caller: CallerIdentity = Depends(get_caller),
    uow=Depends(get_uow),
):
    """Task details with the event types recorded so far."""
    _authorize(caller, Operation.VIEW_TASK)

    summary = views.get_task_summary(task_id, uow)
    if summary is None:
        raise HTTPException(status_code=404, detail=f"Task with ID '{task_id}' not found")
    return summary


@app.get("/api/admin/tasks/{task_id}/audit-logs")
def get_audit_logs(
    task_id: str,
    caller: CallerIdentity = Depends(get_caller),
    uow=Depends(get_uow),
):
    _authorize(caller, Operation.VIEW_AUDIT_LOG)

    if views.get_task_summary(task_id, uow) is None:
        raise HTTPException(status_code=404, detail=f"Task with ID '{task_id}' not found")
    entries = views.get_audit_trail(task_id, uow)
    return {"task_id": task_id, "count": len(entries), "audit_logs": entries}


@app.get("/api/admin/tasks-summary")
def get_status_summary(
    caller: CallerIdentity = Depends(get_caller),
    uow=Depends(get_uow),
):
    """Task counts per status, overall and per exam type."""
    _authorize(caller, Operation.VIEW_TASK)
    return views.get_status_summary(uow)


@app.post("/api/tasks/{task_id}/events", status_code=201)
def submit_event(
    task_id: str,
    request: SubmitEventRequest,
    caller: CallerIdentity = Depends(get_caller),
    uow=Depends(get_uow),
):
    """
    Record a PICKUP / TRANSIT / FINAL event for a task.

    Geofence and time window violations are accepted and mark the task
    SUSPICIOUS; rejections map to 404 / 409 / 422.
    """
    _authorize(caller, Operation.SUBMIT_EVENT)
    logger.info(f"Received {request.event_type} for task {task_id} from {caller.user_id}")

    cmd = SubmitEvent(
        task_id=task_id,
        event_type=request.event_type,
        recorded_at=request.recorded_at,
        latitude=request.latitude,
        longitude=request.longitude,
        submitted_by=caller.user_id,
        evidence_hash=request.evidence_hash,
    )
    try:
        [result] = messagebus.handle(cmd, uow)
    except TrackingError as e:
        raise _http_error(e)

    return {
        "task": {
            "task_id": result.task.task_id,
            "status": result.task.status.value,
            "previous_status": result.transition.previous.value,
            "version_number": result.task.version_number,
        },
        "event": _serialize_event(result.event),
    }


@app.get("/api/tasks/{task_id}/events")
def get_timeline(
    task_id: str,
    caller: CallerIdentity = Depends(get_caller),
    uow=Depends(get_uow),
):
    """Events of a task ordered by client capture time."""
    _authorize(caller, Operation.VIEW_TIMELINE)

    engine = DeliveryTrackingEngine.from_config(uow)
    try:
        events = engine.get_task_timeline(task_id)
    except TrackingError as e:
        raise _http_error(e)

    return {
        "task_id": task_id,
        "count": len(events),
        "events": [_serialize_event(event) for event in events],
    }


@app.get("/api/tasks/{task_id}/allowed-events")
def get_allowed_events(
    task_id: str,
    caller: CallerIdentity = Depends(get_caller),
    uow=Depends(get_uow),
):
    _authorize(caller, Operation.VIEW_ALLOWED_EVENTS)

    engine = DeliveryTrackingEngine.from_config(uow)
    try:
        allowed = engine.allowed_event_types(task_id)
    except TrackingError as e:
        raise _http_error(e)

    return {"task_id": task_id, "allowed_event_types": [event_type.value for event_type in allowed]}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
