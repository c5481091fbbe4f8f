import logging
from uuid import uuid4

import config
from tracking.domain import validation
from tracking.domain.commands import CreateTask, SubmitEvent
from tracking.domain.events import (
    EventRecorded,
    TaskCreated,
    TaskStatusChanged,
)
from tracking.domain.exceptions import DuplicateEventError, NotAssignedError, TaskLockedError
from tracking.domain.model import Coordinate, ExamType, Task, TaskStatus, utc
from tracking.service_layer.engine import DeliveryTrackingEngine, SubmissionResult
from tracking.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


class AuditAction:
    TASK_CREATED = "TASK_CREATED"
    TASK_STATUS_CHANGED = "TASK_STATUS_CHANGED"
    TASK_MARKED_SUSPICIOUS = "TASK_MARKED_SUSPICIOUS"
    TASK_COMPLETED = "TASK_COMPLETED"
    EVENT_UPLOADED = "EVENT_UPLOADED"
    EVENT_REJECTED_DUPLICATE = "EVENT_REJECTED_DUPLICATE"
    EVENT_REJECTED_TASK_LOCKED = "EVENT_REJECTED_TASK_LOCKED"
    EVENT_UPLOAD_DENIED_NOT_ASSIGNED = "EVENT_UPLOAD_DENIED_NOT_ASSIGNED"


def create_task(
    command: CreateTask,
    uow: AbstractUnitOfWork
) -> str:
    """
    Create a delivery task in PENDING status.

    Stands in for the task creation workflow: the tracking engine itself only
    ingests events against existing tasks.

    Args:
        command: CreateTask command with the assignment details
        uow: Unit of work for transaction management

    Returns:
        task_id: The ID of the created task

    Raises:
        ValidationError: If any field violates its constraint
    """
    logger.info(f"Processing CreateTask command for sealed pack {command.sealed_pack_code}")

    validation.validate_new_task(
        sealed_pack_code=command.sealed_pack_code,
        source_location=command.source_location,
        destination_location=command.destination_location,
        assigned_user_id=command.assigned_user_id,
        scheduled_start=command.scheduled_start,
        scheduled_end=command.scheduled_end,
        pickup_latitude=command.pickup_latitude,
        pickup_longitude=command.pickup_longitude,
        destination_latitude=command.destination_latitude,
        destination_longitude=command.destination_longitude,
        geofence_radius_meters=command.geofence_radius_meters,
        exam_type=command.exam_type,
        created_by=command.created_by,
    )

    task = Task(
        task_id=command.task_id or str(uuid4()),
        sealed_pack_code=command.sealed_pack_code.strip(),
        source_location=command.source_location,
        destination_location=command.destination_location,
        assigned_user_id=command.assigned_user_id,
        scheduled_start=utc(command.scheduled_start),
        scheduled_end=utc(command.scheduled_end),
        pickup_latitude=command.pickup_latitude,
        pickup_longitude=command.pickup_longitude,
        destination_latitude=command.destination_latitude,
        destination_longitude=command.destination_longitude,
        geofence_radius_meters=float(command.geofence_radius_meters),
        exam_type=ExamType(command.exam_type),
        status=TaskStatus.PENDING,
    )
    task.create(created_by=command.created_by)

    with uow:
        task_id = uow.tasks.add(task)
        uow.commit()

    logger.info(f"Created task {task_id} for sealed pack {task.sealed_pack_code}")
    return task_id


def submit_event(
    command: SubmitEvent,
    uow: AbstractUnitOfWork
) -> SubmissionResult:
    """
    Record a delivery event through the tracking engine.

    Duplicate, locked-task and not-assigned rejections are written to the
    audit log before being re-raised to the caller.
    """
    logger.info(f"Processing SubmitEvent command: {command.event_type} for task {command.task_id}")

    engine = DeliveryTrackingEngine.from_config(uow)
    try:
        return engine.submit_event(
            task_id=command.task_id,
            event_type=command.event_type,
            recorded_at=command.recorded_at,
            coordinate=Coordinate(command.latitude, command.longitude)
            if command.latitude is not None and command.longitude is not None else None,
            submitted_by=command.submitted_by,
            evidence_hash=command.evidence_hash,
        )

    except DuplicateEventError as e:
        logger.warning(f"Rejected duplicate event for task {command.task_id}: {e}")
        _audit_rejection(uow, AuditAction.EVENT_REJECTED_DUPLICATE, command)
        raise

    except TaskLockedError as e:
        logger.warning(f"Rejected event for locked task {command.task_id}: {e}")
        _audit_rejection(uow, AuditAction.EVENT_REJECTED_TASK_LOCKED, command)
        raise

    except NotAssignedError as e:
        logger.warning(f"Denied event upload for task {command.task_id}: {e}")
        _audit_rejection(uow, AuditAction.EVENT_UPLOAD_DENIED_NOT_ASSIGNED, command)
        raise


def _audit_rejection(uow: AbstractUnitOfWork, action: str, command: SubmitEvent):
    with uow:
        uow.audit_log.add(
            action=action,
            entity_type="TaskEvent",
            task_id=command.task_id,
            user_id=command.submitted_by,
            detail=str(command.event_type),
        )
        uow.commit()


def record_task_created(event: TaskCreated, uow: AbstractUnitOfWork):
    with uow:
        uow.audit_log.add(
            action=AuditAction.TASK_CREATED,
            entity_type="Task",
            entity_id=event.task_id,
            task_id=event.task_id,
            user_id=event.created_by,
            detail=event.sealed_pack_code,
        )
        uow.commit()


def record_event_uploaded(event: EventRecorded, uow: AbstractUnitOfWork):
    with uow:
        uow.audit_log.add(
            action=AuditAction.EVENT_UPLOADED,
            entity_type="TaskEvent",
            entity_id=event.event_id,
            task_id=event.task_id,
            user_id=event.recorded_by,
            detail=f"{event.event_type} geofence_ok={event.geofence_ok} on_time={event.on_time}",
        )
        uow.commit()


def record_status_change(event: TaskStatusChanged, uow: AbstractUnitOfWork):
    if event.new_status == TaskStatus.SUSPICIOUS.value:
        action = AuditAction.TASK_MARKED_SUSPICIOUS
    elif event.new_status == TaskStatus.COMPLETED.value:
        action = AuditAction.TASK_COMPLETED
    else:
        action = AuditAction.TASK_STATUS_CHANGED

    with uow:
        uow.audit_log.add(
            action=action,
            entity_type="Task",
            entity_id=event.task_id,
            task_id=event.task_id,
            user_id=event.changed_by,
            detail=f"{event.previous_status} -> {event.new_status}",
        )
        uow.commit()

    logger.info(f"Task {event.task_id} status {event.previous_status} -> {event.new_status}")


def publish_status_notification(event, uow: AbstractUnitOfWork):
    """
    Publish TaskMarkedSuspicious / TaskCompleted to the notification channel.

    Notification delivery is outside the tracking engine; failures are logged
    and do not undo the recorded event.
    """
    channel = config.get_tracking_policy()["status_channel"]
    logger.info(f"Publishing {type(event).__name__} for task {event.task_id}")
    try:
        # Import here so the engine never depends on Redis
        from tracking.adapters import redis_adapter

        redis_adapter.publish(channel, event)
        logger.info(f"Published {type(event).__name__} for {event.task_id}")

    except Exception as e:
        logger.error(f"Failed to publish {type(event).__name__} for {event.task_id}: {e}")
        # Don't re-raise - external failures shouldn't break the flow
