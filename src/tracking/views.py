"""
Views for read operations - separate from command/write path.
Following Cosmic Python CQRS pattern: views query tables directly.

The audit_logs table is a read model kept up-to-date by event handlers
responding to TaskCreated, EventRecorded and TaskStatusChanged events.
"""
import logging
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from sqlalchemy import func, select

from tracking.adapters import orm
from tracking.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


def _iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def get_audit_trail(task_id: str, uow: AbstractUnitOfWork) -> List[Dict[str, Any]]:
    """
    Audit log entries for a task, oldest first.

    Rejected submissions (duplicates, events on a locked task, uploads by an
    agent not assigned to the task) appear here next to the accepted uploads
    and status changes.
    """
    with uow:
        rows = uow.session.execute(
            select(orm.audit_logs)
            .where(orm.audit_logs.c.task_id == task_id)
            .order_by(orm.audit_logs.c.created_at, orm.audit_logs.c.id)
        ).mappings().all()

        return [
            {
                "id": row["id"],
                "action": row["action"],
                "entity_type": row["entity_type"],
                "entity_id": row["entity_id"],
                "task_id": row["task_id"],
                "user_id": row["user_id"],
                "detail": row["detail"],
                "created_at": _iso(row["created_at"]),
            }
            for row in rows
        ]


def get_task_summary(task_id: str, uow: AbstractUnitOfWork) -> Optional[Dict[str, Any]]:
    """
    Task row plus the event types recorded so far.

    Returns:
        None if the task does not exist
    """
    with uow:
        task = uow.session.execute(
            select(orm.tasks).where(orm.tasks.c.task_id == task_id)
        ).mappings().first()

        if task is None:
            return None

        recorded = uow.session.execute(
            select(orm.task_events.c.event_type)
            .where(orm.task_events.c.task_id == task_id)
            .order_by(orm.task_events.c.recorded_at)
        ).scalars().all()

        return {
            "task_id": task["task_id"],
            "sealed_pack_code": task["sealed_pack_code"],
            "source_location": task["source_location"],
            "destination_location": task["destination_location"],
            "assigned_user_id": task["assigned_user_id"],
            "scheduled_start": _iso(task["scheduled_start"]),
            "scheduled_end": _iso(task["scheduled_end"]),
            "geofence_radius_meters": task["geofence_radius_meters"],
            "exam_type": task["exam_type"].value,
            "status": task["status"].value,
            "created_at": _iso(task["created_at"]),
            "version_number": task["version_number"],
            "recorded_event_types": [event_type.value for event_type in recorded],
        }


def get_status_summary(uow: AbstractUnitOfWork) -> Dict[str, Any]:
    """
    Count of tasks per status, overall and per exam type.

    Returns:
        - by_status: {status: count}
        - by_exam_type: {exam_type: {status: count}}
        - total: number of tasks
    """
    with uow:
        rows = uow.session.execute(
            select(orm.tasks.c.exam_type, orm.tasks.c.status, func.count())
            .group_by(orm.tasks.c.exam_type, orm.tasks.c.status)
        ).all()

    by_status = {}  # type: Dict[str, int]
    by_exam_type = {}  # type: Dict[str, Dict[str, int]]
    total = 0
    for exam_type, status, count in rows:
        by_status[status.value] = by_status.get(status.value, 0) + count
        by_exam_type.setdefault(exam_type.value, {})[status.value] = count
        total += count

    logger.debug(f"Status summary over {total} tasks")
    return {
        "by_status": by_status,
        "by_exam_type": by_exam_type,
        "total": total,
        "queried_at": datetime.now(timezone.utc).isoformat(),
    }
