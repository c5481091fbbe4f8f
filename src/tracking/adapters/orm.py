import logging
from sqlalchemy import (
    Table,
    Column,
    Integer,
    String,
    Float,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import registry
from tracking.domain import model

logger = logging.getLogger(__name__)

# SQLAlchemy 2.0 pattern: use registry
mapper_registry = registry()
metadata = mapper_registry.metadata

tasks = Table(
    "tasks",
    metadata,
    Column("task_id", String(36), primary_key=True),
    Column("sealed_pack_code", String(100), nullable=False),
    Column("source_location", String(255), nullable=False),
    Column("destination_location", String(255), nullable=False),
    Column("assigned_user_id", String(36), nullable=False),
    Column("scheduled_start", DateTime(timezone=True), nullable=False),
    Column("scheduled_end", DateTime(timezone=True), nullable=False),
    Column("pickup_latitude", Float),
    Column("pickup_longitude", Float),
    Column("destination_latitude", Float),
    Column("destination_longitude", Float),
    Column("geofence_radius_meters", Float, nullable=False, server_default="100"),
    Column("exam_type", Enum(model.ExamType, name="exam_type"), nullable=False),
    Column("status", Enum(model.TaskStatus, name="task_status"), nullable=False),
    Column("created_at", DateTime(timezone=True)),
    Column("version_number", Integer, nullable=False, server_default="0"),
)

# One row per (task, event type): the storage-level guarantee behind
# at-most-once event semantics under concurrent submissions.
task_events = Table(
    "task_events",
    metadata,
    Column("event_id", String(36), primary_key=True),
    Column("task_id", String(36), ForeignKey("tasks.task_id"), nullable=False, index=True),
    Column("event_type", Enum(model.EventType, name="event_type"), nullable=False),
    Column("recorded_at", DateTime(timezone=True), nullable=False),
    Column("received_at", DateTime(timezone=True), nullable=False),
    Column("latitude", Float, nullable=False),
    Column("longitude", Float, nullable=False),
    Column("recorded_by", String(36), nullable=False),
    Column("geofence_ok", Boolean, nullable=False),
    Column("on_time", Boolean, nullable=False),
    Column("distance_meters", Float),
    Column("status_after", Enum(model.TaskStatus, name="task_status")),
    Column("evidence_hash", String(64)),
    UniqueConstraint("task_id", "event_type", name="uq_task_events_task_id_event_type"),
)

# Read model table - not mapped to domain entity
audit_logs = Table(
    "audit_logs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("action", String(64), nullable=False),
    Column("entity_type", String(100), nullable=False),
    Column("entity_id", String(36)),
    Column("task_id", String(36), index=True),
    Column("user_id", String(36)),
    Column("detail", String(255)),
    Column("created_at", DateTime(timezone=True), nullable=False),
)


def start_mappers():
    if mapper_registry.mappers:
        logger.debug("Mappers already configured")
        return
    logger.info("Starting mappers")
    mapper_registry.map_imperatively(model.Task, tasks)
    mapper_registry.map_imperatively(model.TaskEvent, task_events)


@event.listens_for(model.Task, "load")
def receive_load(task, _):
    task.events = []
