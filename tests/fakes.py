"""In-memory fakes and builders shared by unit and integration tests."""
from datetime import datetime, timezone

from tracking.adapters import repository
from tracking.domain import model
from tracking.domain.exceptions import DuplicateEventError
from tracking.service_layer.unit_of_work import AbstractUnitOfWork

PICKUP_POINT = (25.6747, 94.1086)
WINDOW_START = datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)
WINDOW_END = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeTaskRepository(repository.AbstractTaskRepository):
    def __init__(self, tasks=()):
        super().__init__()
        self._tasks = {task.task_id: task for task in tasks}

    def _add(self, task):
        self._tasks[task.task_id] = task

    def _get(self, task_id):
        return self._tasks.get(task_id)

    def _get_for_update(self, task_id):
        return self._tasks.get(task_id)


class FakeEventRepository(repository.AbstractEventRepository):
    def __init__(self, events=()):
        self._events = list(events)

    def add(self, event):
        # same guarantee as the unique constraint on (task_id, event_type)
        if self.exists(event.task_id, event.event_type):
            raise DuplicateEventError(event.task_id, event.event_type)
        self._events.append(event)
        return event.event_id

    def exists(self, task_id, event_type):
        return any(
            e.task_id == task_id and e.event_type == event_type for e in self._events
        )

    def recorded_types(self, task_id):
        return {e.event_type for e in self._events if e.task_id == task_id}

    def list_for_task(self, task_id):
        return sorted(
            (e for e in self._events if e.task_id == task_id),
            key=lambda e: (model.utc(e.recorded_at), model.utc(e.received_at)),
        )


class FakeAuditLog(repository.AbstractAuditLog):
    def __init__(self):
        self.entries = []

    def add(self, action, entity_type, entity_id=None, task_id=None, user_id=None, detail=None):
        self.entries.append(
            dict(
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                task_id=task_id,
                user_id=user_id,
                detail=detail,
            )
        )

    def actions(self, task_id=None):
        return [e["action"] for e in self.entries if task_id is None or e["task_id"] == task_id]


class FakeUnitOfWork(AbstractUnitOfWork):
    def __init__(self, tasks=None, task_events=None, audit_log=None):
        self.tasks = tasks or FakeTaskRepository()
        self.task_events = task_events or FakeEventRepository()
        self.audit_log = audit_log or FakeAuditLog()
        self.commits = 0

    def _commit(self):
        self.commits += 1

    def rollback(self):
        pass


def make_task(
    task_id="task-1",
    pickup=PICKUP_POINT,
    destination=None,
    radius=100.0,
    start=WINDOW_START,
    end=WINDOW_END,
    status=model.TaskStatus.PENDING,
    assigned_user_id="agent-1",
    exam_type=model.ExamType.REGULAR,
):
    return model.Task(
        task_id=task_id,
        sealed_pack_code="SP-2024-0001",
        source_location="District Treasury",
        destination_location="Exam Centre 12",
        assigned_user_id=assigned_user_id,
        scheduled_start=start,
        scheduled_end=end,
        pickup_latitude=pickup[0] if pickup else None,
        pickup_longitude=pickup[1] if pickup else None,
        destination_latitude=destination[0] if destination else None,
        destination_longitude=destination[1] if destination else None,
        geofence_radius_meters=radius,
        exam_type=exam_type,
        status=status,
        created_at=WINDOW_START,
    )


def next_message(pubsub):
    """First non-subscribe message on a pubsub, or None."""
    for _ in range(10):
        message = pubsub.get_message(timeout=0.1)
        if message:
            return message
    return None
