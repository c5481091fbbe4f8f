"""
Delivery tracking engine - the single entry point for event submissions.

Flow of submit_event:
1. Validate input (nothing is persisted for malformed input)
2. Serialize on the task: in-process lock plus a row lock in the database
3. Load the task (NotFoundError)
4. Sequencing check (TaskLockedError / DuplicateEventError)
5. Geofence check against the pickup point (PICKUP, TRANSIT) or destination (FINAL)
6. Time window audit
7. State machine transition
8. Persist event and task status in one commit
"""
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional
from uuid import uuid4

import config
from tracking.domain import validation
from tracking.domain.exceptions import NotAssignedError, NotFoundError
from tracking.domain.geo import check_geofence
from tracking.domain.model import Coordinate, EventType, Task, TaskEvent, TaskStatus, utc
from tracking.domain.sequencing import EventSequencer
from tracking.domain.state_machine import TaskStateMachine, Transition
from tracking.domain.time_window import TimeWindowAuditor
from tracking.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


class _TaskLock:
    __slots__ = ("lock", "holders")

    def __init__(self):
        self.lock = threading.Lock()
        self.holders = 0


class TaskLocks:
    """
    Per-task serialization points.

    Two submissions for the same task run one after the other; submissions for
    different tasks never share a lock. Entries are dropped once unused.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}  # type: Dict[str, _TaskLock]

    @contextmanager
    def hold(self, task_id):
        with self._guard:
            entry = self._locks.get(task_id)
            if entry is None:
                entry = self._locks[task_id] = _TaskLock()
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._locks[task_id]

    def active(self) -> int:
        with self._guard:
            return len(self._locks)


DEFAULT_TASK_LOCKS = TaskLocks()


@dataclass(frozen=True)
class SubmissionResult:
    task: Task
    event: TaskEvent
    transition: Transition


class DeliveryTrackingEngine:

    def __init__(
        self,
        uow: AbstractUnitOfWork,
        locks: Optional[TaskLocks] = None,
        enforce_assignee: bool = False,
        strict_ordering: bool = False,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.uow = uow
        self.locks = locks if locks is not None else DEFAULT_TASK_LOCKS
        self.enforce_assignee = enforce_assignee
        self.sequencer = EventSequencer(strict_ordering=strict_ordering)
        self.auditor = TimeWindowAuditor()
        self.state_machine = TaskStateMachine()
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    @classmethod
    def from_config(cls, uow: AbstractUnitOfWork, **overrides) -> "DeliveryTrackingEngine":
        policy = config.get_tracking_policy()
        options = dict(
            enforce_assignee=policy["enforce_assignee"],
            strict_ordering=policy["strict_ordering"],
        )
        options.update(overrides)
        return cls(uow, **options)

    def submit_event(
        self,
        task_id: str,
        event_type,
        recorded_at: datetime,
        coordinate: Optional[Coordinate],
        submitted_by: str,
        evidence_hash: Optional[str] = None,
    ) -> SubmissionResult:
        """
        Record a PICKUP / TRANSIT / FINAL event for a task.

        Geofence and time window violations are not errors: the event is
        recorded and the task moves to SUSPICIOUS.

        Raises:
            ValidationError: malformed input
            NotFoundError: task does not exist
            NotAssignedError: submitter is not the assignee (when enforced)
            TaskLockedError: FINAL already recorded
            DuplicateEventError: event type already recorded, including a
                concurrent submission that committed first
            OutOfOrderEventError: prerequisite missing (strict ordering only)
        """
        validation.validate_submission(
            task_id,
            event_type,
            recorded_at,
            coordinate.latitude if coordinate else None,
            coordinate.longitude if coordinate else None,
            submitted_by,
            evidence_hash,
        )
        event_type = EventType(event_type)
        recorded_at = utc(recorded_at)

        with self.locks.hold(task_id):
            with self.uow:
                task = self.uow.tasks.get_for_update(task_id)
                if task is None:
                    raise NotFoundError(task_id)

                if self.enforce_assignee and task.assigned_user_id != submitted_by:
                    raise NotAssignedError(task_id, submitted_by)

                recorded = self.uow.task_events.recorded_types(task_id)
                task_locked = EventType.FINAL in recorded or task.status == TaskStatus.COMPLETED
                self.sequencer.check(task_id, event_type, recorded, task_locked)

                geofence = check_geofence(
                    task.reference_point(event_type),
                    task.geofence_radius_meters,
                    coordinate,
                )
                window = self.auditor.audit(task, recorded_at)
                transition = self.state_machine.transition(
                    task_id, task.status, event_type, geofence.ok, window.on_time
                )

                event = TaskEvent(
                    event_id=str(uuid4()),
                    task_id=task_id,
                    event_type=event_type,
                    recorded_at=recorded_at,
                    latitude=coordinate.latitude,
                    longitude=coordinate.longitude,
                    recorded_by=submitted_by,
                    received_at=utc(self.clock()),
                    geofence_ok=geofence.ok,
                    on_time=window.on_time,
                    distance_meters=geofence.distance_meters,
                    evidence_hash=evidence_hash,
                )
                self.uow.task_events.add(event)
                task.record_event(event, transition)
                self.uow.commit()

        logger.info(
            f"Recorded {event_type.value} for task {task_id}: "
            f"geofence_ok={geofence.ok} on_time={window.on_time} "
            f"status {transition.previous.value} -> {transition.current.value}"
        )
        if not geofence.skipped and not geofence.ok:
            logger.warning(
                f"Task {task_id} {event_type.value} recorded {geofence.distance_meters:.1f}m "
                f"from reference point (radius {task.geofence_radius_meters}m)"
            )
        return SubmissionResult(task=task, event=event, transition=transition)

    def get_task_timeline(self, task_id: str) -> List[TaskEvent]:
        """
        Events of a task ordered by client capture time, for audit display.

        Raises:
            NotFoundError: task does not exist
        """
        with self.uow:
            if self.uow.tasks.get(task_id) is None:
                raise NotFoundError(task_id)
            return list(self.uow.task_events.list_for_task(task_id))

    def allowed_event_types(self, task_id: str) -> List[EventType]:
        """
        Event types the task still accepts, in chain-of-custody order.

        Raises:
            NotFoundError: task does not exist
        """
        with self.uow:
            task = self.uow.tasks.get(task_id)
            if task is None:
                raise NotFoundError(task_id)
            recorded = self.uow.task_events.recorded_types(task_id)
            task_locked = EventType.FINAL in recorded or task.status == TaskStatus.COMPLETED
            allowed = self.sequencer.next_allowed(recorded, task_locked)
            return [event_type for event_type in EventType if event_type in allowed]
