"""
Storage ports for tasks and their events.

Contract for implementations:
- at most one event per (task_id, event_type); a second insert for the same
  pair must fail at commit, never overwrite
- a task row and the event rows added in the same unit of work are committed
  atomically
"""
import abc
from datetime import datetime, timezone
from typing import List, Optional, Set

from sqlalchemy import insert, select

from tracking.adapters import orm
from tracking.domain import model

import logging

logger = logging.getLogger(__name__)


class AbstractTaskRepository(abc.ABC):
    def __init__(self):
        self.seen = set()  # type: Set[model.Task]

    def add(self, task: model.Task) -> str:
        self._add(task)
        self.seen.add(task)
        return task.task_id

    def get(self, task_id) -> Optional[model.Task]:
        task = self._get(task_id)
        if task:
            self.seen.add(task)
        return task

    def get_for_update(self, task_id) -> Optional[model.Task]:
        """Load a task and hold its row lock until the unit of work ends."""
        task = self._get_for_update(task_id)
        if task:
            self.seen.add(task)
        return task

    @abc.abstractmethod
    def _add(self, task: model.Task):
        raise NotImplementedError

    @abc.abstractmethod
    def _get(self, task_id) -> Optional[model.Task]:
        raise NotImplementedError

    @abc.abstractmethod
    def _get_for_update(self, task_id) -> Optional[model.Task]:
        raise NotImplementedError


class AbstractEventRepository(abc.ABC):

    @abc.abstractmethod
    def add(self, event: model.TaskEvent) -> str:
        raise NotImplementedError

    @abc.abstractmethod
    def exists(self, task_id, event_type: model.EventType) -> bool:
        raise NotImplementedError

    @abc.abstractmethod
    def recorded_types(self, task_id) -> Set[model.EventType]:
        raise NotImplementedError

    @abc.abstractmethod
    def list_for_task(self, task_id) -> List[model.TaskEvent]:
        """Events of a task ordered by recorded_at, then received_at."""
        raise NotImplementedError


class AbstractAuditLog(abc.ABC):

    @abc.abstractmethod
    def add(self, action: str, entity_type: str, entity_id=None, task_id=None, user_id=None, detail=None):
        raise NotImplementedError


class SqlAlchemyTaskRepository(AbstractTaskRepository):
    def __init__(self, session):
        super().__init__()
        self.session = session

    def _add(self, task):
        self.session.add(task)

    def _get(self, task_id):
        return self.session.query(model.Task).filter_by(task_id=task_id).first()

    def _get_for_update(self, task_id):
        # SELECT ... FOR UPDATE on PostgreSQL; SQLite ignores the clause and
        # serializes writers on its own
        return self.session.execute(
            select(model.Task).filter_by(task_id=task_id).with_for_update()
        ).scalars().first()


class SqlAlchemyEventRepository(AbstractEventRepository):
    def __init__(self, session):
        self.session = session

    def add(self, event):
        self.session.add(event)
        return event.event_id

    def exists(self, task_id, event_type):
        return self.session.query(model.TaskEvent.event_id)\
            .filter_by(task_id=task_id, event_type=event_type)\
            .first() is not None

    def recorded_types(self, task_id):
        rows = self.session.query(model.TaskEvent.event_type)\
            .filter_by(task_id=task_id)\
            .all()
        return {row[0] for row in rows}

    def list_for_task(self, task_id):
        return self.session.query(model.TaskEvent)\
            .filter_by(task_id=task_id)\
            .order_by(model.TaskEvent.recorded_at, model.TaskEvent.received_at)\
            .all()


class SqlAlchemyAuditLog(AbstractAuditLog):
    def __init__(self, session):
        self.session = session

    def add(self, action, entity_type, entity_id=None, task_id=None, user_id=None, detail=None):
        self.session.execute(
            insert(orm.audit_logs).values(
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                task_id=task_id,
                user_id=user_id,
                detail=detail,
                created_at=datetime.now(timezone.utc),
            ),
        )
