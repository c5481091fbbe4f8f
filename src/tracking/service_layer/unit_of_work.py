# pylint: disable=attribute-defined-outside-init
from __future__ import annotations
import abc
import logging
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session


import config
from tracking.adapters import repository
from tracking.domain import model
from tracking.domain.exceptions import DuplicateEventError

logger = logging.getLogger(__name__)

UNIQUE_EVENT_CONSTRAINT_MARKERS = (
    "uq_task_events_task_id_event_type",            # PostgreSQL
    "task_events.task_id, task_events.event_type",  # SQLite
)


class AbstractUnitOfWork(abc.ABC):
    tasks: repository.AbstractTaskRepository
    task_events: repository.AbstractEventRepository
    audit_log: repository.AbstractAuditLog

    def __enter__(self) -> AbstractUnitOfWork:
        return self

    def __exit__(self, *args):
        self.rollback()

    def commit(self):
        self._commit()

    def collect_new_events(self):
        for task in self.tasks.seen:
            while task.events:
                yield task.events.pop(0)

    @abc.abstractmethod
    def _commit(self):
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self):
        raise NotImplementedError


DEFAULT_SESSION_FACTORY = sessionmaker(
    bind=create_engine(
        config.get_postgres_uri(),
        isolation_level="READ COMMITTED",
    ),
    expire_on_commit=False,
)

class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    def __init__(self, session_factory=DEFAULT_SESSION_FACTORY):
        self.session_factory = session_factory

    def __enter__(self):
        self.session = self.session_factory()  # type: Session
        self.tasks = repository.SqlAlchemyTaskRepository(self.session)
        self.task_events = repository.SqlAlchemyEventRepository(self.session)
        self.audit_log = repository.SqlAlchemyAuditLog(self.session)
        return super().__enter__()

    def __exit__(self, *args):
        # loaded objects leave the unit of work detached but still readable
        self.session.expunge_all()
        super().__exit__(*args)
        self.session.close()

    def _commit(self):
        pending_events = [obj for obj in self.session.new if isinstance(obj, model.TaskEvent)]
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            if pending_events and _is_event_uniqueness_violation(e):
                event = pending_events[0]
                logger.warning(
                    f"Concurrent submission of {event.event_type.value} for task {event.task_id} lost the race"
                )
                raise DuplicateEventError(event.task_id, event.event_type) from e
            raise

    def rollback(self):
        self.session.rollback()


def _is_event_uniqueness_violation(error: IntegrityError) -> bool:
    message = str(error.orig)
    return any(marker in message for marker in UNIQUE_EVENT_CONSTRAINT_MARKERS)
