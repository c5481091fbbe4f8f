"""Errors raised by the delivery tracking engine."""


class TrackingError(Exception):
    """Base class for caller-visible tracking errors."""
    pass


class NotFoundError(TrackingError):
    """Referenced task does not exist."""

    def __init__(self, task_id):
        super().__init__(f"Task with ID '{task_id}' not found")
        self.task_id = task_id


class TaskLockedError(TrackingError):
    """A FINAL event is already recorded; the task accepts no further events."""

    def __init__(self, task_id):
        super().__init__(
            f"Task '{task_id}' already has a FINAL event. No more events can be recorded."
        )
        self.task_id = task_id


class DuplicateEventError(TrackingError):
    """The submitted event type already has a recorded event for this task."""

    def __init__(self, task_id, event_type):
        super().__init__(
            f"Event type '{getattr(event_type, 'value', event_type)}' has already "
            f"been recorded for task '{task_id}'"
        )
        self.task_id = task_id
        self.event_type = event_type


class OutOfOrderEventError(TrackingError):
    """Strict ordering is enabled and a prerequisite event is missing."""

    def __init__(self, task_id, event_type, missing):
        super().__init__(
            f"Event type '{event_type.value}' for task '{task_id}' requires "
            f"'{missing.value}' to be recorded first"
        )
        self.task_id = task_id
        self.event_type = event_type
        self.missing = missing


class ValidationError(TrackingError):
    """Malformed input, rejected before any persistence attempt."""

    def __init__(self, errors):
        if isinstance(errors, str):
            errors = [errors]
        super().__init__("; ".join(errors))
        self.errors = list(errors)


class NotAssignedError(TrackingError):
    """Submitter is not the agent assigned to the task."""

    def __init__(self, task_id, user_id):
        super().__init__(f"User '{user_id}' is not assigned to task '{task_id}'")
        self.task_id = task_id
        self.user_id = user_id


class AuthorizationError(TrackingError):
    """Caller role may not perform the requested operation."""

    def __init__(self, role, operation):
        super().__init__(f"Role '{role}' is not allowed to {operation}")
        self.role = role
        self.operation = operation
