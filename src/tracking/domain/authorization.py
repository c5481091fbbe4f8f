"""
Role-based authorization policy, evaluated once per request at the API boundary.

The engine itself never consults roles: it trusts the identity it is handed.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet

from tracking.domain.exceptions import AuthorizationError


class Role(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    DELIVERY = "DELIVERY"


class Operation(str, Enum):
    CREATE_TASK = "create_task"
    VIEW_TASK = "view_task"
    VIEW_AUDIT_LOG = "view_audit_log"
    SUBMIT_EVENT = "submit_event"
    VIEW_TIMELINE = "view_timeline"
    VIEW_ALLOWED_EVENTS = "view_allowed_events"


DEFAULT_PERMISSIONS = {
    Role.SUPER_ADMIN: frozenset({
        Operation.CREATE_TASK,
        Operation.VIEW_TASK,
        Operation.VIEW_AUDIT_LOG,
        Operation.VIEW_TIMELINE,
    }),
    Role.ADMIN: frozenset({
        Operation.CREATE_TASK,
        Operation.VIEW_TASK,
        Operation.VIEW_AUDIT_LOG,
        Operation.VIEW_TIMELINE,
    }),
    Role.DELIVERY: frozenset({
        Operation.SUBMIT_EVENT,
        Operation.VIEW_TIMELINE,
        Operation.VIEW_ALLOWED_EVENTS,
    }),
}


@dataclass(frozen=True)
class CallerIdentity:
    """Pre-authenticated caller, resolved by the identity directory upstream."""
    user_id: str
    role: str


@dataclass
class AuthorizationPolicy:
    permissions: Dict[Role, FrozenSet[Operation]] = field(
        default_factory=lambda: dict(DEFAULT_PERMISSIONS)
    )

    def allows(self, role, operation: Operation) -> bool:
        try:
            role = Role(role)
        except ValueError:
            return False
        return operation in self.permissions.get(role, frozenset())

    def authorize(self, caller: CallerIdentity, operation: Operation) -> None:
        if not self.allows(caller.role, operation):
            raise AuthorizationError(caller.role, operation.value)
