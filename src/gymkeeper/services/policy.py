"""Table-driven authorization.

Every route names the ``(resource, action)`` pair it needs and asks
:func:`authorize` (or :func:`require`) for a decision. Evaluation order:

1. absolute denials (self-deletion, role changes by non super-admins,
   changes to super-admin accounts by anyone else),
2. role allow-list,
3. ownership predicates (assigned coach, the client themselves, ...),
4. deny.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..errors import Unauthorized
from ..models.client import Client
from ..models.session import TrainingSession
from ..models.user import ADMIN_ROLES, STAFF_ROLES, Role, User

logger = logging.getLogger(__name__)

DEFAULT_DENY_REASON = "Access denied. Insufficient permissions."


class Resource(str, Enum):
    USER = "user"
    CLIENT = "client"
    SESSION = "session"
    PLAN = "plan"
    STATISTICS = "statistics"


class Action(str, Enum):
    LIST = "list"
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    COMPLETE = "complete"  # Session status -> completed
    UPDATE_DAYS_OFF = "update_days_off"
    RESET_PASSWORD = "reset_password"
    LIST_OWN = "list_own"  # A coach's own clients and sessions


@dataclass(frozen=True)
class Caller:
    """Authenticated identity attached to a request.

    For staff, ``id`` is the user id. For clients, ``id`` is the client's
    own record id, which is what ownership checks compare against.
    """

    id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)

Ownership = Callable[[Caller, Any], bool]


def is_self(caller: Caller, target: Any) -> bool:
    return caller.is_staff and isinstance(target, User) and target.id == caller.id


def is_assigned_coach(caller: Caller, target: Any) -> bool:
    return (
        caller.role == Role.COACH
        and isinstance(target, Client)
        and target.is_coached_by(caller.id)
    )


def is_client_self(caller: Caller, target: Any) -> bool:
    return caller.role == Role.CLIENT and isinstance(target, Client) and target.id == caller.id


def is_session_coach(caller: Caller, target: Any) -> bool:
    return (
        caller.role == Role.COACH
        and isinstance(target, TrainingSession)
        and target.involves(coach_id=caller.id)
    )


def is_session_client(caller: Caller, target: Any) -> bool:
    return (
        caller.role == Role.CLIENT
        and isinstance(target, TrainingSession)
        and target.involves(client_id=caller.id)
    )


@dataclass(frozen=True)
class Rule:
    roles: frozenset[Role]
    ownership: tuple[Ownership, ...] = ()
    reason: str = DEFAULT_DENY_REASON


ALL_ROLES = frozenset(Role)
ADMINS_AND_COACHES = ADMIN_ROLES | {Role.COACH}

POLICY: dict[tuple[Resource, Action], Rule] = {
    (Resource.USER, Action.LIST): Rule(ADMIN_ROLES),
    (Resource.USER, Action.CREATE): Rule(
        ADMIN_ROLES, reason="Access denied. Only administrators can create users."
    ),
    (Resource.USER, Action.READ): Rule(
        ADMIN_ROLES, (is_self,), "Access denied. You can only view your own profile."
    ),
    (Resource.USER, Action.UPDATE): Rule(
        ADMIN_ROLES, (is_self,), "Access denied. You can only update your own profile."
    ),
    (Resource.USER, Action.DELETE): Rule(ADMIN_ROLES),
    (Resource.USER, Action.UPDATE_DAYS_OFF): Rule(
        ADMIN_ROLES, (is_self,), "Access denied. You can only update your own days off."
    ),
    (Resource.USER, Action.RESET_PASSWORD): Rule(ADMIN_ROLES),
    (Resource.USER, Action.LIST_OWN): Rule(
        frozenset({Role.COACH}), reason="Access denied. This route is for coaches only."
    ),
    # Coaches may list, but only their assigned clients are returned
    (Resource.CLIENT, Action.LIST): Rule(ADMINS_AND_COACHES),
    (Resource.CLIENT, Action.READ): Rule(
        ADMIN_ROLES,
        (is_assigned_coach, is_client_self),
        "Access denied. You can only view your own profile or need admin permissions.",
    ),
    (Resource.CLIENT, Action.CREATE): Rule(ADMIN_ROLES),
    (Resource.CLIENT, Action.UPDATE): Rule(ADMIN_ROLES),
    (Resource.CLIENT, Action.DELETE): Rule(ADMIN_ROLES),
    # Coaches may list, but only their own sessions are returned
    (Resource.SESSION, Action.LIST): Rule(ADMINS_AND_COACHES),
    (Resource.SESSION, Action.READ): Rule(
        ADMIN_ROLES,
        (is_session_coach, is_session_client),
        "Access denied. You can only view sessions you are involved in "
        "or need admin permissions.",
    ),
    (Resource.SESSION, Action.CREATE): Rule(ADMIN_ROLES),
    (Resource.SESSION, Action.UPDATE): Rule(
        ADMIN_ROLES, reason="You can only mark sessions as completed."
    ),
    (Resource.SESSION, Action.DELETE): Rule(ADMIN_ROLES),
    (Resource.SESSION, Action.COMPLETE): Rule(
        ADMIN_ROLES,
        (is_session_coach, is_session_client),
        "Access denied. You can only update sessions you are involved in.",
    ),
    (Resource.PLAN, Action.LIST): Rule(ALL_ROLES),
    (Resource.PLAN, Action.READ): Rule(ALL_ROLES),
    (Resource.PLAN, Action.CREATE): Rule(ADMIN_ROLES),
    (Resource.PLAN, Action.UPDATE): Rule(ADMIN_ROLES),
    (Resource.PLAN, Action.DELETE): Rule(ADMIN_ROLES),
    (Resource.STATISTICS, Action.READ): Rule(
        frozenset({Role.SUPER_ADMIN}),
        reason="Access denied. This route is for super administrators only.",
    ),
}


def _absolute_denial(
    caller: Caller,
    resource: Resource,
    action: Action,
    target: Any,
    changes: dict,
) -> Decision | None:
    """Denials no role or ownership can override."""
    if resource != Resource.USER:
        return None

    if action == Action.DELETE and isinstance(target, User) and target.id == caller.id:
        return Decision(False, "You cannot delete your own account.")

    if caller.role == Role.SUPER_ADMIN:
        return None

    if (
        action in (Action.UPDATE, Action.DELETE, Action.RESET_PASSWORD, Action.UPDATE_DAYS_OFF)
        and isinstance(target, User)
        and target.role == Role.SUPER_ADMIN
    ):
        return Decision(False, "Only super admin can modify super admin accounts.")

    requested_role = changes.get("role")
    if requested_role is None:
        return None
    requested_role = Role(requested_role)

    if action == Action.CREATE and requested_role in ADMIN_ROLES:
        return Decision(False, "Only super admin can create admin users.")

    if action == Action.UPDATE:
        current_role = target.role if isinstance(target, User) else None
        if requested_role != current_role:
            return Decision(False, "Only super admin can change user roles.")

    return None


def authorize(
    caller: Caller,
    resource: Resource,
    action: Action,
    target: Any = None,
    changes: dict | None = None,
) -> Decision:
    """Decide whether ``caller`` may perform ``action`` on ``target``.

    Args:
        caller: The authenticated identity
        resource: Resource type being accessed
        action: Operation being attempted
        target: The loaded document, for ownership checks
        changes: Request payload, for rules that depend on it

    Returns:
        A Decision; absence of an explicit allow is a deny.
    """
    denial = _absolute_denial(caller, resource, action, target, changes or {})
    if denial is not None:
        return denial

    rule = POLICY.get((resource, action))
    if rule is None:
        return Decision(False, DEFAULT_DENY_REASON)

    if caller.role in rule.roles:
        return ALLOW

    if target is not None and any(check(caller, target) for check in rule.ownership):
        return ALLOW

    return Decision(False, rule.reason)


def require(
    caller: Caller,
    resource: Resource,
    action: Action,
    target: Any = None,
    changes: dict | None = None,
) -> None:
    """Like :func:`authorize`, but raise ``Unauthorized`` on deny."""
    decision = authorize(caller, resource, action, target, changes)
    if not decision:
        logger.warning(
            f"Denied {caller.role.value} {caller.id}: {action.value} {resource.value} "
            f"({decision.reason})"
        )
        raise Unauthorized(decision.reason)
