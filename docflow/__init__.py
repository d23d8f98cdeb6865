"""
Document-lifecycle workflow engine.

Workflows are graphs of States joined by Transitions (state, action, next
state) with user and group grants. Everything is reached through a
WorkflowRegistry bound to a StorageGateway.
"""

from .errors import (
    WorkflowError,
    ValidationError,
    NotFoundError,
    UsageConflictError,
    PersistenceError,
)
from .hooks import (
    DENIED,
    Denied,
    FilterHookRegistry,
    ON_FILTER_TRANSITION_GROUPS,
    ON_FILTER_TRANSITION_USERS,
)
from .identity import Group, IdentityResolver, StaticIdentityResolver, User
from .models.status import DocumentStatus
from .storage import SQLModelGateway, StorageGateway
from .entities import (
    Action,
    State,
    Transition,
    TransitionGroup,
    TransitionUser,
    Workflow,
    WorkflowLog,
)
from .cycles import find_cycle
from .registry import WorkflowRegistry

__all__ = [
    "WorkflowError", "ValidationError", "NotFoundError", "UsageConflictError", "PersistenceError",
    "DENIED", "Denied", "FilterHookRegistry", "ON_FILTER_TRANSITION_GROUPS", "ON_FILTER_TRANSITION_USERS",
    "Group", "IdentityResolver", "StaticIdentityResolver", "User",
    "DocumentStatus",
    "SQLModelGateway", "StorageGateway",
    "Action", "State", "Transition", "TransitionGroup", "TransitionUser", "Workflow", "WorkflowLog",
    "find_cycle",
    "WorkflowRegistry",
]
