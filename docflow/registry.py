"""
Workflow Registry
Single authoritative owner of every Workflow, State, Action and Transition
handle. Entities refer to each other by id and resolve through here, and
all caches (transition sets per workflow, grant lists per transition) live
here so one invalidation is seen by every caller.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, UTC
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from sqlalchemy import delete, insert, or_, select, update

from .config import settings
from .errors import PersistenceError, ValidationError
from .hooks import (
    FilterHookRegistry,
    FilterResult,
    ON_FILTER_TRANSITION_GROUPS,
    ON_FILTER_TRANSITION_USERS,
)
from .identity import IdentityResolver, User
from .models import (
    ActionRow,
    DocumentContentWorkflowRow,
    MandatoryWorkflowRow,
    StateRow,
    TransitionGroupRow,
    TransitionRow,
    TransitionUserRow,
    WorkflowLogRow,
    WorkflowRow,
)
from .models.status import DocumentStatus
from .storage import StorageGateway
from .entities import (
    Action,
    State,
    Transition,
    TransitionGroup,
    TransitionUser,
    Workflow,
    WorkflowLog,
)

logger = logging.getLogger(__name__)

WORKFLOWS = WorkflowRow.__table__
STATES = StateRow.__table__
ACTIONS = ActionRow.__table__
TRANSITIONS = TransitionRow.__table__
TRANSITION_USERS = TransitionUserRow.__table__
TRANSITION_GROUPS = TransitionGroupRow.__table__
MANDATORY = MandatoryWorkflowRow.__table__
DOCUMENT_CONTENTS = DocumentContentWorkflowRow.__table__
LOG = WorkflowLogRow.__table__


class WorkflowRegistry:
    """Arena of workflow entities backed by a StorageGateway."""

    def __init__(
        self,
        gateway: StorageGateway,
        identity: IdentityResolver,
        hooks: Optional[FilterHookRegistry] = None,
        default_min_users: Optional[int] = None,
    ):
        self.gateway = gateway
        self.identity = identity
        self.hooks = hooks if hooks is not None else FilterHookRegistry()
        if default_min_users is None:
            default_min_users = settings.default_min_users
        if int(default_min_users) < 1:
            raise ValidationError(f"default_min_users must be at least 1, got {default_min_users}")
        self.default_min_users = int(default_min_users)

        self._workflows: Dict[int, Workflow] = {}
        self._states: Dict[int, State] = {}
        self._actions: Dict[int, Action] = {}
        self._transitions: Dict[int, Transition] = {}

        self._transition_sets: Dict[int, Dict[int, Transition]] = {}
        # (hook registry version, filtered grants)
        self._user_grants: Dict[int, Tuple[int, Tuple[TransitionUser, ...]]] = {}
        self._group_grants: Dict[int, Tuple[int, Tuple[TransitionGroup, ...]]] = {}

    # ==================================================================
    # gateway helpers
    # ==================================================================

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run the block as one unit of work; any exception rolls it back."""
        self.gateway.begin_transaction()
        try:
            yield
        except BaseException:
            self.gateway.rollback_transaction()
            raise
        try:
            self.gateway.commit_transaction()
        except Exception as e:
            self.gateway.rollback_transaction()
            raise PersistenceError(f"Commit failed: {e}") from e

    def write(self, statement: Any) -> None:
        if not self.gateway.execute_write(statement):
            raise PersistenceError(f"Write to {getattr(statement.table, 'name', '?')} failed")

    def query(self, statement: Any) -> List[Mapping[str, Any]]:
        rows = self.gateway.execute_query(statement)
        if rows is None:
            raise PersistenceError("Query failed")
        return rows

    def insert(self, table: Any, **values: Any) -> int:
        """Insert one row and return its generated id."""
        self.write(insert(table).values(**values))
        new_id = self.gateway.last_insert_id(table.name)
        if new_id is None:
            raise PersistenceError(f"No id generated for {table.name}")
        return new_id

    def update_field(self, table: Any, row_id: int, **values: Any) -> None:
        self.write(update(table).where(table.c.id == row_id).values(**values))

    # ==================================================================
    # states
    # ==================================================================

    def add_state(
        self,
        name: str,
        max_time: int = 0,
        precondition: Optional[str] = None,
        document_status: Optional[DocumentStatus] = None,
    ) -> State:
        if not name:
            raise ValidationError("State name is required")
        state_id = self.insert(
            STATES,
            name=name,
            max_time=int(max_time),
            precondition=precondition,
            document_status=int(document_status) if document_status is not None else None,
        )
        logger.info("Added workflow state %s (%s)", state_id, name)
        return self.get_state(state_id)

    def get_state(self, state_id: int) -> Optional[State]:
        if state_id in self._states:
            return self._states[state_id]
        rows = self.query(select(STATES).where(STATES.c.id == state_id))
        return self._state_from_row(rows[0]) if rows else None

    def get_state_by_name(self, name: str) -> Optional[State]:
        rows = self.query(select(STATES).where(STATES.c.name == name).order_by(STATES.c.id))
        return self._state_from_row(rows[0]) if rows else None

    def get_states(self) -> List[State]:
        rows = self.query(select(STATES).order_by(STATES.c.name, STATES.c.id))
        return [self._state_from_row(r) for r in rows]

    def _state_from_row(self, row: Mapping[str, Any]) -> State:
        state = self._states.get(row["id"])
        if state is None:
            state = State(
                self,
                row["id"],
                row["name"],
                max_time=row["max_time"] or 0,
                precondition=row["precondition"],
                document_status=row["document_status"],
            )
            self._states[state.id] = state
        return state

    def forget_state(self, state_id: int) -> None:
        self._states.pop(state_id, None)

    # ==================================================================
    # actions
    # ==================================================================

    def add_action(self, name: str) -> Action:
        if not name:
            raise ValidationError("Action name is required")
        action_id = self.insert(ACTIONS, name=name)
        logger.info("Added workflow action %s (%s)", action_id, name)
        return self.get_action(action_id)

    def get_action(self, action_id: int) -> Optional[Action]:
        if action_id in self._actions:
            return self._actions[action_id]
        rows = self.query(select(ACTIONS).where(ACTIONS.c.id == action_id))
        return self._action_from_row(rows[0]) if rows else None

    def get_action_by_name(self, name: str) -> Optional[Action]:
        rows = self.query(select(ACTIONS).where(ACTIONS.c.name == name).order_by(ACTIONS.c.id))
        return self._action_from_row(rows[0]) if rows else None

    def get_actions(self) -> List[Action]:
        rows = self.query(select(ACTIONS).order_by(ACTIONS.c.name, ACTIONS.c.id))
        return [self._action_from_row(r) for r in rows]

    def _action_from_row(self, row: Mapping[str, Any]) -> Action:
        action = self._actions.get(row["id"])
        if action is None:
            action = Action(self, row["id"], row["name"])
            self._actions[action.id] = action
        return action

    def forget_action(self, action_id: int) -> None:
        self._actions.pop(action_id, None)

    # ==================================================================
    # workflows
    # ==================================================================

    def add_workflow(self, name: str, init_state: State, layout_data: Optional[str] = None) -> Workflow:
        if not name:
            raise ValidationError("Workflow name is required")
        if init_state is None:
            raise ValidationError("A workflow needs an initial state")
        workflow_id = self.insert(WORKFLOWS, name=name, init_state_id=init_state.id, layout_data=layout_data)
        logger.info("Added workflow %s (%s)", workflow_id, name, extra={"workflow_id": workflow_id})
        return self.get_workflow(workflow_id)

    def get_workflow(self, workflow_id: int) -> Optional[Workflow]:
        if workflow_id in self._workflows:
            return self._workflows[workflow_id]
        rows = self.query(select(WORKFLOWS).where(WORKFLOWS.c.id == workflow_id))
        return self._workflow_from_row(rows[0]) if rows else None

    def get_workflow_by_name(self, name: str) -> Optional[Workflow]:
        rows = self.query(select(WORKFLOWS).where(WORKFLOWS.c.name == name).order_by(WORKFLOWS.c.id))
        return self._workflow_from_row(rows[0]) if rows else None

    def get_workflows(self) -> List[Workflow]:
        rows = self.query(select(WORKFLOWS).order_by(WORKFLOWS.c.name, WORKFLOWS.c.id))
        return [self._workflow_from_row(r) for r in rows]

    def _workflow_from_row(self, row: Mapping[str, Any]) -> Workflow:
        workflow = self._workflows.get(row["id"])
        if workflow is None:
            workflow = Workflow(self, row["id"], row["name"], row["init_state_id"], row["layout_data"])
            self._workflows[workflow.id] = workflow
        return workflow

    def forget_workflow(self, workflow_id: int) -> None:
        for transition_id in [t.id for t in self._transitions.values() if t.workflow_id == workflow_id]:
            self.forget_transition(transition_id)
        self._transition_sets.pop(workflow_id, None)
        self._workflows.pop(workflow_id, None)

    def workflow_is_used(self, workflow_id: int) -> bool:
        rows = self.query(
            select(DOCUMENT_CONTENTS.c.id).where(DOCUMENT_CONTENTS.c.workflow_id == workflow_id).limit(1)
        )
        return len(rows) > 0

    # ==================================================================
    # transitions
    # ==================================================================

    def transitions_for(self, workflow_id: int) -> Dict[int, Transition]:
        """The cached transition set of a workflow, loaded on first use."""
        cached = self._transition_sets.get(workflow_id)
        if cached is not None:
            return cached
        transitions = self.query_transitions(TRANSITIONS.c.workflow_id == workflow_id)
        loaded = {t.id: t for t in transitions}
        self._transition_sets[workflow_id] = loaded
        logger.debug("Loaded %d transitions", len(loaded), extra={"workflow_id": workflow_id})
        return loaded

    def invalidate_transitions(self, workflow_id: Optional[int]) -> None:
        if workflow_id is not None:
            self._transition_sets.pop(workflow_id, None)

    def query_transitions(self, *conditions: Any) -> List[Transition]:
        """Transitions matching all conditions, in id order, straight from storage."""
        stmt = select(TRANSITIONS).where(*conditions).order_by(TRANSITIONS.c.id)
        return [self.transition_from_row(r) for r in self.query(stmt)]

    def transitions_touching_state(self, state_id: int) -> List[Transition]:
        return self.query_transitions(
            or_(TRANSITIONS.c.from_state_id == state_id, TRANSITIONS.c.to_state_id == state_id)
        )

    def fetch_transition(self, transition_id: int, register: bool = True) -> Optional[Transition]:
        if register and transition_id in self._transitions:
            return self._transitions[transition_id]
        rows = self.query(select(TRANSITIONS).where(TRANSITIONS.c.id == transition_id))
        if not rows:
            return None
        return self.transition_from_row(rows[0], register=register)

    def transition_from_row(self, row: Mapping[str, Any], register: bool = True) -> Transition:
        existing = self._transitions.get(row["id"])
        if existing is not None:
            return existing
        # warm the arena so endpoints resolve without further queries
        self.get_state(row["from_state_id"])
        self.get_state(row["to_state_id"])
        self.get_action(row["action_id"])
        transition = Transition(
            self,
            row["id"],
            workflow_id=row["workflow_id"],
            from_state_id=row["from_state_id"],
            action_id=row["action_id"],
            to_state_id=row["to_state_id"],
            max_time=row["max_time"] or 0,
        )
        if register:
            self._transitions[transition.id] = transition
        return transition

    def adopt_transition(self, transition: Transition) -> None:
        self._transitions[transition.id] = transition

    def forget_transition(self, transition_id: int) -> None:
        transition = self._transitions.pop(transition_id, None)
        if transition is not None:
            cached = self._transition_sets.get(transition.workflow_id)
            if cached is not None:
                cached.pop(transition_id, None)
        self._user_grants.pop(transition_id, None)
        self._group_grants.pop(transition_id, None)

    def delete_grants_statements(self, transition_ids: Any) -> List[Any]:
        """Statements removing the user and group grants of the given transition ids."""
        return [
            delete(TRANSITION_USERS).where(TRANSITION_USERS.c.transition_id.in_(transition_ids)),
            delete(TRANSITION_GROUPS).where(TRANSITION_GROUPS.c.transition_id.in_(transition_ids)),
        ]

    # ==================================================================
    # grants
    # ==================================================================

    def transition_users(self, transition: Transition) -> FilterResult:
        cached = self._user_grants.get(transition.id)
        if cached is not None and cached[0] == self.hooks.version:
            return list(cached[1])

        rows = self.query(
            select(TRANSITION_USERS)
            .where(TRANSITION_USERS.c.transition_id == transition.id)
            .order_by(TRANSITION_USERS.c.id)
        )
        users = [
            TransitionUser(r["id"], transition.id, self.identity.resolve_user(r["user_id"]), r["user_id"])
            for r in rows
        ]
        result = self.hooks.dispatch(ON_FILTER_TRANSITION_USERS, transition, users)
        if isinstance(result, list):
            self._user_grants[transition.id] = (self.hooks.version, tuple(result))
            return list(result)
        return result

    def transition_groups(self, transition: Transition) -> FilterResult:
        cached = self._group_grants.get(transition.id)
        if cached is not None and cached[0] == self.hooks.version:
            return list(cached[1])

        rows = self.query(
            select(TRANSITION_GROUPS)
            .where(TRANSITION_GROUPS.c.transition_id == transition.id)
            .order_by(TRANSITION_GROUPS.c.id)
        )
        groups = [
            TransitionGroup(
                r["id"], transition.id, self.identity.resolve_group(r["group_id"]), r["group_id"], r["min_users"]
            )
            for r in rows
        ]
        result = self.hooks.dispatch(ON_FILTER_TRANSITION_GROUPS, transition, groups)
        if isinstance(result, list):
            self._group_grants[transition.id] = (self.hooks.version, tuple(result))
            return list(result)
        return result

    # ==================================================================
    # mandatory workflows
    # ==================================================================

    def add_mandatory_workflow(self, user: User, workflow: Workflow) -> None:
        if user is None or workflow is None:
            raise ValidationError("User and workflow are required")
        self.insert(MANDATORY, user_id=user.id, workflow_id=workflow.id)

    def get_mandatory_workflows(self, user: User) -> List[Workflow]:
        rows = self.query(
            select(MANDATORY.c.workflow_id).where(MANDATORY.c.user_id == user.id).order_by(MANDATORY.c.id)
        )
        workflows = (self.get_workflow(r["workflow_id"]) for r in rows)
        return [w for w in workflows if w is not None]

    # ==================================================================
    # workflow log
    # ==================================================================

    def log_transition(
        self,
        document_id: int,
        version: int,
        workflow: Workflow,
        user: User,
        transition: Transition,
        comment: str = "",
        date: Optional[datetime] = None,
    ) -> WorkflowLog:
        """
        Append the audit row for an executed transition.

        Called by the execution component right after it carried out the
        transition. Log rows are never updated or deleted.
        """
        if workflow is None or user is None or transition is None:
            raise ValidationError("Workflow, user and transition are required for a log entry")
        if date is None:
            date = datetime.now(UTC)
        elif date.tzinfo is None:
            # naive timestamps are taken as UTC
            date = date.replace(tzinfo=UTC)
        log_id = self.insert(
            LOG,
            document_id=document_id,
            version=version,
            workflow_id=workflow.id,
            user_id=user.id,
            transition_id=transition.id,
            date=date,
            comment=comment or "",
        )
        return WorkflowLog(log_id, document_id, version, workflow, user, transition, date, comment or "")

    def get_workflow_log(
        self,
        document_id: int,
        version: Optional[int] = None,
        transition: Optional[Transition] = None,
    ) -> List[WorkflowLog]:
        stmt = select(LOG).where(LOG.c.document_id == document_id)
        if version is not None:
            stmt = stmt.where(LOG.c.version == version)
        if transition is not None:
            stmt = stmt.where(LOG.c.transition_id == transition.id)
        rows = self.query(stmt.order_by(LOG.c.date, LOG.c.id))
        return [
            WorkflowLog(
                r["id"],
                r["document_id"],
                r["version"],
                self.get_workflow(r["workflow_id"]),
                self.identity.resolve_user(r["user_id"]),
                self.fetch_transition(r["transition_id"]),
                r["date"],
                r["comment"] or "",
            )
            for r in rows
        ]
