import logging
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Tuple, Union

from sqlalchemy import delete, select

from ..cycles import find_cycle
from ..errors import PersistenceError, UsageConflictError, ValidationError
from ..identity import Group, User
from ..models import (
    MandatoryWorkflowRow,
    TransitionGroupRow,
    TransitionRow,
    TransitionUserRow,
    WorkflowRow,
)

if TYPE_CHECKING:
    from ..registry import WorkflowRegistry
    from .action import Action
    from .state import State
    from .transition import Transition

logger = logging.getLogger(__name__)

WORKFLOWS = WorkflowRow.__table__
TRANSITIONS = TransitionRow.__table__
TRANSITION_USERS = TransitionUserRow.__table__
TRANSITION_GROUPS = TransitionGroupRow.__table__
MANDATORY = MandatoryWorkflowRow.__table__

GroupGrant = Union[Group, Tuple[Group, int]]


class Workflow:
    """
    A named directed graph of states with one initial state.

    The transition set is loaded lazily and cached by the registry; the
    navigation queries (next, previous, by states) always ask storage.
    """

    def __init__(
        self,
        registry: "WorkflowRegistry",
        id: int,
        name: str,
        init_state_id: Optional[int],
        layout_data: Optional[str] = None,
    ):
        self._registry = registry
        self.id = id
        self._name = name
        self.init_state_id = init_state_id
        self._layout_data = layout_data

    def __repr__(self) -> str:
        return f"Workflow(id={self.id!r}, name={self._name!r})"

    # ------------------------------------------------------------------
    # attributes
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    def set_name(self, name: str) -> None:
        if not name:
            raise ValidationError("Workflow name is required")
        self._registry.update_field(WORKFLOWS, self.id, name=name)
        self._name = name

    @property
    def init_state(self) -> Optional["State"]:
        if self.init_state_id is None:
            return None
        return self._registry.get_state(self.init_state_id)

    def set_init_state(self, state: "State") -> None:
        if state is None:
            raise ValidationError("Initial state is required")
        self._registry.update_field(WORKFLOWS, self.id, init_state_id=state.id)
        self.init_state_id = state.id

    @property
    def layout_data(self) -> Optional[str]:
        return self._layout_data

    def set_layout_data(self, layout_data: Optional[str]) -> None:
        self._registry.update_field(WORKFLOWS, self.id, layout_data=layout_data)
        self._layout_data = layout_data

    # ------------------------------------------------------------------
    # graph queries
    # ------------------------------------------------------------------

    def get_transitions(self) -> Dict[int, "Transition"]:
        """All transitions keyed by id. Raises PersistenceError if loading fails."""
        return self._registry.transitions_for(self.id)

    def get_states(self) -> Dict[int, "State"]:
        """Every state appearing as source or target of a transition."""
        states: Dict[int, "State"] = {}
        for transition in self.get_transitions().values():
            for state in (transition.from_state, transition.to_state):
                if state is not None and state.id not in states:
                    states[state.id] = state
        return states

    def get_transition(self, transition_id: int) -> Optional["Transition"]:
        return self.get_transitions().get(transition_id)

    def get_next_transitions(self, state: "State") -> List["Transition"]:
        """Transitions that may be triggered while in ``state``."""
        if state is None:
            raise ValidationError("State is required")
        return self._registry.query_transitions(
            TRANSITIONS.c.workflow_id == self.id,
            TRANSITIONS.c.from_state_id == state.id,
        )

    def get_previous_transitions(self, state: "State") -> List["Transition"]:
        """Transitions leading into ``state``."""
        if state is None:
            raise ValidationError("State is required")
        return self._registry.query_transitions(
            TRANSITIONS.c.workflow_id == self.id,
            TRANSITIONS.c.to_state_id == state.id,
        )

    def get_transitions_by_states(self, state: "State", next_state: "State") -> List["Transition"]:
        """Every transition from ``state`` to ``next_state``, parallel edges included."""
        if state is None or next_state is None:
            raise ValidationError("Both states are required")
        return self._registry.query_transitions(
            TRANSITIONS.c.workflow_id == self.id,
            TRANSITIONS.c.from_state_id == state.id,
            TRANSITIONS.c.to_state_id == next_state.id,
        )

    def check_for_cycles(self) -> Optional[List["State"]]:
        """First cycle reachable from the initial state, or None."""
        init_state = self.init_state
        if init_state is None:
            raise ValidationError(f"Workflow {self.id} has no initial state")
        distinct = set(self.get_states()) | {init_state.id}
        return find_cycle(init_state, self.get_next_transitions, max_path_length=len(distinct) + 1)

    # ------------------------------------------------------------------
    # mutation
    # ------------------------------------------------------------------

    def add_transition(
        self,
        from_state: "State",
        action: "Action",
        to_state: "State",
        users: Iterable[User] = (),
        groups: Iterable[GroupGrant] = (),
        max_time: int = 0,
    ) -> "Transition":
        """
        Add ``from_state --action--> to_state`` with its grants.

        ``groups`` holds Group objects (quorum = registry default) or
        ``(group, min_users)`` pairs. Everything is written in one
        transaction; on any failure nothing persists, the cached transition
        set is untouched and PersistenceError is raised.
        """
        if from_state is None or action is None or to_state is None:
            raise ValidationError("Source state, action and target state are required")
        users = list(users or ())
        group_grants = [self._group_grant(g) for g in (groups or ())]

        registry = self._registry
        with registry.transaction():
            transition_id = registry.insert(
                TRANSITIONS,
                workflow_id=self.id,
                from_state_id=from_state.id,
                action_id=action.id,
                to_state_id=to_state.id,
                max_time=int(max_time),
            )
            # read back through storage, not through the cached set
            transition = registry.fetch_transition(transition_id, register=False)
            if transition is None:
                raise PersistenceError(f"Transition {transition_id} vanished after insert")

            for user in users:
                registry.insert(TRANSITION_USERS, transition_id=transition.id, user_id=user.id)
            for group, min_users in group_grants:
                registry.insert(
                    TRANSITION_GROUPS, transition_id=transition.id, group_id=group.id, min_users=min_users
                )

        registry.adopt_transition(transition)
        registry.invalidate_transitions(self.id)
        logger.info(
            "Added transition %s (%s -[%s]-> %s) with %d user and %d group grants",
            transition.id, from_state.id, action.id, to_state.id, len(users), len(group_grants),
            extra={"workflow_id": self.id, "transition_id": transition.id},
        )
        return transition

    def _group_grant(self, grant: GroupGrant) -> Tuple[Group, int]:
        if isinstance(grant, tuple):
            group, min_users = grant
        else:
            group, min_users = grant, self._registry.default_min_users
        if group is None:
            raise ValidationError("Group is required")
        if int(min_users) < 1:
            raise ValidationError(f"min_users must be at least 1, got {min_users}")
        return group, int(min_users)

    def remove_transition(self, transition: "Transition") -> None:
        """Kept for older callers; use ``transition.remove()``."""
        transition.remove()

    def is_used(self) -> bool:
        """True if any document version runs this workflow."""
        return self._registry.workflow_is_used(self.id)

    def remove(self) -> None:
        """Delete the workflow, its transitions with their grants, and mandatory links."""
        if self.is_used():
            raise UsageConflictError(f"Workflow {self.id} is used by a document")

        registry = self._registry
        own_transitions = select(TRANSITIONS.c.id).where(TRANSITIONS.c.workflow_id == self.id)
        with registry.transaction():
            for stmt in registry.delete_grants_statements(own_transitions):
                registry.write(stmt)
            registry.write(delete(TRANSITIONS).where(TRANSITIONS.c.workflow_id == self.id))
            registry.write(delete(MANDATORY).where(MANDATORY.c.workflow_id == self.id))
            registry.write(delete(WORKFLOWS).where(WORKFLOWS.c.id == self.id))

        registry.forget_workflow(self.id)
        logger.info("Removed workflow %s", self.id, extra={"workflow_id": self.id})
