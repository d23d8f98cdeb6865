import logging
from typing import TYPE_CHECKING, Optional

from sqlalchemy import delete

from ..errors import ValidationError
from ..hooks import FilterResult
from ..models import TransitionRow

if TYPE_CHECKING:
    from ..registry import WorkflowRegistry
    from .action import Action
    from .state import State
    from .workflow import Workflow

logger = logging.getLogger(__name__)

TRANSITIONS = TransitionRow.__table__


class Transition:
    """
    Directed edge ``from_state --action--> to_state`` of one workflow.

    Endpoints are stored as ids and resolved through the registry, so a
    renamed State is seen by every transition that uses it.
    """

    def __init__(
        self,
        registry: "WorkflowRegistry",
        id: int,
        workflow_id: int,
        from_state_id: int,
        action_id: int,
        to_state_id: int,
        max_time: int = 0,
    ):
        self._registry = registry
        self.id = id
        self.workflow_id = workflow_id
        self.from_state_id = from_state_id
        self.action_id = action_id
        self.to_state_id = to_state_id
        self._max_time = max_time

    def __repr__(self) -> str:
        return (
            f"Transition(id={self.id!r}, workflow={self.workflow_id!r}, "
            f"{self.from_state_id!r} -[{self.action_id!r}]-> {self.to_state_id!r})"
        )

    # --- resolved references ----------------------------------------------

    @property
    def workflow(self) -> Optional["Workflow"]:
        return self._registry.get_workflow(self.workflow_id)

    @property
    def from_state(self) -> Optional["State"]:
        return self._registry.get_state(self.from_state_id)

    @property
    def action(self) -> Optional["Action"]:
        return self._registry.get_action(self.action_id)

    @property
    def to_state(self) -> Optional["State"]:
        return self._registry.get_state(self.to_state_id)

    @property
    def max_time(self) -> int:
        return self._max_time

    # --- setters ------------------------------------------------------------

    def set_workflow(self, workflow: "Workflow") -> None:
        if workflow is None:
            raise ValidationError("Workflow is required")
        old = self.workflow_id
        self._registry.update_field(TRANSITIONS, self.id, workflow_id=workflow.id)
        self.workflow_id = workflow.id
        self._registry.invalidate_transitions(old)
        self._registry.invalidate_transitions(workflow.id)

    def set_from_state(self, state: "State") -> None:
        if state is None:
            raise ValidationError("Source state is required")
        self._registry.update_field(TRANSITIONS, self.id, from_state_id=state.id)
        self.from_state_id = state.id
        self._registry.invalidate_transitions(self.workflow_id)

    def set_to_state(self, state: "State") -> None:
        if state is None:
            raise ValidationError("Target state is required")
        self._registry.update_field(TRANSITIONS, self.id, to_state_id=state.id)
        self.to_state_id = state.id
        self._registry.invalidate_transitions(self.workflow_id)

    def set_action(self, action: "Action") -> None:
        if action is None:
            raise ValidationError("Action is required")
        self._registry.update_field(TRANSITIONS, self.id, action_id=action.id)
        self.action_id = action.id
        self._registry.invalidate_transitions(self.workflow_id)

    def set_max_time(self, max_time: int) -> None:
        max_time = int(max_time)
        self._registry.update_field(TRANSITIONS, self.id, max_time=max_time)
        self._max_time = max_time

    # --- grants ---------------------------------------------------------------

    def get_users(self) -> FilterResult:
        """
        Users allowed to trigger this transition, after the filter hooks.

        Returns a list of TransitionUser, or the Denied returned by a hook.
        """
        return self._registry.transition_users(self)

    def get_groups(self) -> FilterResult:
        """Groups with their quorum, after the filter hooks; or a hook's Denied."""
        return self._registry.transition_groups(self)

    # --- removal ---------------------------------------------------------------

    def remove(self) -> None:
        """Delete the transition together with its user and group grants."""
        with self._registry.transaction():
            for stmt in self._registry.delete_grants_statements([self.id]):
                self._registry.write(stmt)
            self._registry.write(delete(TRANSITIONS).where(TRANSITIONS.c.id == self.id))
        self._registry.forget_transition(self.id)
        logger.info("Removed transition %s", self.id, extra={"workflow_id": self.workflow_id})
