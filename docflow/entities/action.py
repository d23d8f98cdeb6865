import logging
from typing import TYPE_CHECKING, List

from sqlalchemy import delete

from ..errors import UsageConflictError, ValidationError
from ..models import ActionRow, TransitionRow

if TYPE_CHECKING:
    from ..registry import WorkflowRegistry
    from .transition import Transition

logger = logging.getLogger(__name__)

ACTIONS = ActionRow.__table__
TRANSITIONS = TransitionRow.__table__


class Action:
    """Named edge label, reusable across transitions and workflows."""

    def __init__(self, registry: "WorkflowRegistry", id: int, name: str):
        self._registry = registry
        self.id = id
        self._name = name

    def __repr__(self) -> str:
        return f"Action(id={self.id!r}, name={self._name!r})"

    @property
    def name(self) -> str:
        return self._name

    def set_name(self, name: str) -> None:
        if not name:
            raise ValidationError("Action name is required")
        self._registry.update_field(ACTIONS, self.id, name=name)
        self._name = name

    def get_transitions(self) -> List["Transition"]:
        return self._registry.query_transitions(TRANSITIONS.c.action_id == self.id)

    def is_used(self) -> bool:
        return len(self.get_transitions()) > 0

    def remove(self) -> None:
        if self.is_used():
            raise UsageConflictError(f"Action {self.id} is used by a transition")
        with self._registry.transaction():
            self._registry.write(delete(ACTIONS).where(ACTIONS.c.id == self.id))
        self._registry.forget_action(self.id)
        logger.info("Removed workflow action %s", self.id)
