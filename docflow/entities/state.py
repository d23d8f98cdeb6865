import logging
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import delete

from ..errors import UsageConflictError, ValidationError
from ..models import StateRow
from ..models.status import DocumentStatus, coerce_status

if TYPE_CHECKING:
    from ..registry import WorkflowRegistry
    from .transition import Transition

logger = logging.getLogger(__name__)

STATES = StateRow.__table__


class State:
    """
    A node of a workflow graph.

    States are shared between workflows; which workflows use a state is
    discovered from the transitions, not declared.
    """

    def __init__(
        self,
        registry: "WorkflowRegistry",
        id: int,
        name: str,
        max_time: int = 0,
        precondition: Optional[str] = None,
        document_status: Optional[int] = None,
    ):
        self._registry = registry
        self.id = id
        self._name = name
        self._max_time = max_time
        self._precondition = precondition
        self._document_status = coerce_status(document_status)

    def __repr__(self) -> str:
        return f"State(id={self.id!r}, name={self._name!r})"

    # --- name -------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    def set_name(self, name: str) -> None:
        if not name:
            raise ValidationError("State name is required")
        self._registry.update_field(STATES, self.id, name=name)
        self._name = name

    # --- max time ---------------------------------------------------------

    @property
    def max_time(self) -> int:
        """Seconds a document may stay in this state, 0 = unbounded. Not enforced here."""
        return self._max_time

    def set_max_time(self, max_time: int) -> None:
        max_time = int(max_time)
        self._registry.update_field(STATES, self.id, max_time=max_time)
        self._max_time = max_time

    # --- precondition -----------------------------------------------------

    @property
    def precondition(self) -> Optional[str]:
        """Opaque reference to a predicate evaluated by the execution component."""
        return self._precondition

    def set_precondition(self, precondition: Optional[str]) -> None:
        self._registry.update_field(STATES, self.id, precondition=precondition)
        self._precondition = precondition

    # --- document status --------------------------------------------------

    @property
    def document_status(self) -> Optional[DocumentStatus]:
        return self._document_status

    def set_document_status(self, status: Optional[DocumentStatus]) -> None:
        if status is not None:
            coerced = coerce_status(status)
            if coerced is None:
                raise ValidationError(f"Unknown document status: {status!r}")
            status = coerced
        self._registry.update_field(
            STATES, self.id, document_status=int(status) if status is not None else None
        )
        self._document_status = status

    def resulting_document_status(self) -> Optional[DocumentStatus]:
        """
        Status the document version takes when this state is reached.

        None means the version keeps its own status; only released and
        rejected states override it.
        """
        if self._document_status is not None and self._document_status.changes_document:
            return self._document_status
        return None

    # --- usage ------------------------------------------------------------

    def get_transitions(self) -> List["Transition"]:
        """Every transition, in any workflow, that starts or ends here."""
        return self._registry.transitions_touching_state(self.id)

    def is_used(self) -> bool:
        return len(self.get_transitions()) > 0

    def remove(self) -> None:
        if self.is_used():
            raise UsageConflictError(f"State {self.id} is used by a transition")
        with self._registry.transaction():
            self._registry.write(delete(STATES).where(STATES.c.id == self.id))
        self._registry.forget_state(self.id)
        logger.info("Removed workflow state %s", self.id)
