from .status import DocumentStatus
from .workflow import (
    WorkflowRow, StateRow, ActionRow, TransitionRow, TransitionUserRow, TransitionGroupRow,
)
from .document import DocumentContentWorkflowRow, MandatoryWorkflowRow
from .log import WorkflowLogRow

__all__ = [
    "DocumentStatus",
    "WorkflowRow", "StateRow", "ActionRow",
    "TransitionRow", "TransitionUserRow", "TransitionGroupRow",
    "DocumentContentWorkflowRow", "MandatoryWorkflowRow",
    "WorkflowLogRow",
]
