from .state import State
from .action import Action
from .grants import TransitionUser, TransitionGroup
from .transition import Transition
from .workflow import Workflow
from .log import WorkflowLog

__all__ = [
    "State", "Action",
    "TransitionUser", "TransitionGroup",
    "Transition", "Workflow", "WorkflowLog",
]
