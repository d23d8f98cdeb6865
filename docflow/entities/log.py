from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from ..identity import User

if TYPE_CHECKING:
    from .transition import Transition
    from .workflow import Workflow


@dataclass(frozen=True)
class WorkflowLog:
    """One executed transition of one document version. Read only."""
    id: int
    document_id: int
    version: int
    workflow: Optional["Workflow"]
    user: Optional[User]
    transition: Optional["Transition"]  # None if the transition was removed later
    date: datetime
    comment: str = ""
