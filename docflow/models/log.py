from typing import Optional
from datetime import datetime
from sqlmodel import SQLModel, Field


class WorkflowLogRow(SQLModel, table=True):
    """Append-only audit row, one per executed transition."""
    __tablename__ = "workflow_log"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    document_id: int = Field(index=True)
    version: int = Field(index=True)
    workflow_id: int = Field(foreign_key="workflows.id", index=True)
    user_id: int
    transition_id: int  # kept even if the transition is later removed
    date: datetime
    comment: str = ""
