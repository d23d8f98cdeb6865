from typing import Optional
from datetime import datetime
from sqlmodel import SQLModel, Field


class DocumentContentWorkflowRow(SQLModel, table=True):
    """
    Links a document version to the workflow it is running.
    Written by the execution component; read here only to answer isUsed().
    """
    __tablename__ = "workflow_document_contents"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    document_id: int = Field(index=True)
    version: int
    workflow_id: int = Field(foreign_key="workflows.id", index=True)
    state_id: Optional[int] = Field(default=None, foreign_key="workflow_states.id")
    date: Optional[datetime] = None


class MandatoryWorkflowRow(SQLModel, table=True):
    """Workflows a user must pick from when starting a document workflow."""
    __tablename__ = "workflow_mandatory_workflows"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(index=True)
    workflow_id: int = Field(foreign_key="workflows.id", index=True)
