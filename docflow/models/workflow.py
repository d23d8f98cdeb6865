from typing import Optional
from sqlmodel import SQLModel, Field


class WorkflowRow(SQLModel, table=True):
    __tablename__ = "workflows"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    init_state_id: Optional[int] = Field(default=None, foreign_key="workflow_states.id")
    # opaque blob from the graph editor, never interpreted here
    layout_data: Optional[str] = None


class StateRow(SQLModel, table=True):
    __tablename__ = "workflow_states"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    max_time: int = 0  # seconds, 0 = unbounded
    precondition: Optional[str] = None
    document_status: Optional[int] = None  # DocumentStatus code


class ActionRow(SQLModel, table=True):
    __tablename__ = "workflow_actions"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)


class TransitionRow(SQLModel, table=True):
    __tablename__ = "workflow_transitions"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    workflow_id: int = Field(foreign_key="workflows.id", index=True)
    from_state_id: int = Field(foreign_key="workflow_states.id", index=True)
    action_id: int = Field(foreign_key="workflow_actions.id", index=True)
    to_state_id: int = Field(foreign_key="workflow_states.id", index=True)
    max_time: int = 0


class TransitionUserRow(SQLModel, table=True):
    __tablename__ = "workflow_transition_users"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    transition_id: int = Field(foreign_key="workflow_transitions.id", index=True)
    user_id: int = Field(index=True)


class TransitionGroupRow(SQLModel, table=True):
    __tablename__ = "workflow_transition_groups"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    transition_id: int = Field(foreign_key="workflow_transitions.id", index=True)
    group_id: int = Field(index=True)
    min_users: int = 1  # quorum, stored but never evaluated here
