"""
API DTOs
Pydantic request/response models for the HTTP surface.
"""

from typing import List, Optional
from pydantic import BaseModel, Field

from ..entities import Action, State, Transition, TransitionGroup, TransitionUser, Workflow


# --- States / Actions ---

class StateIn(BaseModel):
    name: str = Field(min_length=1)
    max_time: int = Field(default=0, ge=0)
    precondition: Optional[str] = None
    document_status: Optional[int] = None


class StateOut(BaseModel):
    id: int
    name: str
    max_time: int
    precondition: Optional[str] = None
    document_status: Optional[int] = None

    @classmethod
    def of(cls, state: State) -> "StateOut":
        status = state.document_status
        return cls(
            id=state.id,
            name=state.name,
            max_time=state.max_time,
            precondition=state.precondition,
            document_status=int(status) if status is not None else None,
        )


class ActionIn(BaseModel):
    name: str = Field(min_length=1)


class ActionOut(BaseModel):
    id: int
    name: str

    @classmethod
    def of(cls, action: Action) -> "ActionOut":
        return cls(id=action.id, name=action.name)


# --- Workflows ---

class WorkflowIn(BaseModel):
    name: str = Field(min_length=1)
    init_state_id: int
    layout_data: Optional[str] = None


class WorkflowOut(BaseModel):
    id: int
    name: str
    init_state_id: Optional[int] = None
    layout_data: Optional[str] = None

    @classmethod
    def of(cls, workflow: Workflow) -> "WorkflowOut":
        return cls(
            id=workflow.id,
            name=workflow.name,
            init_state_id=workflow.init_state_id,
            layout_data=workflow.layout_data,
        )


# --- Transitions ---

class GroupGrantIn(BaseModel):
    group_id: int
    min_users: int = Field(default=1, ge=1)


class TransitionIn(BaseModel):
    from_state_id: int
    action_id: int
    to_state_id: int
    max_time: int = Field(default=0, ge=0)
    user_ids: List[int] = []
    groups: List[GroupGrantIn] = []


class TransitionOut(BaseModel):
    id: int
    workflow_id: int
    from_state_id: int
    action_id: int
    to_state_id: int
    max_time: int

    @classmethod
    def of(cls, transition: Transition) -> "TransitionOut":
        return cls(
            id=transition.id,
            workflow_id=transition.workflow_id,
            from_state_id=transition.from_state_id,
            action_id=transition.action_id,
            to_state_id=transition.to_state_id,
            max_time=transition.max_time,
        )


class UserGrantOut(BaseModel):
    id: int
    user_id: int
    login: Optional[str] = None

    @classmethod
    def of(cls, grant: TransitionUser) -> "UserGrantOut":
        return cls(id=grant.id, user_id=grant.user_id, login=grant.user.login if grant.user else None)


class GroupGrantOut(BaseModel):
    id: int
    group_id: int
    name: Optional[str] = None
    min_users: int

    @classmethod
    def of(cls, grant: TransitionGroup) -> "GroupGrantOut":
        return cls(
            id=grant.id,
            group_id=grant.group_id,
            name=grant.group.name if grant.group else None,
            min_users=grant.min_users,
        )


class GrantsOut(BaseModel):
    """Grants after filter hooks. A denied list is reported as denied, not as empty."""
    users: List[UserGrantOut] = []
    groups: List[GroupGrantOut] = []
    users_denied: bool = False
    groups_denied: bool = False


class CycleOut(BaseModel):
    has_cycle: bool
    path: List[StateOut] = []
