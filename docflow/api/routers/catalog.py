"""States and actions, shared by every workflow."""

from typing import List

from fastapi import APIRouter, Depends, status

from ...errors import ValidationError
from ...models.status import coerce_status
from ...registry import WorkflowRegistry
from ..deps import auth_bearer, get_registry, require
from ..schemas import ActionIn, ActionOut, StateIn, StateOut

router = APIRouter(dependencies=[Depends(auth_bearer)])


@router.get("/states", response_model=List[StateOut])
def list_states(registry: WorkflowRegistry = Depends(get_registry)):
    return [StateOut.of(s) for s in registry.get_states()]


@router.post("/states", response_model=StateOut, status_code=status.HTTP_201_CREATED)
def create_state(body: StateIn, registry: WorkflowRegistry = Depends(get_registry)):
    doc_status = None
    if body.document_status is not None:
        doc_status = coerce_status(body.document_status)
        if doc_status is None:
            raise ValidationError(f"Unknown document status: {body.document_status}")
    state = registry.add_state(
        body.name, max_time=body.max_time, precondition=body.precondition, document_status=doc_status
    )
    return StateOut.of(state)


@router.delete("/states/{state_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_state(state_id: int, registry: WorkflowRegistry = Depends(get_registry)):
    require(registry.get_state(state_id), "State", state_id).remove()
    return None


@router.get("/actions", response_model=List[ActionOut])
def list_actions(registry: WorkflowRegistry = Depends(get_registry)):
    return [ActionOut.of(a) for a in registry.get_actions()]


@router.post("/actions", response_model=ActionOut, status_code=status.HTTP_201_CREATED)
def create_action(body: ActionIn, registry: WorkflowRegistry = Depends(get_registry)):
    return ActionOut.of(registry.add_action(body.name))


@router.delete("/actions/{action_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_action(action_id: int, registry: WorkflowRegistry = Depends(get_registry)):
    require(registry.get_action(action_id), "Action", action_id).remove()
    return None
