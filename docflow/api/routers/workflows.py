from typing import List

from fastapi import APIRouter, Depends, status

from ...errors import ValidationError
from ...hooks import Denied
from ...registry import WorkflowRegistry
from ..deps import auth_bearer, get_registry, require
from ..schemas import (
    CycleOut,
    GrantsOut,
    GroupGrantOut,
    StateOut,
    TransitionIn,
    TransitionOut,
    UserGrantOut,
    WorkflowIn,
    WorkflowOut,
)

router = APIRouter(dependencies=[Depends(auth_bearer)])


def _workflow(registry: WorkflowRegistry, workflow_id: int):
    return require(registry.get_workflow(workflow_id), "Workflow", workflow_id)


@router.get("/workflows", response_model=List[WorkflowOut])
def list_workflows(registry: WorkflowRegistry = Depends(get_registry)):
    return [WorkflowOut.of(w) for w in registry.get_workflows()]


@router.post("/workflows", response_model=WorkflowOut, status_code=status.HTTP_201_CREATED)
def create_workflow(body: WorkflowIn, registry: WorkflowRegistry = Depends(get_registry)):
    init_state = require(registry.get_state(body.init_state_id), "State", body.init_state_id)
    workflow = registry.add_workflow(body.name, init_state, layout_data=body.layout_data)
    return WorkflowOut.of(workflow)


@router.get("/workflows/{workflow_id}", response_model=WorkflowOut)
def get_workflow(workflow_id: int, registry: WorkflowRegistry = Depends(get_registry)):
    return WorkflowOut.of(_workflow(registry, workflow_id))


@router.delete("/workflows/{workflow_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_workflow(workflow_id: int, registry: WorkflowRegistry = Depends(get_registry)):
    _workflow(registry, workflow_id).remove()
    return None


@router.get("/workflows/{workflow_id}/states", response_model=List[StateOut])
def workflow_states(workflow_id: int, registry: WorkflowRegistry = Depends(get_registry)):
    states = _workflow(registry, workflow_id).get_states()
    return [StateOut.of(s) for s in states.values()]


@router.get("/workflows/{workflow_id}/transitions", response_model=List[TransitionOut])
def workflow_transitions(workflow_id: int, registry: WorkflowRegistry = Depends(get_registry)):
    transitions = _workflow(registry, workflow_id).get_transitions()
    return [TransitionOut.of(t) for t in transitions.values()]


@router.post(
    "/workflows/{workflow_id}/transitions",
    response_model=TransitionOut,
    status_code=status.HTTP_201_CREATED,
)
def add_transition(workflow_id: int, body: TransitionIn, registry: WorkflowRegistry = Depends(get_registry)):
    workflow = _workflow(registry, workflow_id)
    from_state = require(registry.get_state(body.from_state_id), "State", body.from_state_id)
    to_state = require(registry.get_state(body.to_state_id), "State", body.to_state_id)
    action = require(registry.get_action(body.action_id), "Action", body.action_id)

    users = []
    for user_id in body.user_ids:
        user = registry.identity.resolve_user(user_id)
        if user is None:
            raise ValidationError(f"Unknown user {user_id}")
        users.append(user)
    groups = []
    for grant in body.groups:
        group = registry.identity.resolve_group(grant.group_id)
        if group is None:
            raise ValidationError(f"Unknown group {grant.group_id}")
        groups.append((group, grant.min_users))

    transition = workflow.add_transition(
        from_state, action, to_state, users=users, groups=groups, max_time=body.max_time
    )
    return TransitionOut.of(transition)


@router.delete("/workflows/{workflow_id}/transitions/{transition_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_transition(workflow_id: int, transition_id: int, registry: WorkflowRegistry = Depends(get_registry)):
    workflow = _workflow(registry, workflow_id)
    transition = require(workflow.get_transition(transition_id), "Transition", transition_id)
    transition.remove()
    return None


@router.get("/workflows/{workflow_id}/cycles", response_model=CycleOut)
def check_cycles(workflow_id: int, registry: WorkflowRegistry = Depends(get_registry)):
    path = _workflow(registry, workflow_id).check_for_cycles()
    if path is None:
        return CycleOut(has_cycle=False)
    return CycleOut(has_cycle=True, path=[StateOut.of(s) for s in path])


@router.get("/transitions/{transition_id}/grants", response_model=GrantsOut)
def transition_grants(transition_id: int, registry: WorkflowRegistry = Depends(get_registry)):
    transition = require(registry.fetch_transition(transition_id), "Transition", transition_id)
    users = transition.get_users()
    groups = transition.get_groups()
    out = GrantsOut()
    if isinstance(users, Denied):
        out.users_denied = True
    else:
        out.users = [UserGrantOut.of(u) for u in users]
    if isinstance(groups, Denied):
        out.groups_denied = True
    else:
        out.groups = [GroupGrantOut.of(g) for g in groups]
    return out
