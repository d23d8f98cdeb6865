# tests/test_removal.py
import pytest
from sqlalchemy import select

from docflow import UsageConflictError
from docflow.models import (
    DocumentContentWorkflowRow,
    MandatoryWorkflowRow,
    StateRow,
    TransitionGroupRow,
    TransitionRow,
    TransitionUserRow,
)


def rows(registry, row_type):
    table = row_type.__table__
    return registry.query(select(table).order_by(table.c.id))


def test_used_state_cannot_be_removed(sample, registry):
    states_before = rows(registry, StateRow)
    transitions_before = rows(registry, TransitionRow)

    with pytest.raises(UsageConflictError):
        sample.review.remove()

    assert rows(registry, StateRow) == states_before
    assert rows(registry, TransitionRow) == transitions_before
    assert registry.get_state(sample.review.id) is sample.review


def test_unused_state_is_removed(registry):
    state = registry.add_state("scratch")
    assert not state.is_used()
    state.remove()
    assert registry.get_state(state.id) is None


def test_state_usage_spans_workflows(sample, registry):
    waiting = registry.add_state("waiting")
    other = registry.add_workflow("other", waiting)
    assert not waiting.is_used()

    other.add_transition(waiting, sample.submit, sample.draft)
    assert waiting.is_used()
    assert len(sample.draft.get_transitions()) == 2


def test_action_removal(sample, registry):
    with pytest.raises(UsageConflictError):
        sample.approve.remove()
    assert registry.get_action(sample.approve.id) is sample.approve

    sample.reject.remove()
    assert registry.get_action(sample.reject.id) is None


def test_transition_removal_deletes_grants(sample, registry):
    assert len(rows(registry, TransitionUserRow)) == 1
    sample.t_submit.remove()
    assert rows(registry, TransitionUserRow) == []
    assert len(rows(registry, TransitionGroupRow)) == 1

    sample.workflow.remove_transition(sample.t_approve)
    assert rows(registry, TransitionGroupRow) == []
    assert sample.workflow.get_transitions() == {}


def test_workflow_in_use_cannot_be_removed(sample, registry):
    registry.insert(
        DocumentContentWorkflowRow.__table__,
        document_id=7,
        version=1,
        workflow_id=sample.workflow.id,
        state_id=sample.draft.id,
    )
    assert sample.workflow.is_used()
    with pytest.raises(UsageConflictError):
        sample.workflow.remove()
    assert len(rows(registry, TransitionRow)) == 2


def test_workflow_removal_cascades(sample, registry, identity):
    alice = identity.resolve_user(1)
    registry.add_mandatory_workflow(alice, sample.workflow)
    other = registry.add_workflow("other", sample.draft)
    kept = other.add_transition(sample.draft, sample.submit, sample.review, users=[alice])

    sample.workflow.remove()

    assert registry.get_workflow(sample.workflow.id) is None
    assert [r["id"] for r in rows(registry, TransitionRow)] == [kept.id]
    assert [r["transition_id"] for r in rows(registry, TransitionUserRow)] == [kept.id]
    assert rows(registry, TransitionGroupRow) == []
    assert rows(registry, MandatoryWorkflowRow) == []
    assert registry.fetch_transition(sample.t_submit.id) is None
    # states and actions are shared and survive
    assert registry.get_state(sample.draft.id) is sample.draft
    assert registry.get_action(sample.approve.id) is sample.approve
