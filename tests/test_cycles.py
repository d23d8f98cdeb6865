# tests/test_cycles.py
from types import SimpleNamespace

import pytest

from docflow import ValidationError, find_cycle


def test_review_loop_is_reported(sample):
    wf = sample.workflow
    wf.add_transition(sample.review, sample.reject, sample.draft)

    path = wf.check_for_cycles()
    assert path is not None
    assert path[0].id == path[-1].id
    assert {sample.draft.id, sample.review.id} <= {s.id for s in path}


def test_acyclic_chain_has_no_cycle(sample):
    assert sample.workflow.check_for_cycles() is None


def test_self_loop(sample, registry):
    wf = sample.workflow
    wf.add_transition(sample.review, registry.add_action("comment"), sample.review)
    path = wf.check_for_cycles()
    assert [s.id for s in path] == [sample.draft.id, sample.review.id, sample.review.id]


def test_cycle_not_reachable_from_init_state_is_ignored(sample, registry):
    wf = sample.workflow
    orphan = registry.add_state("orphan")
    loop = registry.add_action("loop")
    wf.add_transition(orphan, loop, registry.add_state("other"))
    wf.add_transition(registry.get_state_by_name("other"), loop, orphan)
    assert wf.check_for_cycles() is None


def test_workflow_without_initial_state(sample, registry):
    wf = registry.add_workflow("no init", sample.draft)
    wf.init_state_id = None
    with pytest.raises(ValidationError):
        wf.check_for_cycles()


# --- find_cycle on plain objects ---------------------------------------------

def graph(edges):
    """Build states and a next-transitions callable from (from, to) id pairs."""
    states = {}
    for a, b in edges:
        states.setdefault(a, SimpleNamespace(id=a))
        states.setdefault(b, SimpleNamespace(id=b))
    out = {sid: [] for sid in states}
    for n, (a, b) in enumerate(edges):
        out[a].append(SimpleNamespace(id=n, to_state=states[b]))
    return states, lambda s: out[s.id]


def test_first_cycle_follows_transition_order():
    states, nxt = graph([(1, 2), (2, 3), (3, 2), (2, 1)])
    path = find_cycle(states[1], nxt)
    assert [s.id for s in path] == [1, 2, 3, 2]


def test_diamond_is_not_a_cycle():
    states, nxt = graph([(1, 2), (1, 3), (2, 4), (3, 4)])
    assert find_cycle(states[1], nxt) is None


def test_long_chain_does_not_recurse():
    edges = [(i, i + 1) for i in range(5000)] + [(5000, 0)]
    states, nxt = graph(edges)
    path = find_cycle(states[0], nxt, max_path_length=len(states) + 1)
    assert len(path) == 5002
    assert path[0].id == path[-1].id == 0


def test_path_bound_cuts_the_search():
    states, nxt = graph([(1, 2), (2, 3), (3, 1)])
    assert find_cycle(states[1], nxt, max_path_length=2) is None
    assert find_cycle(states[1], nxt, max_path_length=4) is not None


def test_transition_to_missing_state_is_skipped():
    start = SimpleNamespace(id=1)
    dangling = SimpleNamespace(id=99, to_state=None)
    assert find_cycle(start, lambda s: [dangling]) is None


def test_find_cycle_requires_a_start():
    with pytest.raises(ValidationError):
        find_cycle(None, lambda s: [])
