"""
Cycle detection over a workflow's transition graph.

First-found depth-first search from the initial state. The search is
iterative: ``path`` holds the states of the current branch and ``stack``
holds, for each of them, the iterator over its outgoing transitions.
"""

import logging
from typing import TYPE_CHECKING, Callable, Iterable, Iterator, List, Optional

from .errors import ValidationError

if TYPE_CHECKING:
    from .entities import State, Transition

logger = logging.getLogger(__name__)

NextTransitions = Callable[["State"], Iterable["Transition"]]


def find_cycle(
    init_state: "State",
    next_transitions: NextTransitions,
    max_path_length: Optional[int] = None,
) -> Optional[List["State"]]:
    """
    Return the first cycle reachable from ``init_state`` or None.

    The returned path starts at ``init_state`` and ends with the repeated
    state, so its last element shares its id with an earlier one.
    Outgoing transitions are explored in the order ``next_transitions``
    yields them; with several cycles only the first one met is reported.

    ``max_path_length`` bounds the branch length. Without a repeat a path
    holds each state at most once, so distinct states + 1 is always enough.
    """
    if init_state is None:
        raise ValidationError("Cycle detection needs an initial state")

    path: List["State"] = [init_state]
    on_path = {init_state.id}
    stack: List[Iterator["Transition"]] = [iter(next_transitions(init_state))]

    while stack:
        transition = next(stack[-1], None)
        if transition is None:
            # branch exhausted, backtrack
            stack.pop()
            on_path.discard(path.pop().id)
            continue

        to_state = transition.to_state
        if to_state is None:
            logger.warning("Transition %s points to a missing state", transition.id)
            continue
        if to_state.id in on_path:
            return path + [to_state]
        if max_path_length is not None and len(path) >= max_path_length:
            continue

        path.append(to_state)
        on_path.add(to_state.id)
        stack.append(iter(next_transitions(to_state)))

    return None
