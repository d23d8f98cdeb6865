"""
Filter hooks for transition grants.

Extensions register callables that may narrow, widen or veto the users and
groups allowed to trigger a transition. The registry is an explicit object
handed to the WorkflowRegistry; hooks run in registration order.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Sequence, Union

logger = logging.getLogger(__name__)

ON_FILTER_TRANSITION_USERS = "onFilterTransitionUsers"
ON_FILTER_TRANSITION_GROUPS = "onFilterTransitionGroups"

EVENTS = (ON_FILTER_TRANSITION_USERS, ON_FILTER_TRANSITION_GROUPS)


@dataclass(frozen=True)
class Denied:
    """Authoritative negative result of a filter hook. Not an error."""
    reason: str = ""

    def __bool__(self) -> bool:
        return False


DENIED = Denied()

FilterResult = Union[List[Any], Denied]
FilterHook = Callable[[Any, List[Any]], Union[Sequence[Any], Denied]]


class FilterHookRegistry:
    """
    Insertion-ordered hook lists per event.

    ``version`` changes on every (un)registration so that cached grant
    lists computed under an older hook chain can be recognised as stale.
    """

    def __init__(self):
        self._hooks: Dict[str, List[FilterHook]] = {event: [] for event in EVENTS}
        self.version = 0

    def register(self, event: str, hook: FilterHook) -> None:
        """Append a hook for ``event``."""
        if event not in self._hooks:
            raise ValueError(f"Unknown filter event: {event}. Valid events: {', '.join(EVENTS)}")
        self._hooks[event].append(hook)
        self.version += 1

    def unregister(self, event: str, hook: FilterHook) -> None:
        hooks = self._hooks.get(event, [])
        if hook in hooks:
            hooks.remove(hook)
            self.version += 1

    def hooks_for(self, event: str) -> List[FilterHook]:
        return list(self._hooks.get(event, []))

    def dispatch(self, event: str, transition: Any, items: List[Any]) -> FilterResult:
        """
        Pass ``items`` through every hook of ``event``.

        Each hook gets the transition and the current list and returns a
        replacement list or a ``Denied``. The first ``Denied`` ends the
        chain and is returned as is.
        """
        current = list(items)
        for hook in self._hooks.get(event, []):
            ret = hook(transition, current)
            if isinstance(ret, Denied):
                logger.debug("Hook %r denied %s for transition %s", hook, event, getattr(transition, "id", None))
                return ret
            current = list(ret)
        return current
