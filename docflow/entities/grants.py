from dataclasses import dataclass
from typing import Optional

from ..identity import Group, User


@dataclass(frozen=True)
class TransitionUser:
    """A user who may trigger the transition on their own."""
    id: int
    transition_id: int
    user: Optional[User]  # None when the identity subsystem no longer knows the id
    user_id: int


@dataclass(frozen=True)
class TransitionGroup:
    """
    A group whose members trigger the transition together.

    ``min_users`` is the configured quorum. Whether it has been reached is
    decided by the execution component, never here.
    """
    id: int
    transition_id: int
    group: Optional[Group]
    group_id: int
    min_users: int = 1
