"""
Identity handles consumed by the engine.
Users and groups live in another subsystem; the engine only needs an id and
something to show.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class User:
    id: int
    login: str = ""
    name: str = ""


@dataclass(frozen=True)
class Group:
    id: int
    name: str = ""
    member_ids: frozenset = field(default_factory=frozenset)


@runtime_checkable
class IdentityResolver(Protocol):
    def resolve_user(self, user_id: int) -> Optional[User]: ...

    def resolve_group(self, group_id: int) -> Optional[Group]: ...


class StaticIdentityResolver:
    """Dict backed resolver for embedding and tests."""

    def __init__(self, users: Iterable[User] = (), groups: Iterable[Group] = ()):
        self._users: Dict[int, User] = {u.id: u for u in users}
        self._groups: Dict[int, Group] = {g.id: g for g in groups}

    def add_user(self, user: User) -> User:
        self._users[user.id] = user
        return user

    def add_group(self, group: Group) -> Group:
        self._groups[group.id] = group
        return group

    def resolve_user(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    def resolve_group(self, group_id: int) -> Optional[Group]:
        return self._groups.get(group_id)
