# tests/conftest.py
"""
Shared fixtures: a fresh in-memory SQLite database per test, the registry on
top of it, and a small draft/review/released workflow.
"""

from types import SimpleNamespace

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

from docflow import (
    FilterHookRegistry,
    Group,
    SQLModelGateway,
    StaticIdentityResolver,
    User,
    WorkflowRegistry,
)
from docflow.db import create_schema


class FaultyGateway(SQLModelGateway):
    """
    Gateway that fails the ``nth`` statement of one kind against one table.

    ``kind`` is "insert", "update", "delete" or "select". A failing write
    returns False and a failing query returns None, like a real storage
    error would; everything else goes through. ``arm`` resets the counter,
    so a test can build its fixtures first and break storage afterwards.
    """

    def __init__(self, engine, table=None, nth: int = 1, kind: str = "insert"):
        super().__init__(engine)
        self.arm(table, nth=nth, kind=kind)

    def arm(self, table, nth: int = 1, kind: str = "insert"):
        self.fail_table = table
        self.fail_kind = kind
        self.nth = nth
        self.seen = 0

    def _should_fail(self, statement) -> bool:
        if self.fail_table is None or not getattr(statement, f"is_{self.fail_kind}", False):
            return False
        if self.fail_kind == "select":
            tables = [getattr(f, "name", None) for f in statement.get_final_froms()]
        else:
            tables = [self._table_name(statement)]
        if self.fail_table not in tables:
            return False
        self.seen += 1
        return self.seen == self.nth

    def execute_write(self, statement):
        if self._should_fail(statement):
            return False
        return super().execute_write(statement)

    def execute_query(self, statement):
        if self._should_fail(statement):
            return None
        return super().execute_query(statement)


@pytest.fixture()
def engine():
    # "sqlite://" with StaticPool keeps ONE connection alive, so the
    # in-memory database survives across sessions and TestClient threads
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    create_schema(eng)
    return eng


@pytest.fixture()
def identity():
    return StaticIdentityResolver(
        users=[User(1, "alice", "Alice"), User(2, "bob", "Bob"), User(3, "carol", "Carol")],
        groups=[
            Group(10, "reviewers", frozenset({1, 2})),
            Group(11, "managers", frozenset({3})),
        ],
    )


@pytest.fixture()
def hooks():
    return FilterHookRegistry()


@pytest.fixture()
def gateway(engine):
    gw = SQLModelGateway(engine)
    yield gw
    gw.close()


@pytest.fixture()
def registry(gateway, identity, hooks):
    return WorkflowRegistry(gateway, identity, hooks, default_min_users=1)


def build_sample(registry):
    """draft -submit-> review -approve-> released, started in draft."""
    draft = registry.add_state("draft")
    review = registry.add_state("review", max_time=3600)
    released = registry.add_state("released", document_status=2)
    submit = registry.add_action("submit")
    approve = registry.add_action("approve")
    reject = registry.add_action("reject")
    workflow = registry.add_workflow("document review", draft)
    t_submit = workflow.add_transition(draft, submit, review, users=[registry.identity.resolve_user(1)])
    t_approve = workflow.add_transition(
        review, approve, released, groups=[(registry.identity.resolve_group(10), 2)]
    )
    return SimpleNamespace(
        workflow=workflow,
        draft=draft,
        review=review,
        released=released,
        submit=submit,
        approve=approve,
        reject=reject,
        t_submit=t_submit,
        t_approve=t_approve,
    )


@pytest.fixture()
def sample(registry):
    return build_sample(registry)
