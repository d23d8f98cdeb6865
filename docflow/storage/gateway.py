"""
Storage Gateway
All persistence of the engine goes through this narrow interface. Statements
are SQLAlchemy Core statements built from the SQLModel tables.
"""

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional, Protocol, runtime_checkable

from sqlalchemy import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

logger = logging.getLogger(__name__)


@runtime_checkable
class StorageGateway(Protocol):
    def execute_write(self, statement: Any) -> bool: ...

    def execute_query(self, statement: Any) -> Optional[List[Mapping[str, Any]]]: ...

    def begin_transaction(self) -> None: ...

    def commit_transaction(self) -> None: ...

    def rollback_transaction(self) -> None: ...

    def last_insert_id(self, table: str) -> Optional[int]: ...


class SQLModelGateway:
    """
    Gateway over one SQLModel session per thread.

    Transactions nest by depth: only the outermost begin/commit/rollback
    reaches the database. Session, depth and inserted ids belong to the
    calling thread, so concurrent requests never share a unit of work.
    Writes outside a transaction commit immediately.
    A failed query returns None, a failed write returns False; both are
    logged and never raised.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._local = threading.local()

    @property
    def session(self) -> Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._local.session = Session(self.engine)
        return session

    @property
    def _depth(self) -> int:
        return getattr(self._local, "depth", 0)

    @_depth.setter
    def _depth(self, value: int) -> None:
        self._local.depth = value

    @property
    def _last_ids(self) -> Dict[str, int]:
        last_ids = getattr(self._local, "last_ids", None)
        if last_ids is None:
            last_ids = self._local.last_ids = {}
        return last_ids

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def close(self) -> None:
        """Close the calling thread's session."""
        session = getattr(self._local, "session", None)
        if session is not None:
            session.close()
            self._local.session = None
        self._depth = 0

    # ------------------------------------------------------------------
    # transactions
    # ------------------------------------------------------------------

    def begin_transaction(self) -> None:
        self._depth += 1

    def commit_transaction(self) -> None:
        if self._depth == 0:
            return
        self._depth -= 1
        if self._depth == 0:
            self.session.commit()

    def rollback_transaction(self) -> None:
        if self._depth == 0:
            return
        # an inner rollback aborts the whole unit of work
        self._depth = 0
        self.session.rollback()

    # ------------------------------------------------------------------
    # statements
    # ------------------------------------------------------------------

    def execute_write(self, statement: Any) -> bool:
        try:
            result = self.session.execute(statement)
        except SQLAlchemyError as e:
            logger.warning("Write failed: %s", e, extra={"table": self._table_name(statement)})
            if self._depth == 0:
                self.session.rollback()
            return False

        if getattr(statement, "is_insert", False):
            pk = result.inserted_primary_key
            if pk and pk[0] is not None:
                self._last_ids[self._table_name(statement)] = pk[0]

        if self._depth == 0:
            self.session.commit()
        return True

    def execute_query(self, statement: Any) -> Optional[List[Mapping[str, Any]]]:
        try:
            rows = self.session.execute(statement).mappings().all()
        except SQLAlchemyError as e:
            logger.warning("Query failed: %s", e)
            if self._depth == 0:
                self.session.rollback()
            return None
        if self._depth == 0:
            # do not keep a read transaction open between calls
            self.session.commit()
        return [dict(r) for r in rows]

    def last_insert_id(self, table: str) -> Optional[int]:
        return self._last_ids.get(table)

    @staticmethod
    def _table_name(statement: Any) -> str:
        table = getattr(statement, "table", None)
        return getattr(table, "name", "") or ""
