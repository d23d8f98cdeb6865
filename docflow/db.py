from typing import Optional
from sqlmodel import SQLModel, create_engine
from sqlalchemy import Engine

from .config import settings


def create_db_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    url = url or settings.database_url
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(
        url,
        connect_args=connect_args,
        echo=settings.sql_echo if echo is None else echo,
    )


def create_schema(engine: Engine) -> None:
    """Create all database tables"""
    from . import models  # noqa: F401  registers the tables on SQLModel.metadata
    SQLModel.metadata.create_all(engine)
