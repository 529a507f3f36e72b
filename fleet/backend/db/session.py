# fleet/backend/db/session.py

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from fleet.backend.config import load_settings

from .base import Base


def make_engine(database_url: str, **kwargs) -> Engine:
    return create_engine(
        database_url,
        echo=False,        # True dumps every SQL statement to the log
        future=True,
        **kwargs,
    )


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        future=True,
    )


engine = make_engine(load_settings().database_url)

SessionLocal = make_session_factory(engine)


def init_db(bind: Engine | None = None) -> None:
    """
    Create all tables from the ORM models.
    There are no migrations yet, so this is the schema bootstrap.
    """
    Base.metadata.create_all(bind=bind or engine)


@contextmanager
def unit_of_work(session: Session) -> Iterator[Session]:
    """
    Commit everything done inside the block, or roll all of it back.

    Services wrap multi-row writes (machine + tubes, password reset + email)
    in this so a failure half-way never leaves a partial aggregate behind.
    """
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
