"""SQLAlchemy engine/session helpers for the workspace.

Usage
-----
from db.client import make_engine, make_session_maker, session_scope

engine = make_engine("sqlite+pysqlite:///transactions.db")
sessions = make_session_maker(engine)
with session_scope(sessions) as s:
    s.execute(...)

Engines are created explicitly and handed to whoever needs them; nothing here
is cached at module level.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool


def database_url(override: str | None = None) -> str:
    url = override or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set; cannot initialize database client")
    return url


def _is_sqlite_memory(url: str) -> bool:
    if not url.startswith("sqlite"):
        return False
    _, _, path = url.partition(":///")
    return path in {"", ":memory:"}


def make_engine(url: str | None = None) -> Engine:
    """Create a SQLAlchemy engine for ``url`` (falls back to ``DATABASE_URL``)."""

    url = database_url(url)
    if _is_sqlite_memory(url):
        # One shared connection so every thread sees the same in-memory database.
        return create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_engine(url, pool_pre_ping=True)


def make_session_maker(engine: Engine) -> sessionmaker[Session]:
    """Return a session factory bound to ``engine``."""

    return sessionmaker(bind=engine, expire_on_commit=False, class_=Session)


@contextmanager
def session_scope(session_maker: sessionmaker[Session]) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session = session_maker()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = [
    "database_url",
    "make_engine",
    "make_session_maker",
    "session_scope",
]
