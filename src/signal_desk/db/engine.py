"""Database engine and session management."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from signal_desk.db.base import Base


def psycopg_url(url: str) -> str:
    """Rewrite postgresql:// to postgresql+psycopg:// for psycopg v3."""
    if url.startswith("postgresql://"):
        return "postgresql+psycopg://" + url[len("postgresql://"):]
    return url


class Database:
    """Owns one engine and its session factory.

    Built once per process and handed to the stores that need it.
    """

    def __init__(self, url: str, **engine_kwargs) -> None:
        self.url = psycopg_url(url)
        self.engine: Engine = create_engine(self.url, **engine_kwargs)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    @classmethod
    def from_engine(cls, engine: Engine) -> Database:
        db = cls.__new__(cls)
        db.url = str(engine.url)
        db.engine = engine
        db._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        return db

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Yield a session, rolling back on error and closing when done."""
        session = self._session_factory()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_all(self) -> None:
        """Create every table known to ``Base.metadata`` (dev and tests)."""
        import signal_desk.db.tables  # noqa: F401

        Base.metadata.create_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()
