"""Database layer — engine, session, ORM base."""

from signal_desk.db.base import Base
from signal_desk.db.engine import Database, psycopg_url

__all__ = ["Base", "Database", "psycopg_url"]
