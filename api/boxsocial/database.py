import hashlib
import logging
import sqlite3
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import DATABASE_URL

logger = logging.getLogger(__name__)

engine = create_engine(DATABASE_URL, future=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
Base = declarative_base()


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def dialect_name(db: Session) -> str:
    return db.get_bind().dialect.name


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Commit everything done inside the block, or nothing.

    Any exception rolls the session back and propagates unchanged; callers map
    database errors to API errors.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def upsert(db: Session, table):
    """INSERT statement supporting ON CONFLICT for the bound dialect."""
    if dialect_name(db) == "postgresql":
        return postgresql.insert(table)
    return sqlite.insert(table)


def advisory_key(*parts: str) -> int:
    digest = hashlib.sha256("|".join(parts).encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big", signed=True)


def lock_key(db: Session, *parts: str) -> None:
    """Take a transaction-scoped lock on the given key.

    Postgres uses an advisory lock released at commit/rollback. SQLite has a
    single writer per database, so there is nothing to take.
    """
    if dialect_name(db) != "postgresql":
        return
    key = advisory_key(*parts)
    db.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": key})
    logger.debug("[DB] advisory lock acquired key=%s parts=%s", key, parts)
