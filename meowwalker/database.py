"""
SQLite file holding the bot's JSON records.

The bot opens one engine for its lifetime; the import script opens its own
for whatever file it is pointed at. Both hand a session factory to
KeyValueStore.
"""
import logging
from contextlib import contextmanager
from typing import Callable, ContextManager, Generator, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from meowwalker.db_models import KeyValueRecord  # noqa: F401 - registers kv_records

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], ContextManager[Session]]

_engine: Optional[Engine] = None


def open_engine(db_file: str) -> Engine:
    """Create an engine for db_file and make sure the records table exists"""
    engine = create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},  # reminder loop and handlers share it
    )
    SQLModel.metadata.create_all(engine)
    logger.info(f"Record database ready: {db_file}")
    return engine


def session_factory(engine: Engine) -> SessionFactory:
    """
    Sessions bound to engine that commit when the block succeeds and
    roll back when it raises.

    Usage:
        store = KeyValueStore(session_factory(engine))
    """

    @contextmanager
    def scope() -> Generator[Session, None, None]:
        session = Session(engine)
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return scope


def init_database(db_file: str) -> SessionFactory:
    """Open the bot's database once and return its session factory"""
    global _engine
    if _engine is None:
        _engine = open_engine(db_file)
    return session_factory(_engine)


def close_database() -> None:
    """Dispose of the bot's engine"""
    global _engine
    if _engine:
        _engine.dispose()
        _engine = None
        logger.info("Database connections closed")
