from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Iterator

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from courtclub import config


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine; SQLite transactions take the write lock on BEGIN.

    pysqlite defers BEGIN until the first write, so two sessions could both
    pass the overlap check before either inserts. Emitting BEGIN IMMEDIATE
    ourselves makes the overlap read and the insert one serialized unit.
    """
    is_sqlite = database_url.startswith("sqlite")
    connect_args = {"check_same_thread": False} if is_sqlite else {}

    if is_sqlite and database_url not in ("sqlite://", "sqlite:///:memory:"):
        db_path = database_url.replace("sqlite:///", "", 1)
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(database_url, echo=echo, connect_args=connect_args)

    if is_sqlite:

        @event.listens_for(engine, "connect")
        def _disable_pysqlite_begin(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine, "begin")
        def _begin_immediate(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


engine: Engine = build_engine(config.DATABASE_URL, echo=config.SQL_ECHO)


def get_session() -> Generator[Session, None, None]:
    """Get database session"""
    with Session(engine) as session:
        yield session


@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """Run a block as one unit of work: commit on success, roll back on any error."""
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def init_db(bind: Engine = None) -> None:
    """Initialize database - create all tables"""
    # Import all models to ensure they're registered with SQLModel metadata
    import courtclub.models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)
