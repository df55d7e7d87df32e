from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .tables import Base

_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def build_engine(url: str, isolation_level: str = "SERIALIZABLE", echo: bool = False) -> Engine:
    """Create an engine whose transactions serialize writers.

    SQLite has no SERIALIZABLE level to ask for, so write transactions are
    opened with ``BEGIN IMMEDIATE`` instead, which takes the write lock up
    front. A connection carrying the ``begin_mode`` execution option (see
    ``Database.transaction``) begins in that mode.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, echo=echo, pool_pre_ping=True, isolation_level=isolation_level)

    if url in _MEMORY_URLS:
        engine = create_engine(
            url, echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(url, echo=echo, connect_args={"timeout": 30})

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # hand transaction control to SQLAlchemy's "begin" event
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql(f"BEGIN {conn.get_execution_options().get('begin_mode', 'IMMEDIATE')}")

    return engine


class Database:
    def __init__(self, url: str, isolation_level: str = "SERIALIZABLE", echo: bool = False,
                 engine: Optional[Engine] = None):
        self.url = url
        self.engine = engine or build_engine(url, isolation_level=isolation_level, echo=echo)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

    def create_all(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def drop_all(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    @contextmanager
    def transaction(self, write: bool = True) -> Iterator[Session]:
        """Session bound to one transaction: committed on exit, rolled back on error.

        Read-only callers pass ``write=False`` so that on SQLite they take a
        deferred shared lock and do not queue behind writers.
        """
        with self.SessionLocal() as session:
            with session.begin():
                if not write:
                    session.connection(execution_options={"begin_mode": "DEFERRED"})
                yield session

    def dispose(self) -> None:
        self.engine.dispose()
