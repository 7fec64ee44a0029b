# app/database.py
from typing import Iterator
from fastapi import Request
from sqlalchemy import create_engine as sa_create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

# SQLAlchemy Base
Base = declarative_base()


def enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    """SQLite ignores foreign keys unless every connection turns them on"""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(database_url: str) -> Engine:
    """
    Create the SQLAlchemy engine for a database URL.
    In-memory SQLite needs a single shared connection, otherwise every
    session would see its own empty database.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url == "sqlite://":
            kwargs["poolclass"] = StaticPool
        engine = sa_create_engine(database_url, **kwargs)
        event.listen(engine, "connect", enable_sqlite_foreign_keys)
        return engine
    return sa_create_engine(database_url, pool_pre_ping=True)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Dependency to get DB session
def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
