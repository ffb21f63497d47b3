from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def _unicode_lower(value: Optional[str]) -> Optional[str]:
    return value.lower() if isinstance(value, str) else value


def _register_sqlite_functions(dbapi_connection, connection_record) -> None:
    # SQLite's built-in lower() only folds ASCII; icontains() relies on it,
    # so replace it with str.lower to match the in-memory store.
    dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)


def make_engine(url: str) -> Engine:
    """
    Create a SQLAlchemy engine for the SQL room store.

    SQLite URLs get ``check_same_thread=False`` because FastAPI runs sync
    handlers on a thread pool; in-memory SQLite additionally shares one
    connection so every session sees the same database. SQLite connections
    also get a Unicode-aware ``lower()``.

    Parameters
    ----------
    url : str
        SQLAlchemy database URL.

    Returns
    -------
    Engine
        Engine bound to ``url``.
    """
    if not url.startswith("sqlite"):
        return create_engine(url)
    kwargs = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    engine = create_engine(url, **kwargs)
    event.listen(engine, "connect", _register_sqlite_functions)
    return engine


def make_sessionmaker(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
