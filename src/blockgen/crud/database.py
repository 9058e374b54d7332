"""Database engine creation, schema initialization, and session helpers"""

from collections.abc import Iterator

from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from blockgen.crud import tables  # noqa: F401  registers table metadata


_MEMORY_URLS = {"sqlite://", "sqlite:///:memory:"}


def make_engine(db_url: str) -> Engine:
    """Create an engine. In-memory SQLite shares one connection so every session sees the same tables."""
    if db_url in _MEMORY_URLS:
        return create_engine(db_url, echo=False, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    if db_url.startswith("sqlite"):
        return create_engine(db_url, echo=False, connect_args={"check_same_thread": False})
    return create_engine(db_url, echo=False)


def init_db(engine: Engine) -> None:
    """Create all tables that do not already exist."""
    SQLModel.metadata.create_all(engine)


def reset_db(engine: Engine) -> None:
    """Drop and recreate every table."""
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)


def get_session(engine: Engine) -> Iterator[Session]:
    with Session(engine) as session:
        yield session
