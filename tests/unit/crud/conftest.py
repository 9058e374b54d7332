"""Shared fixtures for crud unit tests"""

import pytest
from sqlmodel import Session

from blockgen.crud.database import init_db, make_engine
from blockgen.crud.store import SQLPostStore
from blockgen.crud.transients import SQLTransientStore


@pytest.fixture(name="engine")
def engine_fixture():
    """In-memory SQLite engine with all tables created."""
    engine = make_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture(name="sql_store")
def sql_store_fixture(session):
    return SQLPostStore(session)


@pytest.fixture(name="sql_transients")
def sql_transients_fixture(session, clock):
    return SQLTransientStore(session, clock=clock)
