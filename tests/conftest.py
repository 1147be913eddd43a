import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from database.database import get_db, init_db, make_engine
from database.repository import ExpenseStore
from fastapi_backend import app
from ledger.service import ExpenseService


@pytest.fixture
def engine():
    engine = make_engine("sqlite://")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db):
    return ExpenseStore(db)


@pytest.fixture
def service(store):
    return ExpenseService(store)


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
