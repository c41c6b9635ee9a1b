"""
Shared fixtures: an in-memory database wired into the app through get_db.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from easysplit.db.base import Base
from easysplit.db.session import get_db, enable_sqlite_foreign_keys
from easysplit.api.dependencies import lookup_rate_limiter
from easysplit.main import app
import easysplit.models  # noqa: F401


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
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
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    lookup_rate_limiter.reset()
    yield TestClient(app)
    app.dependency_overrides.clear()
    lookup_rate_limiter.reset()


@pytest.fixture
def people():
    return [
        {"id": "p1", "name": "Alice"},
        {"id": "p2", "name": "Bob"},
        {"id": "p3", "name": "Charlie"},
    ]


@pytest.fixture
def split_payload(people):
    """Pizza for Alice and Bob, drinks for Charlie, dessert shared by all three."""
    return {
        "name": "Friday dinner",
        "people": people,
        "items": [
            {"id": 1, "name": "Pizza", "price": 30},
            {"id": 2, "name": "Drinks", "price": 15},
            {"id": 3, "name": "Dessert", "price": 10},
        ],
        "quantities": [
            {"itemId": 1, "personId": "p1", "quantity": 0.5},
            {"itemId": 1, "personId": "p2", "quantity": 0.5},
            {"itemId": 2, "personId": "p3", "quantity": 1},
            {"itemId": 3, "personId": "p1", "quantity": 1 / 3},
            {"itemId": 3, "personId": "p2", "quantity": 1 / 3},
            {"itemId": 3, "personId": "p3", "quantity": 1 / 3},
        ],
        "currency": "£",
        "serviceCharge": 0,
        "tipPercent": 0,
        "totals": [
            {"person": p, "subtotal": 0, "service": 0, "tip": 0, "total": 0}
            for p in people
        ],
    }
