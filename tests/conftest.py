"""
Shared test fixtures: isolated SQLite database, pipeline instances, test client.
"""

import os
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Point settings at the test database before importing app modules
os.environ["DATABASE_URL"] = "sqlite:///./test_costflow.db"
os.environ["PRICING_SOURCE"] = ""

from costflow.bus import EventBus
from costflow.calculators.registry import CalculatorRegistry, register_builtin_calculators
from costflow.config import settings
from costflow.database import Base
from costflow.deps import get_runner
from costflow.main import app
from costflow.pricing import PricingResolver
from costflow.runner import CalculatorRunner
from costflow.store import PreferenceStore


TEST_DATABASE_URL = "sqlite:///./test_costflow.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def pricing():
    """Resolver on the packaged pricing table."""
    return PricingResolver()


@pytest.fixture
def registry(pricing):
    return register_builtin_calculators(CalculatorRegistry(), pricing)


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def store():
    return PreferenceStore(TestingSessionLocal, namespace="costflow", history_limit=settings.HISTORY_LIMIT)


@pytest.fixture
def runner(registry, pricing, bus, store):
    return CalculatorRunner(registry, pricing, bus, store, settings)


@pytest.fixture
def client(runner):
    """FastAPI test client wired to the per-test runner."""
    app.dependency_overrides[get_runner] = lambda: runner
    yield TestClient(app)
    app.dependency_overrides.pop(get_runner, None)


@pytest.fixture
def db_session():
    """Direct database session for test setup/assertions."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def session_factory():
    return TestingSessionLocal
