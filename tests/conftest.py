"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("CONTENT_STORE_BACKEND", "memory")
os.environ["GOOGLE_API_KEY"] = ""
os.environ.pop("GENERATION_SERVICE_URL", None)

from drillcraft.crud.content_store import SqlContentStore
from drillcraft.crud.memory_store import InMemoryContentStore
from drillcraft.db.base import Base
from drillcraft.services.context import ServiceContext
from tests.utils import FIXED_NOW, FakeClock, FakeGenerator


@pytest.fixture()
def engine():
    # StaticPool keeps one connection so TestClient worker threads see the same database.
    engine = create_engine(
        "sqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine) -> Session:
    SessionLocal = sessionmaker(bind=engine, future=True)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def sql_store(db_session) -> SqlContentStore:
    return SqlContentStore(db_session)


@pytest.fixture()
def memory_store() -> InMemoryContentStore:
    return InMemoryContentStore()


@pytest.fixture(params=["sql", "memory"])
def store(request):
    """Runs the test once against each backend."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(FIXED_NOW)


@pytest.fixture()
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture()
def context(memory_store, generator, clock) -> ServiceContext:
    return ServiceContext(
        store=memory_store,
        generator=generator,
        clock=clock,
        generation_timeout=2.0,
        reuse_pool=False,
    )
