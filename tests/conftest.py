"""Pytest fixtures. Use testcontainers-python for PostgreSQL in tests."""

import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from testcontainers.postgres import PostgresContainer

from artlens.engine.validator import InMemoryValidationCache


def clear_app_db_caches() -> None:
    """
    Clear the app's config and DB-related caches. Call this in any fixture that
    sets DATABASE_URL (e.g. to a testcontainer URL) so the app uses the new URL
    instead of a previously cached connection.
    """
    from artlens.api.main import _get_analysis_repo, _get_orchestrator, _get_session_factory
    from artlens.core import config as config_module

    config_module._config = None  # type: ignore[attr-defined]
    _get_session_factory.cache_clear()
    _get_analysis_repo.cache_clear()
    _get_orchestrator.cache_clear()


@pytest.fixture(scope="module")
def postgres_container():
    """Module-scoped PostgreSQL 16 container (testcontainers)."""
    with PostgresContainer("postgres:16-alpine") as postgres:
        yield postgres


@pytest.fixture(scope="module")
def engine(postgres_container):
    """Module-scoped SQLAlchemy engine bound to the Postgres testcontainer, with all tables created."""
    url = postgres_container.get_connection_url()
    prev = os.environ.get("DATABASE_URL")
    os.environ["DATABASE_URL"] = url
    clear_app_db_caches()
    eng = create_engine(url, pool_pre_ping=True)
    SQLModel.metadata.create_all(eng)
    try:
        yield eng
    finally:
        if prev is not None:
            os.environ["DATABASE_URL"] = prev
        else:
            os.environ.pop("DATABASE_URL", None)
        clear_app_db_caches()
        eng.dispose()


@pytest.fixture(scope="module")
def _session_factory(engine):
    """Module-scoped session factory (used by repositories under test)."""
    return sessionmaker(engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def validation_cache():
    """Fresh per-test validation cache (never the process-wide one)."""
    return InMemoryValidationCache(ttl_seconds=300.0)
