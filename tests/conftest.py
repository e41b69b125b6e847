import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pkgalerts.db.base import Base
from pkgalerts.db import models  # noqa: F401


@pytest.fixture()
def engine():
    """In-memory SQLite engine shared by every session of a test."""
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db_session(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    from pkgalerts.core.settings import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
