"""FastAPI dependency injection: database sessions, catalog, alert chain."""
from __future__ import annotations

from collections.abc import Generator
from functools import lru_cache

from sqlalchemy.orm import Session

from pkgalerts.catalog.snapshot import CatalogSource, SqlCatalogSource
from pkgalerts.core.settings import get_settings
from pkgalerts.db.session import get_catalog_engine, get_session_factory
from pkgalerts.pipeline.chain import TaskChain
from pkgalerts.pipeline.workflow import build_default_chain


def get_db() -> Generator[Session, None, None]:
    """Yield a SQLAlchemy session; commit on success, rollback on error."""
    db = get_session_factory()()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_catalog() -> CatalogSource:
    settings = get_settings()
    return SqlCatalogSource(get_catalog_engine(), settings.catalog_table)


@lru_cache(maxsize=1)
def get_alert_chain() -> TaskChain:
    return build_default_chain(get_settings())
