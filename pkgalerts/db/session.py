from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from pkgalerts.core.settings import get_settings

_engine = None
_catalog_engine = None
_session_factory = None


def get_engine():
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_engine(settings.database_url, pool_pre_ping=True)
    return _engine


def get_catalog_engine():
    global _catalog_engine
    if _catalog_engine is None:
        settings = get_settings()
        if settings.catalog_database_url is None:
            _catalog_engine = get_engine()
        else:
            _catalog_engine = create_engine(settings.catalog_database_url, pool_pre_ping=True)
    return _catalog_engine


def get_session_factory():
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            autocommit=False,
            autoflush=False,
            class_=Session,
        )
    return _session_factory
