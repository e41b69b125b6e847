from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, func, text as sql_text
from sqlalchemy.orm import Mapped, mapped_column

from pkgalerts.db.base import Base


class TrackedPackage(Base):
    """Registry row: last-known versions of one package name."""

    __tablename__ = "python_package_tracker"

    package_name: Mapped[str] = mapped_column(String(256), primary_key=True)
    version: Mapped[str | None] = mapped_column(String(128), nullable=True)
    runtime_version: Mapped[str | None] = mapped_column(String(64), nullable=True)
    tracked: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sql_text("false")
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )


class ChangeRecord(Base):
    """One Registry mutation awaiting notification, ordered by ``seq``."""

    __tablename__ = "package_change_log"
    __table_args__ = {"sqlite_autoincrement": True}

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    action: Mapped[str] = mapped_column(String(16), nullable=False)
    package_name: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    version: Mapped[str | None] = mapped_column(String(128), nullable=True)
    runtime_version: Mapped[str | None] = mapped_column(String(64), nullable=True)
    tracked: Mapped[bool] = mapped_column(Boolean, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Subscriber(Base):
    __tablename__ = "package_alert_subscribers"

    email: Mapped[str] = mapped_column(String(320), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class CatalogPackage(Base):
    """Catalog table mirror; one row per published (name, version, runtime) build."""

    __tablename__ = "catalog_packages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    package_name: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    version: Mapped[str | None] = mapped_column(String(128), nullable=True)
    runtime_version: Mapped[str | None] = mapped_column(String(64), nullable=True)
