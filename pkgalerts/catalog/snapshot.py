"""Catalog snapshot: latest known version per package name.

The catalog is read-only and lists one row per published build, so a
package name usually appears many times. ``aggregate_latest`` collapses
those rows to one observation per name, taking the highest version and
the highest runtime version independently.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import column, select, table
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from pkgalerts.catalog.versioning import max_version
from pkgalerts.core.errors import CatalogUnavailableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackageObservation:
    name: str
    version: str | None
    runtime_version: str | None


def aggregate_latest(
    observations: Iterable[PackageObservation],
) -> dict[str, PackageObservation]:
    """Group *observations* by name, keeping the maximum of each version field."""
    versions: dict[str, list[str | None]] = defaultdict(list)
    runtimes: dict[str, list[str | None]] = defaultdict(list)
    for obs in observations:
        versions[obs.name].append(obs.version)
        runtimes[obs.name].append(obs.runtime_version)

    return {
        name: PackageObservation(
            name=name,
            version=max_version(versions[name]),
            runtime_version=max_version(runtimes[name]),
        )
        for name in versions
    }


class CatalogSource(Protocol):
    def snapshot(self) -> dict[str, PackageObservation]:
        ...

    def lookup(self, name: str) -> PackageObservation | None:
        ...


class StaticCatalogSource:
    """In-memory catalog built from a fixed list of observations."""

    def __init__(self, observations: Iterable[PackageObservation] = ()) -> None:
        self._observations = list(observations)

    def publish(self, *observations: PackageObservation) -> None:
        self._observations.extend(observations)

    def snapshot(self) -> dict[str, PackageObservation]:
        return aggregate_latest(self._observations)

    def lookup(self, name: str) -> PackageObservation | None:
        return aggregate_latest(o for o in self._observations if o.name == name).get(name)


class SqlCatalogSource:
    """Catalog read from a ``(package_name, version, runtime_version)`` table."""

    def __init__(self, engine: Engine, table_name: str = "catalog_packages") -> None:
        self.engine = engine
        self.table_name = table_name
        self._table = table(
            table_name,
            column("package_name"),
            column("version"),
            column("runtime_version"),
        )

    def _read(self, name: str | None = None) -> list[PackageObservation]:
        stmt = select(
            self._table.c.package_name,
            self._table.c.version,
            self._table.c.runtime_version,
        )
        if name is not None:
            stmt = stmt.where(self._table.c.package_name == name)
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).all()
        except SQLAlchemyError as exc:
            logger.error("Catalog table %s could not be read: %s", self.table_name, type(exc).__name__)
            raise CatalogUnavailableError(f"Catalog table {self.table_name!r} unavailable") from exc
        return [PackageObservation(name=r[0], version=r[1], runtime_version=r[2]) for r in rows]

    def snapshot(self) -> dict[str, PackageObservation]:
        latest = aggregate_latest(self._read())
        logger.info("Catalog snapshot: %d packages", len(latest))
        return latest

    def lookup(self, name: str) -> PackageObservation | None:
        return aggregate_latest(self._read(name)).get(name)
