"""Tracked-package Registry.

One ``TrackedPackage`` row per package name. Only rows flagged
``tracked`` take part in reconciliation; untracked rows are kept as
history. Every row mutation after setup appends one record to the
``ChangeLog``.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from sqlalchemy import select
from sqlalchemy.orm import Session

from pkgalerts.catalog.snapshot import CatalogSource, PackageObservation
from pkgalerts.catalog.versioning import is_newer
from pkgalerts.core.errors import PackageNotFoundError
from pkgalerts.db.models import ChangeRecord, TrackedPackage
from pkgalerts.tracking.change_log import ChangeAction, ChangeLog

logger = logging.getLogger(__name__)


class PackageRegistry:
    """Read and mutate Registry rows inside the caller's session."""

    def __init__(self, db_session: Session, change_log: ChangeLog | None = None) -> None:
        self.db = db_session
        self.change_log = change_log or ChangeLog(db_session)

    # -- query --------------------------------------------------------------

    def get(self, name: str) -> TrackedPackage | None:
        return self.db.get(TrackedPackage, name)

    def list(self, tracked: bool | None = None) -> list[TrackedPackage]:
        stmt = select(TrackedPackage).order_by(TrackedPackage.package_name.asc())
        if tracked is not None:
            stmt = stmt.where(TrackedPackage.tracked == tracked)
        return list(self.db.execute(stmt).scalars().all())

    # -- setup --------------------------------------------------------------

    def seed(
        self,
        snapshot: Mapping[str, PackageObservation],
        tracked_names: Iterable[str] = (),
    ) -> int:
        """Bulk-load *snapshot* as Registry rows; return the number of rows created.

        Rows for *tracked_names* are flagged tracked, all others are not.
        Names already present are left as they are. Seeding is setup work
        and writes no change records.
        """
        tracked_set = set(tracked_names)
        existing = set(self.db.execute(select(TrackedPackage.package_name)).scalars().all())
        created = 0
        for name, obs in snapshot.items():
            if name in existing:
                continue
            self.db.add(
                TrackedPackage(
                    package_name=name,
                    version=obs.version,
                    runtime_version=obs.runtime_version,
                    tracked=name in tracked_set,
                )
            )
            created += 1
        self.db.flush()

        missing = tracked_set - set(snapshot) - existing
        if missing:
            logger.warning("Tracked packages absent from catalog: %s", ", ".join(sorted(missing)))
        logger.info("Registry seeded: %d new rows, %d tracked", created, len(tracked_set - missing))
        return created

    # -- operator changes ---------------------------------------------------

    def set_tracked(self, name: str, value: bool) -> TrackedPackage:
        """Flip the tracked flag of *name*.

        Raises ``PackageNotFoundError`` when *name* has no Registry row.
        Setting the flag to its current value changes nothing.
        """
        row = self.get(name)
        if row is None:
            raise PackageNotFoundError(name)
        if row.tracked == value:
            return row
        row.tracked = value
        self.db.flush()
        self.change_log.append(ChangeAction.UPDATE, row)
        logger.info("Package %s tracked=%s", name, value)
        return row

    def add_from_catalog(
        self,
        name: str,
        catalog: CatalogSource,
        tracked: bool = True,
    ) -> TrackedPackage:
        """Insert a Registry row for *name* populated from the catalog.

        Raises ``ValueError`` when *name* already has a row and
        ``PackageNotFoundError`` when the catalog does not list it.
        """
        if self.get(name) is not None:
            raise ValueError(f"Package {name!r} is already in the registry")
        obs = catalog.lookup(name)
        if obs is None:
            raise PackageNotFoundError(name, where="catalog")

        row = TrackedPackage(
            package_name=name,
            version=obs.version,
            runtime_version=obs.runtime_version,
            tracked=tracked,
        )
        self.db.add(row)
        self.db.flush()
        self.change_log.append(ChangeAction.INSERT, row)
        logger.info("Package %s added from catalog (tracked=%s)", name, tracked)
        return row

    # -- reconciliation -----------------------------------------------------

    def reconcile(self, snapshot: Mapping[str, PackageObservation]) -> list[ChangeRecord]:
        """Advance tracked rows to newer versions found in *snapshot*.

        ``version`` and ``runtime_version`` advance independently, only when
        the snapshot value is non-null and strictly newer. Names missing from
        the snapshot are left alone. A row that changes yields one change
        record carrying its new values.
        """
        records: list[ChangeRecord] = []
        for row in self.list(tracked=True):
            obs = snapshot.get(row.package_name)
            if obs is None:
                continue

            changed = False
            if is_newer(obs.version, row.version):
                logger.info("Package %s version %s -> %s", row.package_name, row.version, obs.version)
                row.version = obs.version
                changed = True
            if is_newer(obs.runtime_version, row.runtime_version):
                logger.info(
                    "Package %s runtime %s -> %s",
                    row.package_name, row.runtime_version, obs.runtime_version,
                )
                row.runtime_version = obs.runtime_version
                changed = True

            if changed:
                self.db.flush()
                records.append(self.change_log.append(ChangeAction.UPDATE, row))

        return records
