"""Append-only change log for Registry mutations.

Every mutation of a ``python_package_tracker`` row appends one
``ChangeRecord`` holding the action kind and a copy of the row's new
values. Records stay pending until ``drain()`` removes them; there is no
replay once drained.

Flushes but does **not** commit; the caller controls the transaction.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from pkgalerts.db.models import ChangeRecord, TrackedPackage

logger = logging.getLogger(__name__)


class ChangeAction(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


# Records whose row copy reflects a newly observed package/version pair.
NEW_VALUE_ACTIONS = frozenset({ChangeAction.INSERT, ChangeAction.UPDATE})


class ChangeLog:
    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def append(self, action: ChangeAction, row: TrackedPackage) -> ChangeRecord:
        record = ChangeRecord(
            action=ChangeAction(action).value,
            package_name=row.package_name,
            version=row.version,
            runtime_version=row.runtime_version,
            tracked=row.tracked,
        )
        self.db.add(record)
        self.db.flush()
        logger.debug("Change recorded: %s %s", record.action, record.package_name)
        return record

    def pending(
        self,
        limit: int | None = None,
        actions: Iterable[ChangeAction] | None = None,
    ) -> list[ChangeRecord]:
        """Return pending records oldest first, optionally filtered by kind."""
        stmt = select(ChangeRecord).order_by(ChangeRecord.seq.asc())
        if actions is not None:
            stmt = stmt.where(ChangeRecord.action.in_([ChangeAction(a).value for a in actions]))
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.db.execute(stmt).scalars().all())

    def has_pending(self) -> bool:
        return self.db.execute(select(ChangeRecord.seq).limit(1)).first() is not None

    def count_pending(self) -> int:
        return self.db.execute(select(func.count()).select_from(ChangeRecord)).scalar_one()

    def drain(self, up_to_seq: int | None = None) -> int:
        """Remove pending records, all of them or those with ``seq <= up_to_seq``.

        Returns the number of records removed.
        """
        stmt = delete(ChangeRecord)
        if up_to_seq is not None:
            stmt = stmt.where(ChangeRecord.seq <= up_to_seq)
        removed = self.db.execute(stmt).rowcount or 0
        self.db.flush()
        logger.info("Change log drained: %d records", removed)
        return removed

    def reset(self) -> int:
        """Discard every pending record, e.g. after manual Registry edits."""
        return self.drain()
