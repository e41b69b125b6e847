"""Change detector: one Registry reconciliation per scheduled tick."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from sqlalchemy.orm import Session

from pkgalerts.catalog.snapshot import CatalogSource
from pkgalerts.tracking.registry import PackageRegistry

logger = logging.getLogger(__name__)


class DetectorState(str, Enum):
    IDLE = "idle"
    RECONCILING = "reconciling"


class ChangeDetector:
    """Reconcile the Registry against a fresh catalog snapshot.

    Each ``tick()`` runs in its own session and commits only when the whole
    reconciliation succeeded. Errors roll back and propagate; the next
    scheduled tick starts over.
    """

    def __init__(self, session_factory: Callable[[], Session], catalog: CatalogSource) -> None:
        self.session_factory = session_factory
        self.catalog = catalog
        self.state = DetectorState.IDLE

    def tick(self) -> int:
        """Run one reconciliation; return the number of change records written."""
        self.state = DetectorState.RECONCILING
        try:
            with self.session_factory() as db:
                try:
                    snapshot = self.catalog.snapshot()
                    records = PackageRegistry(db).reconcile(snapshot)
                    db.commit()
                except Exception:
                    db.rollback()
                    logger.exception("Reconciliation aborted")
                    raise
        finally:
            self.state = DetectorState.IDLE

        logger.info("Reconciliation complete: %d packages updated", len(records))
        return len(records)
