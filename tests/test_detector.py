"""Tests for pkgalerts/tracking/detector.py."""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from pkgalerts.catalog.snapshot import PackageObservation, StaticCatalogSource
from pkgalerts.core.errors import CatalogUnavailableError
from pkgalerts.tracking.change_log import ChangeLog
from pkgalerts.tracking.detector import ChangeDetector, DetectorState
from pkgalerts.tracking.registry import PackageRegistry


@pytest.fixture()
def seeded(session_factory):
    with session_factory() as db:
        PackageRegistry(db).seed(
            {"pandas": PackageObservation("pandas", "1.5.3", "3.8")},
            tracked_names=["pandas"],
        )
        db.commit()
    return session_factory


class TestChangeDetector:
    def test_tick_commits_updates(self, seeded):
        catalog = StaticCatalogSource([PackageObservation("pandas", "2.0.0", "3.8")])
        detector = ChangeDetector(seeded, catalog)

        assert detector.tick() == 1
        assert detector.state is DetectorState.IDLE

        with seeded() as db:
            assert PackageRegistry(db).get("pandas").version == "2.0.0"
            assert ChangeLog(db).count_pending() == 1

    def test_unchanged_catalog_writes_nothing(self, seeded):
        catalog = StaticCatalogSource([PackageObservation("pandas", "1.5.3", "3.8")])

        assert ChangeDetector(seeded, catalog).tick() == 0
        with seeded() as db:
            assert not ChangeLog(db).has_pending()

    def test_catalog_failure_aborts_without_writes(self, seeded):
        catalog = MagicMock()
        catalog.snapshot.side_effect = CatalogUnavailableError("catalog down")
        detector = ChangeDetector(seeded, catalog)

        with pytest.raises(CatalogUnavailableError):
            detector.tick()

        assert detector.state is DetectorState.IDLE
        with seeded() as db:
            assert PackageRegistry(db).get("pandas").version == "1.5.3"
            assert not ChangeLog(db).has_pending()
