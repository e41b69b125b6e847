#!/usr/bin/env python3
"""Set up package alerts: tables, subscribers, Registry seed.

Creates the tables if missing, subscribes every address in
ALERT_RECIPIENTS, seeds the Registry from the catalog with the names in
TRACKED_PACKAGES flagged as tracked, and discards any change records the
setup produced. Ends by reporting when the scheduler will first fire the
chain; start scripts/run_scheduler.py to resume it.

Usage:
    python scripts/setup_package_alerts.py          # uses DATABASE_URL from env / .env
    ALERT_RECIPIENTS='["a@example.com"]' TRACKED_PACKAGES='["pandas"]' \
        python scripts/setup_package_alerts.py
"""
from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone

# Ensure project root is on sys.path
sys.path.insert(0, ".")

from pkgalerts.catalog.snapshot import SqlCatalogSource
from pkgalerts.core.logging import setup_logging
from pkgalerts.core.settings import get_settings
from pkgalerts.db.base import Base
from pkgalerts.db.session import get_catalog_engine, get_engine, get_session_factory
from pkgalerts.notification.subscribers import SubscriberRepository
from pkgalerts.pipeline.schedule import CronSchedule
from pkgalerts.tracking.change_log import ChangeLog
from pkgalerts.tracking.registry import PackageRegistry

logger = logging.getLogger("setup_package_alerts")


def main() -> None:
    setup_logging()
    settings = get_settings()
    schedule = CronSchedule.parse(settings.schedule_cron)

    Base.metadata.create_all(bind=get_engine())
    catalog = SqlCatalogSource(get_catalog_engine(), settings.catalog_table)

    with get_session_factory()() as session:
        SubscriberRepository(session).sync(settings.alert_recipients)
        PackageRegistry(session).seed(catalog.snapshot(), settings.tracked_packages)
        ChangeLog(session).reset()
        session.commit()

    next_run = schedule.next_after(datetime.now(timezone.utc))
    logger.info(
        "Package alerts set up; schedule %r (UTC), next run at %s once run_scheduler.py is started",
        schedule.expression, next_run.isoformat(),
    )


if __name__ == "__main__":
    main()
