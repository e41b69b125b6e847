"""Daily package-alert workflow.

Stage order
-----------
1. update_tracker   -- reconcile the Registry against the catalog (cron)
2. send_alerts      -- email pending changes, if the change log has any
3. reset_change_log -- drain the change log, if it still has records

Steps 2 and 3 each evaluate the pending-records condition on their own.
Records appended between the two checks are drained without being sent,
so delivery is at-least-once for what step 2 read and best-effort for
anything that lands in between.
"""
from __future__ import annotations

import logging
from typing import Callable

from sqlalchemy.orm import Session

from pkgalerts.catalog.snapshot import CatalogSource
from pkgalerts.core.errors import PackageAlertsError
from pkgalerts.core.settings import Settings
from pkgalerts.notification.dispatcher import DispatchReport, DispatchStatus, NotificationDispatcher
from pkgalerts.notification.email_sender import EmailSender
from pkgalerts.pipeline.chain import ScheduledTask, TaskChain
from pkgalerts.pipeline.schedule import CronSchedule
from pkgalerts.tracking.change_log import ChangeLog
from pkgalerts.tracking.detector import ChangeDetector

logger = logging.getLogger(__name__)

UPDATE_TASK = "update_tracker"
ALERT_TASK = "send_alerts"
RESET_TASK = "reset_change_log"


def has_pending_changes(session_factory: Callable[[], Session]) -> bool:
    with session_factory() as db:
        return ChangeLog(db).has_pending()


def acknowledge(session_factory: Callable[[], Session]) -> int:
    """Drain the change log; return the number of records removed."""
    with session_factory() as db:
        try:
            removed = ChangeLog(db).drain()
            db.commit()
        except Exception:
            db.rollback()
            raise
    return removed


def _send_alerts(dispatcher: NotificationDispatcher) -> DispatchReport:
    report = dispatcher.dispatch()
    if report.status is DispatchStatus.SOURCE_INVALID:
        raise PackageAlertsError(f"{report.status.value}: {report.error}")
    return report


def build_alert_chain(
    session_factory: Callable[[], Session],
    catalog: CatalogSource,
    sender: EmailSender,
    settings: Settings,
) -> TaskChain:
    detector = ChangeDetector(session_factory, catalog)
    dispatcher = NotificationDispatcher(
        session_factory,
        sender,
        subject=settings.email_subject,
        batch_limit=settings.change_batch_limit,
        subscriber_limit=settings.subscriber_read_limit,
    )

    def pending() -> bool:
        return has_pending_changes(session_factory)

    chain = TaskChain(
        ScheduledTask(UPDATE_TASK, detector.tick),
        CronSchedule.parse(settings.schedule_cron),
    )
    chain.then(ScheduledTask(ALERT_TASK, lambda: _send_alerts(dispatcher), when=pending))
    chain.then(ScheduledTask(RESET_TASK, lambda: acknowledge(session_factory), when=pending))
    return chain


def build_sender(settings: Settings) -> EmailSender:
    return EmailSender(
        smtp_host=settings.smtp_host,
        smtp_port=settings.smtp_port,
        sender=settings.email_from,
        allowed_recipients=settings.alert_recipients or None,
    )


def build_default_chain(settings: Settings) -> TaskChain:
    """Wire the chain against the configured databases and SMTP relay."""
    from pkgalerts.catalog.snapshot import SqlCatalogSource
    from pkgalerts.db.session import get_catalog_engine, get_session_factory

    return build_alert_chain(
        get_session_factory(),
        SqlCatalogSource(get_catalog_engine(), settings.catalog_table),
        build_sender(settings),
        settings,
    )
