"""Notification dispatcher.

Reads pending change records, renders them into one HTML body and sends
that body to every subscriber. Steps:

1. Read up to ``batch_limit`` pending records that carry new values
   (``insert`` or ``update``). None pending: report ``NO_UPDATES``.
2. Render them into a single message.
3. Read up to ``subscriber_limit`` subscribers.
4. Send one email per subscriber; a failed recipient is recorded in its
   receipt and the loop moves on.

A failure reading the change log or the subscriber table ends the run with
``SOURCE_INVALID``. Records are not drained here; that is the
acknowledgment step's job.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pkgalerts.notification.email_sender import DeliveryReceipt, EmailSender
from pkgalerts.notification.renderer import render_update_email
from pkgalerts.notification.subscribers import SubscriberRepository
from pkgalerts.tracking.change_log import NEW_VALUE_ACTIONS, ChangeLog

logger = logging.getLogger(__name__)

DEFAULT_BATCH_LIMIT = 100
DEFAULT_SUBSCRIBER_LIMIT = 50


class DispatchStatus(str, Enum):
    SENT = "email(s) sent"
    NO_UPDATES = "no package updates to transmit"
    SOURCE_INVALID = "source query invalid"


@dataclass
class DispatchReport:
    status: DispatchStatus
    packages: list[str] = field(default_factory=list)
    last_seq: int | None = None
    body: str | None = None
    receipts: list[DeliveryReceipt] = field(default_factory=list)
    error: str | None = None

    @property
    def delivered(self) -> int:
        return sum(1 for r in self.receipts if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.receipts if not r.ok)


class NotificationDispatcher:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        sender: EmailSender,
        subject: str = "New Python Packages",
        batch_limit: int = DEFAULT_BATCH_LIMIT,
        subscriber_limit: int = DEFAULT_SUBSCRIBER_LIMIT,
    ) -> None:
        self.session_factory = session_factory
        self.sender = sender
        self.subject = subject
        self.batch_limit = batch_limit
        self.subscriber_limit = subscriber_limit

    def dispatch(self) -> DispatchReport:
        with self.session_factory() as db:
            try:
                records = ChangeLog(db).pending(limit=self.batch_limit, actions=NEW_VALUE_ACTIONS)
                if not records:
                    logger.info("No package updates to transmit")
                    return DispatchReport(status=DispatchStatus.NO_UPDATES)

                body = render_update_email(records)
                packages = [r.package_name for r in records]
                last_seq = max(r.seq for r in records)

                subscribers = SubscriberRepository(db)
                recipients = subscribers.list(limit=self.subscriber_limit)
                total = subscribers.count()
            except SQLAlchemyError as exc:
                logger.error("Change log or subscriber query failed: %s", type(exc).__name__)
                return DispatchReport(status=DispatchStatus.SOURCE_INVALID, error=str(exc))

        if total > len(recipients):
            logger.warning(
                "Subscriber list truncated: %d of %d recipients read (limit %d)",
                len(recipients), total, self.subscriber_limit,
            )

        receipts = self.sender.send_all(recipients, self.subject, body, "text/html")
        report = DispatchReport(
            status=DispatchStatus.SENT,
            packages=packages,
            last_seq=last_seq,
            body=body,
            receipts=receipts,
        )
        logger.info(
            "Dispatched %d package updates: %d delivered, %d failed",
            len(packages), report.delivered, report.failed,
        )
        return report
