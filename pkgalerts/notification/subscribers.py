from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pkgalerts.db.models import Subscriber

logger = logging.getLogger(__name__)


def normalize_email(value: str) -> str:
    return value.strip().strip('"').lower()


class SubscriberRepository:
    """The deduplicated mailing list for update emails."""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def sync(self, emails: Iterable[str]) -> int:
        """Add any of *emails* not yet subscribed; return how many were added."""
        existing = set(self.db.execute(select(Subscriber.email)).scalars().all())
        added = 0
        for raw in emails:
            email = normalize_email(raw)
            if not email or email in existing:
                continue
            self.db.add(Subscriber(email=email))
            existing.add(email)
            added += 1
        self.db.flush()
        logger.info("Subscribers synced: %d added, %d total", added, len(existing))
        return added

    def list(self, limit: int | None = None) -> list[str]:
        stmt = select(Subscriber.email).order_by(Subscriber.created_at.asc(), Subscriber.email.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.db.execute(stmt).scalars().all())

    def count(self) -> int:
        return self.db.execute(select(func.count()).select_from(Subscriber)).scalar_one()
