"""Tests for pkgalerts/notification/dispatcher.py.

SMTP is mocked; storage is in-memory SQLite.
"""
from __future__ import annotations

import logging
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from pkgalerts.db.models import TrackedPackage
from pkgalerts.notification.dispatcher import DispatchStatus, NotificationDispatcher
from pkgalerts.notification.email_sender import DeliveryStatus, EmailSender
from pkgalerts.notification.subscribers import SubscriberRepository
from pkgalerts.tracking.change_log import ChangeAction, ChangeLog


# ---------------------------------------------------------------------------
# Fixtures / helpers
# ---------------------------------------------------------------------------

@pytest.fixture()
def mock_server():
    with patch("pkgalerts.notification.email_sender.smtplib.SMTP") as mock_smtp_cls:
        server = MagicMock()
        mock_smtp_cls.return_value.__enter__ = MagicMock(return_value=server)
        mock_smtp_cls.return_value.__exit__ = MagicMock(return_value=False)
        yield server


def _add_changes(session_factory, names: list[str], action: ChangeAction = ChangeAction.UPDATE) -> None:
    with session_factory() as db:
        log = ChangeLog(db)
        for name in names:
            row = TrackedPackage(package_name=name, version="2.0.0", runtime_version="3.9", tracked=True)
            db.add(row)
            db.flush()
            log.append(action, row)
        db.commit()


def _subscribe(session_factory, emails: list[str]) -> None:
    with session_factory() as db:
        SubscriberRepository(db).sync(emails)
        db.commit()


def _dispatcher(session_factory, **kwargs) -> NotificationDispatcher:
    return NotificationDispatcher(session_factory, EmailSender(smtp_host="localhost"), **kwargs)


# ===========================================================================
# dispatch
# ===========================================================================

class TestDispatch:
    def test_no_pending_records_sends_nothing(self, session_factory, mock_server):
        _subscribe(session_factory, ["a@example.com"])

        report = _dispatcher(session_factory).dispatch()

        assert report.status is DispatchStatus.NO_UPDATES
        assert report.status.value == "no package updates to transmit"
        assert report.receipts == []
        mock_server.sendmail.assert_not_called()

    def test_one_email_per_subscriber(self, session_factory, mock_server):
        _add_changes(session_factory, ["pandas", "numpy"])
        _subscribe(session_factory, ["a@example.com", "b@example.com"])

        report = _dispatcher(session_factory, subject="New Python Packages").dispatch()

        assert report.status is DispatchStatus.SENT
        assert report.status.value == "email(s) sent"
        assert report.packages == ["pandas", "numpy"]
        assert report.delivered == 2
        assert mock_server.sendmail.call_count == 2
        assert "<td>pandas</td>" in report.body

    def test_invalid_subscriber_does_not_block_others(self, session_factory, mock_server):
        _add_changes(session_factory, ["pandas"])
        _subscribe(session_factory, ["a@example.com", "INVALID", "b@example.com"])

        report = _dispatcher(session_factory).dispatch()

        assert report.status is DispatchStatus.SENT
        assert report.delivered == 2
        assert report.failed == 1
        delivered = sorted(c.args[1][0] for c in mock_server.sendmail.call_args_list)
        assert delivered == ["a@example.com", "b@example.com"]
        failed = [r for r in report.receipts if r.status is DeliveryStatus.FAILED]
        assert failed[0].email == "invalid"

    def test_bare_host_subscribers_around_invalid_one(self, session_factory, mock_server):
        _add_changes(session_factory, ["pandas"])
        _subscribe(session_factory, ["a@x", "INVALID", "b@x"])

        report = _dispatcher(session_factory).dispatch()

        assert report.status is DispatchStatus.SENT
        assert mock_server.sendmail.call_count == 2
        delivered = sorted(c.args[1][0] for c in mock_server.sendmail.call_args_list)
        assert delivered == ["a@x", "b@x"]
        assert [r.email for r in report.receipts if not r.ok] == ["invalid"]

    def test_batch_is_capped_at_100_records(self, session_factory, mock_server):
        _add_changes(session_factory, [f"pkg{i:03d}" for i in range(150)])
        _subscribe(session_factory, ["a@example.com"])

        report = _dispatcher(session_factory).dispatch()

        assert len(report.packages) == 100
        assert report.packages[0] == "pkg000"
        assert report.packages[-1] == "pkg099"
        assert report.body.count("<td>pkg") == 100
        assert mock_server.sendmail.call_count == 1

    def test_delete_records_are_not_dispatched(self, session_factory, mock_server):
        _add_changes(session_factory, ["pandas"], action=ChangeAction.DELETE)
        _subscribe(session_factory, ["a@example.com"])

        report = _dispatcher(session_factory).dispatch()

        assert report.status is DispatchStatus.NO_UPDATES

    def test_dispatch_does_not_drain(self, session_factory, mock_server):
        _add_changes(session_factory, ["pandas"])

        _dispatcher(session_factory).dispatch()

        with session_factory() as db:
            assert ChangeLog(db).count_pending() == 1

    def test_subscriber_list_is_truncated_with_warning(self, session_factory, mock_server, caplog):
        _add_changes(session_factory, ["pandas"])
        _subscribe(session_factory, [f"user{i:02d}@example.com" for i in range(5)])

        with caplog.at_level(logging.WARNING):
            report = _dispatcher(session_factory, subscriber_limit=3).dispatch()

        assert len(report.receipts) == 3
        assert "truncated" in caplog.text

    def test_unreadable_change_log_is_source_invalid(self, mock_server):
        bare = create_engine("sqlite+pysqlite:///:memory:")
        factory = sessionmaker(bind=bare)

        report = _dispatcher(factory).dispatch()

        assert report.status is DispatchStatus.SOURCE_INVALID
        assert report.status.value == "source query invalid"
        assert report.error
        mock_server.sendmail.assert_not_called()
