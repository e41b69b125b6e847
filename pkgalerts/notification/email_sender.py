"""SMTP email sender.

Sends one message per recipient through an SMTP relay. Recipients are
checked against an optional allow-list before anything is sent, so an
address the integration does not permit fails the same way a malformed
one does. There are no retries; a failed recipient is reported in its
``DeliveryReceipt`` and picked up again on the next scheduled run only if
new changes are pending.

Safety: recipient addresses are never logged, only their position.
"""
from __future__ import annotations

import logging
import re
import smtplib
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from enum import Enum

from pkgalerts.core.errors import EmailDeliveryError, InvalidRecipientError

logger = logging.getLogger(__name__)

_SUBTYPES = {"text/html": "html", "text/plain": "plain"}

# local@domain with no whitespace; the relay decides the rest.
_ADDRESS_SHAPE = re.compile(r"[^@\s]+@[^@\s]+")


class DeliveryStatus(str, Enum):
    SENT = "SENT"
    FAILED = "FAILED"


# ---------------------------------------------------------------------------
# DeliveryReceipt
# ---------------------------------------------------------------------------

@dataclass
class DeliveryReceipt:
    """Record of a single delivery attempt."""

    email: str
    status: DeliveryStatus
    timestamp: datetime
    smtp_response: str | None
    error_type: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is DeliveryStatus.SENT


# ---------------------------------------------------------------------------
# EmailSender
# ---------------------------------------------------------------------------

class EmailSender:
    """Send notification emails via SMTP."""

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int = 25,
        sender: str = "noreply@notifications.local",
        allowed_recipients: Iterable[str] | None = None,
    ) -> None:
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.sender = sender
        self.allowed_recipients = (
            None if allowed_recipients is None
            else frozenset(a.strip().lower() for a in allowed_recipients)
        )

    def _check_recipient(self, recipient: str) -> None:
        if not _ADDRESS_SHAPE.fullmatch(recipient or ""):
            raise InvalidRecipientError("Recipient is not an email address")
        if self.allowed_recipients is not None and recipient.lower() not in self.allowed_recipients:
            raise InvalidRecipientError("Recipient is not in the allowed recipient list")

    # -- transport ----------------------------------------------------------

    def deliver(
        self,
        recipient: str,
        subject: str,
        body: str,
        content_type: str = "text/html",
    ) -> None:
        """Send one message; raise on failure.

        Raises ``InvalidRecipientError`` for malformed, disallowed or
        refused addresses and ``EmailDeliveryError`` for any other
        transport failure.
        """
        if content_type not in _SUBTYPES:
            raise ValueError(f"Unsupported content type {content_type!r}")
        self._check_recipient(recipient)

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = recipient
        msg.attach(MIMEText(body, _SUBTYPES[content_type]))

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.sendmail(self.sender, [recipient], msg.as_string())
        except smtplib.SMTPRecipientsRefused as exc:
            raise InvalidRecipientError("Recipient refused by SMTP server") from exc
        except (smtplib.SMTPException, OSError) as exc:
            raise EmailDeliveryError(str(exc)) from exc

    # -- single send --------------------------------------------------------

    def send(
        self,
        recipient: str,
        subject: str,
        body: str,
        content_type: str = "text/html",
    ) -> DeliveryReceipt:
        """Send one message and return its receipt instead of raising."""
        try:
            self.deliver(recipient, subject, body, content_type)
        except (InvalidRecipientError, EmailDeliveryError) as exc:
            return DeliveryReceipt(
                email=recipient,
                status=DeliveryStatus.FAILED,
                timestamp=datetime.now(timezone.utc),
                smtp_response=str(exc),
                error_type=type(exc).__name__,
            )
        return DeliveryReceipt(
            email=recipient,
            status=DeliveryStatus.SENT,
            timestamp=datetime.now(timezone.utc),
            smtp_response="250 OK",
        )

    # -- batch send ---------------------------------------------------------

    def send_all(
        self,
        recipients: Sequence[str],
        subject: str,
        body: str,
        content_type: str = "text/html",
    ) -> list[DeliveryReceipt]:
        """Send the same message to every recipient; failures do not stop the loop."""
        receipts: list[DeliveryReceipt] = []
        for i, recipient in enumerate(recipients):
            receipt = self.send(recipient, subject, body, content_type)
            if receipt.ok:
                logger.info("Delivered update email to recipient #%d", i + 1)
            else:
                logger.warning(
                    "Skipping recipient #%d: %s", i + 1, receipt.error_type
                )
            receipts.append(receipt)
        return receipts
