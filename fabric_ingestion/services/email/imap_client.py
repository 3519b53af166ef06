"""Mailbox access for email-delivered price lists.

imaplib is blocking, so every session runs in a worker thread via
``asyncio.to_thread``. Messages are fetched with ``BODY.PEEK[]`` so reading
them does not change their seen state.
"""
import asyncio
import email
import imaplib
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from email import policy
from email.message import EmailMessage
from email.utils import parsedate_to_datetime
from typing import List, Optional

import structlog
from pydantic import BaseModel, Field

from fabric_ingestion.config import settings
from fabric_ingestion.errors.exceptions import SourceUnavailableError
from fabric_ingestion.models.supplier_profile import EmailConfig

logger = structlog.get_logger(__name__)

# IMAP dates use English month abbreviations regardless of locale
_IMAP_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
                "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


class MailAttachment(BaseModel):
    """One attachment part of a message."""
    filename: str
    content_type: str = "application/octet-stream"
    content: bytes = b""


class MailMessage(BaseModel):
    """A fetched message reduced to what attachment selection needs."""
    message_id: str
    received_at: datetime
    subject: Optional[str] = None
    sender: Optional[str] = None
    attachments: List[MailAttachment] = Field(default_factory=list)


class MailboxClient(ABC):
    """Source of candidate messages for an email supplier."""

    @abstractmethod
    async def fetch_messages(self, config: EmailConfig, since: datetime) -> List[MailMessage]:
        """Return messages matching the supplier's filters, in mailbox order.

        Raises:
            SourceUnavailableError: If the mailbox cannot be reached or searched
        """


def imap_date(value: datetime) -> str:
    """Format a date the way IMAP SEARCH expects it (``17-Oct-2026``)."""
    return f"{value.day:02d}-{_IMAP_MONTHS[value.month - 1]}-{value.year}"


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


UNDATED = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _received_at(message: EmailMessage) -> datetime:
    """Message date in UTC; undated mail sorts before any dated message."""
    header = message.get("Date")
    parsed = None
    if header:
        try:
            parsed = parsedate_to_datetime(str(header))
        except (TypeError, ValueError):
            parsed = None
    if parsed is None:
        return UNDATED
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def message_from_bytes(raw: bytes, fallback_id: str) -> MailMessage:
    """Decode a raw RFC 822 message into a MailMessage."""
    message = email.message_from_bytes(raw, policy=policy.default)
    attachments = []
    for part in message.walk():
        if part.is_multipart():
            continue
        filename = part.get_filename()
        if not filename:
            continue
        attachments.append(MailAttachment(
            filename=filename,
            content_type=part.get_content_type(),
            content=part.get_payload(decode=True) or b"",
        ))
    return MailMessage(
        message_id=str(message.get("Message-ID") or fallback_id).strip(),
        received_at=_received_at(message),
        subject=str(message.get("Subject")) if message.get("Subject") else None,
        sender=str(message.get("From")) if message.get("From") else None,
        attachments=attachments,
    )


class ImapMailboxClient(MailboxClient):
    """IMAP implementation of MailboxClient built on imaplib."""

    def __init__(self, timeout: Optional[float] = None, mailbox: str = "INBOX"):
        self.timeout = timeout if timeout is not None else settings.imap_timeout
        self.mailbox = mailbox

    async def fetch_messages(self, config: EmailConfig, since: datetime) -> List[MailMessage]:
        return await asyncio.to_thread(self._fetch_sync, config, since)

    def _connect(self, config: EmailConfig) -> imaplib.IMAP4:
        if config.secure:
            return imaplib.IMAP4_SSL(config.host, config.port, timeout=self.timeout)
        return imaplib.IMAP4(config.host, config.port, timeout=self.timeout)

    def _search(self, conn: imaplib.IMAP4, config: EmailConfig, since: datetime) -> List[bytes]:
        criteria = ["SINCE", imap_date(since)]
        if config.search_unread_only:
            criteria.append("UNSEEN")
        if config.from_email:
            criteria += ["FROM", _quote(config.from_email)]
        charset = None
        if config.subject_filter:
            if config.subject_filter.isascii():
                criteria += ["SUBJECT", _quote(config.subject_filter)]
            else:
                # Non-ASCII text goes as a literal appended after the last argument
                conn.literal = config.subject_filter.encode("utf-8")
                criteria.append("SUBJECT")
                charset = "UTF-8"
        typ, data = conn.search(charset, *criteria)
        if typ != "OK":
            raise SourceUnavailableError(f"IMAP search failed: {typ}")
        return data[0].split() if data and data[0] else []

    def _fetch_sync(self, config: EmailConfig, since: datetime) -> List[MailMessage]:
        log = logger.bind(host=config.host, user=config.user)
        try:
            conn = self._connect(config)
        except (OSError, imaplib.IMAP4.error) as e:
            log.warning("imap_connect_failed", error=str(e))
            raise SourceUnavailableError(f"Cannot connect to IMAP server {config.host}: {e}") from e

        try:
            conn.login(config.user, config.password)
            conn.select(self.mailbox, readonly=True)
            numbers = self._search(conn, config, since)
            log.info("imap_search_completed", matches=len(numbers), since=imap_date(since))

            messages = []
            for number in numbers:
                typ, data = conn.fetch(number, "(BODY.PEEK[])")
                if typ != "OK" or not data or not isinstance(data[0], tuple):
                    log.warning("imap_fetch_skipped", number=number.decode())
                    continue
                messages.append(message_from_bytes(data[0][1], f"imap-{number.decode()}"))
            return messages
        except (OSError, imaplib.IMAP4.error) as e:
            log.warning("imap_session_failed", error=str(e))
            raise SourceUnavailableError(f"IMAP session failed for {config.user}: {e}") from e
        finally:
            try:
                conn.logout()
            except (OSError, imaplib.IMAP4.error) as e:
                log.debug("imap_logout_failed", error=str(e))
