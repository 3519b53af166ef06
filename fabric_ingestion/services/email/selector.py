"""Selection of the attachment an email supplier run should parse.

Messages are scanned in mailbox order. Inside a message the first
attachment that is a spreadsheet or zip and passes the adapter's file
validation is that message's candidate. Across messages the newest
candidate wins; on equal timestamps the first one seen stays. Every other
staged file is removed and only the winner is recorded as a tracked
processing unit.
"""
import asyncio
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional, Tuple

import structlog

from fabric_ingestion.config import settings
from fabric_ingestion.db.catalog_store import CatalogStore
from fabric_ingestion.errors.exceptions import ValidationError
from fabric_ingestion.models.catalog import EmailAttachmentRecord
from fabric_ingestion.models.supplier_profile import SupplierProfile
from fabric_ingestion.parsers.base_parser import SourceAdapter
from fabric_ingestion.services.email.imap_client import (
    ImapMailboxClient,
    MailAttachment,
    MailboxClient,
    MailMessage,
)

logger = structlog.get_logger(__name__)

SPREADSHEET_MIME_MARKERS = ("spreadsheet", "excel")
ARCHIVE_MIME_MARKERS = ("zip",)
CANDIDATE_EXTENSIONS = (".xls", ".xlsx", ".zip")

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def is_candidate_attachment(attachment: MailAttachment) -> bool:
    """True for spreadsheet or zip attachments, judged by MIME type or extension."""
    content_type = attachment.content_type.lower()
    if any(marker in content_type for marker in SPREADSHEET_MIME_MARKERS + ARCHIVE_MIME_MARKERS):
        return True
    return attachment.filename.lower().endswith(CANDIDATE_EXTENSIONS)


def sanitize_filename(filename: str) -> str:
    """Replace every character outside ``[a-zA-Z0-9.-]`` with an underscore."""
    return _UNSAFE_FILENAME_CHARS.sub("_", filename)


def _remove(path: Path) -> None:
    path.unlink(missing_ok=True)


class EmailSourceSelector:
    """Stages, validates and picks one attachment per email supplier run."""

    def __init__(
        self,
        store: CatalogStore,
        mailbox: Optional[MailboxClient] = None,
        attachments_dir: Optional[str] = None,
    ) -> None:
        self._store = store
        self._mailbox = mailbox or ImapMailboxClient()
        self._attachments_dir = Path(attachments_dir or settings.attachments_dir)

    async def stage(self, supplier: SupplierProfile, attachment: MailAttachment) -> Path:
        """Write an attachment to ``<attachments_dir>/<supplier_id>/<ts>_<name>``."""
        directory = self._attachments_dir / str(supplier.id)
        await asyncio.to_thread(directory.mkdir, parents=True, exist_ok=True)
        timestamp = int(datetime.now(timezone.utc).timestamp() * 1000)
        safe_name = sanitize_filename(attachment.filename)
        path = directory / f"{timestamp}_{safe_name}"
        while path.exists():
            timestamp += 1
            path = directory / f"{timestamp}_{safe_name}"
        await asyncio.to_thread(path.write_bytes, attachment.content)
        return path

    async def _is_valid(self, adapter: SourceAdapter, path: Path) -> bool:
        try:
            return await adapter.validate_file(str(path))
        except ValidationError as e:
            logger.info("attachment_validation_failed", path=str(path), error=e.message)
            return False
        except Exception as e:
            # one unreadable attachment must not stop the scan of the rest
            logger.warning(
                "attachment_validation_failed",
                path=str(path),
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

    async def select(
        self,
        supplier: SupplierProfile,
        adapter: SourceAdapter,
        now: Optional[datetime] = None,
    ) -> Optional[EmailAttachmentRecord]:
        """Pick, keep and record the newest valid attachment.

        Returns:
            The recorded attachment, or None when no message has a valid one

        Raises:
            ValidationError: If the supplier has no email configuration
            SourceUnavailableError: If the mailbox cannot be read
        """
        config = supplier.email_config
        if config is None:
            raise ValidationError(f"Supplier '{supplier.name}' has no email configuration")

        log = logger.bind(supplier_id=str(supplier.id), stage="email_selection")
        since = (now or datetime.now(timezone.utc)) - timedelta(days=config.search_days)
        messages = await self._mailbox.fetch_messages(config, since)
        log.info("email_messages_fetched", count=len(messages))

        staged: List[Path] = []
        best: Optional[Tuple[MailMessage, MailAttachment, Path]] = None
        scanned = False
        try:
            for message in messages:
                candidate = None
                for attachment in message.attachments:
                    if not is_candidate_attachment(attachment):
                        continue
                    path = await self.stage(supplier, attachment)
                    staged.append(path)
                    if await self._is_valid(adapter, path):
                        candidate = (message, attachment, path)
                        break
                    log.info("attachment_rejected", message_id=message.message_id, filename=attachment.filename)
                if candidate is None:
                    continue
                if best is None or message.received_at > best[0].received_at:
                    best = candidate
            scanned = True
        finally:
            # an interrupted scan keeps nothing on disk
            keep = best[2] if best and scanned else None
            for path in staged:
                if path != keep:
                    await asyncio.to_thread(_remove, path)

        if best is None:
            log.info("email_no_valid_attachment", staged=len(staged))
            return None

        message, attachment, path = best
        record = await self._store.record_email_attachment(EmailAttachmentRecord(
            supplier_id=supplier.id,
            message_id=message.message_id,
            filename=attachment.filename,
            file_path=str(path),
            received_at=message.received_at,
            processed=False,
        ))
        log.info(
            "email_attachment_selected",
            message_id=message.message_id,
            filename=attachment.filename,
            received_at=message.received_at.isoformat(),
        )
        return record
