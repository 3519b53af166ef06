"""Email-delivered price list selection."""
from fabric_ingestion.services.email.imap_client import (
    ImapMailboxClient,
    MailAttachment,
    MailboxClient,
    MailMessage,
)
from fabric_ingestion.services.email.selector import (
    EmailSourceSelector,
    is_candidate_attachment,
    sanitize_filename,
)

__all__ = [
    "ImapMailboxClient",
    "MailAttachment",
    "MailboxClient",
    "MailMessage",
    "EmailSourceSelector",
    "is_candidate_attachment",
    "sanitize_filename",
]
