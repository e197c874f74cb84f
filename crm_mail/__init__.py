"""CRM mail processor: turn inbound IMAP mail from known users into CRM activity."""

from .config import ImapConfig, ProcessorConfig, RetryConfig
from .content import plain_text_body
from .directory import Directory, Grant, InMemoryDirectory, User
from .errors import (
    HandlerConfigError,
    HandlerError,
    MailboxCommandError,
    MailboxConnectionError,
    MailProcessorError,
    MessageFetchError,
    MessageParseError,
)
from .handlers import KEYWORDS, HandlerRegistry, MessageContext, MessageHandler
from .imap_client import ImapClient
from .logging import quiet_logger, setup_logging
from .message import FetchedEmail
from .models import ProcessorStatus, RunSummary
from .permissions import Access, sender_has_permissions_for
from .processor import MailProcessor, create_processor

__all__ = [
    "KEYWORDS",
    "Access",
    "Directory",
    "FetchedEmail",
    "Grant",
    "HandlerConfigError",
    "HandlerError",
    "HandlerRegistry",
    "ImapClient",
    "ImapConfig",
    "InMemoryDirectory",
    "MailProcessor",
    "MailProcessorError",
    "MailboxCommandError",
    "MailboxConnectionError",
    "MessageContext",
    "MessageFetchError",
    "MessageHandler",
    "MessageParseError",
    "ProcessorConfig",
    "ProcessorStatus",
    "RetryConfig",
    "RunSummary",
    "User",
    "create_processor",
    "plain_text_body",
    "quiet_logger",
    "sender_has_permissions_for",
    "setup_logging",
]
