"""Exception hierarchy for the mail processor."""

from __future__ import annotations


class MailProcessorError(Exception):
    """Base class for every error raised by the mail processor."""


class MailboxConnectionError(MailProcessorError, ConnectionError):
    """Login or transport failure; fatal to the current setup/run."""


class MailboxCommandError(MailProcessorError):
    """The IMAP server answered a command with a non-OK status."""


class MessageFetchError(MailProcessorError):
    """Raw content for a UID could not be fetched."""


class MessageParseError(MailProcessorError):
    """Fetched bytes could not be parsed into a message."""


class HandlerError(MailProcessorError):
    """A per-keyword handler failed while processing a message."""


class HandlerConfigError(MailProcessorError):
    """The handler registry is misconfigured."""
