"""MailProcessor: scan an IMAP folder and turn mail from known users into
CRM activity.

One run connects, walks every unseen message, hands messages that pass
the format and sender checks to the configured keyword handler, archives
or discards each one, expunges, and disconnects.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from email.message import EmailMessage

import structlog

from .config import ImapConfig, ProcessorConfig, RetryConfig
from .db import SqlDirectory
from .directory import Asset, Directory, Sender
from .errors import HandlerError, MailboxConnectionError
from .handlers import HandlerRegistry, MessageContext, MessageHandler
from .imap_client import DELETED, SEEN, ImapClient
from .logging import quiet_logger
from .message import describe, parse_message, sender_address
from .models import ProcessorStatus, RunSummary
from .permissions import sender_has_permissions_for


class MailProcessor:
    """Mailbox ingestion engine for a single handler keyword.

    Not safe for concurrent use: overlapping runs must be serialized by
    the caller.
    """

    def __init__(
        self,
        config: ImapConfig,
        handler: MessageHandler,
        directory: Directory,
        *,
        retry: RetryConfig | None = None,
        logger=None,
        quiet: bool = False,
        client: ImapClient | None = None,
    ) -> None:
        self._config = config
        self._handler = handler
        self._directory = directory
        if logger is None:
            logger = quiet_logger() if quiet else structlog.get_logger()
        self._log = logger.bind(processor=handler.keyword)
        self._imap = client or ImapClient(config, retry, log=self._log)
        self.status = ProcessorStatus.IDLE
        self._archived = 0
        self._discarded = 0

    @property
    def archived(self) -> int:
        return self._archived

    @property
    def discarded(self) -> int:
        return self._discarded

    def summary(self) -> RunSummary:
        return RunSummary(archived=self._archived, discarded=self._discarded)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def setup(self) -> bool:
        """Create any configured folder that is missing on the server."""
        try:
            if not self._connect(select=False):
                return False
            self._log.info("checking_folders", host=self._config.host)
            for folder in self._config.folders:
                if self._imap.ensure_folder(folder):
                    self._log.info("folder_created", folder=folder)
                else:
                    self._log.info("folder_ok", folder=folder)
            return True
        except Exception:
            self._log.exception("setup_failed", host=self._config.host)
            return False
        finally:
            self._disconnect()

    def run(self) -> RunSummary | None:
        """Process every unseen message once.

        Returns the run counters, or None when the mailbox could not be
        reached.  Never raises.
        """
        self._archived = 0
        self._discarded = 0
        connected = False
        try:
            connected = self._connect(select=True)
            if connected:
                self.status = ProcessorStatus.SCANNING
                self._for_each_unseen_message(self._accept)
                self.status = ProcessorStatus.EXPUNGING
                self._imap.expunge()
        except Exception:
            self._log.exception("run_failed", host=self._config.host)
        finally:
            summary = self.summary()
            self._log.info(
                f"messages processed: {summary.processed}, "
                f"archived: {summary.archived}, discarded: {summary.discarded}",
                processed=summary.processed,
                archived=summary.archived,
                discarded=summary.discarded,
            )
            self._disconnect()
        return summary if connected else None

    def watch(self, interval: float, iterations: int | None = None) -> None:
        """Run repeatedly, sleeping *interval* seconds between runs."""
        count = 0
        while iterations is None or count < iterations:
            self.run()
            count += 1
            if iterations is None or count < iterations:
                time.sleep(interval)

    # ------------------------------------------------------------------
    # Mailbox state
    # ------------------------------------------------------------------

    def archive(self, uid: str) -> None:
        """Copy to the success folder (if any) and mark the message seen."""
        if self._config.move_to_folder:
            self._imap.copy(uid, self._config.move_to_folder)
        self._imap.add_flags(uid, SEEN)
        self._archived += 1

    def discard(self, uid: str) -> None:
        """Copy to the failure folder (if any) and flag the message deleted."""
        try:
            if self._config.move_invalid_to_folder:
                self._imap.copy(uid, self._config.move_invalid_to_folder)
            self._imap.add_flags(uid, DELETED)
        finally:
            self._discarded += 1

    def sender_has_permissions_for(self, sender: Sender, asset: Asset) -> bool:
        return sender_has_permissions_for(sender, asset, self._directory)

    # ------------------------------------------------------------------
    # Scan and classify
    # ------------------------------------------------------------------

    def _for_each_unseen_message(
        self,
        callback: Callable[[str, EmailMessage, Sender], None],
    ) -> None:
        for uid in self._imap.search_unseen():
            message: EmailMessage | None = None
            accepted = False
            try:
                message = parse_message(self._imap.fetch(uid).raw_bytes)
                self._log.info("message_fetched", uid=uid, **describe(message))
                sender = self._classify(message)
                if sender is not None:
                    accepted = True
                    callback(uid, message, sender)
            except Exception as exc:
                accepted = False
                self._log.exception(
                    "message_failed",
                    uid=uid,
                    error=str(exc),
                    **describe(message),
                )
            if not accepted:
                try:
                    self.discard(uid)
                except Exception as exc:
                    self._log.exception(
                        "discard_failed",
                        uid=uid,
                        error=str(exc),
                        **describe(message),
                    )

    def _classify(self, message: EmailMessage) -> Sender | None:
        """Return the known sender of a valid message, or None to discard."""
        if not self._is_valid(message):
            return None
        return self._find_known_sender(message)

    def _is_valid(self, message: EmailMessage) -> bool:
        valid = message.get_content_type() != "text/html"
        if not valid:
            self._log.info("not_a_text_message_discarding")
        return valid

    def _find_known_sender(self, message: EmailMessage) -> Sender | None:
        address = sender_address(message)
        sender = self._directory.find_sender(address) if address else None
        if sender is None:
            self._log.info("unknown_sender_discarding", address=address)
        return sender

    def _accept(self, uid: str, message: EmailMessage, sender: Sender) -> None:
        context = MessageContext(
            uid=uid,
            message=message,
            sender=sender,
            directory=self._directory,
        )
        try:
            self._handler.process(uid, message, context)
        except Exception as exc:
            raise HandlerError(
                f"{self._handler.keyword} handler failed on uid {uid}: {exc}"
            ) from exc
        self.archive(uid)

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def _connect(self, *, select: bool) -> bool:
        self._log.info("imap_connecting", host=self._config.host)
        try:
            self._imap.connect(select=select)
        except MailboxConnectionError as exc:
            self._log.error("imap_login_failed", host=self._config.host, error=str(exc))
            return False
        self.status = ProcessorStatus.CONNECTED
        return True

    def _disconnect(self) -> None:
        self._imap.disconnect()
        self.status = ProcessorStatus.DISCONNECTED


def create_processor(config: ProcessorConfig) -> MailProcessor:
    """Wire a processor from configuration: registry handler + CRM database."""
    handler = HandlerRegistry.from_config(config.handlers).require(config.keyword)
    return MailProcessor(
        config.imap,
        handler,
        SqlDirectory.from_url(config.database_url),
        retry=config.retry,
        quiet=config.quiet,
    )
