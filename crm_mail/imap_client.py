"""Blocking IMAP session wrapping stdlib imaplib."""

from __future__ import annotations

import imaplib

import structlog

from .config import ImapConfig, RetryConfig
from .errors import MailboxCommandError, MailboxConnectionError, MessageFetchError
from .message import FetchedEmail
from .retry import with_retry

logger = structlog.get_logger()

SEEN = "\\Seen"
DELETED = "\\Deleted"


def _quote(folder: str) -> str:
    """Render *folder* as an IMAP quoted string."""
    escaped = folder.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class ImapClient:
    """One IMAP session against the configured mailbox.

    Every folder and message operation goes through the single
    connection, so a client must only be driven from one thread.
    """

    def __init__(
        self,
        config: ImapConfig,
        retry: RetryConfig | None = None,
        *,
        log=None,
    ) -> None:
        self._config = config
        self._retry = retry or RetryConfig()
        self._log = log if log is not None else logger
        self._conn: imaplib.IMAP4_SSL | imaplib.IMAP4 | None = None

    @property
    def connected(self) -> bool:
        return self._conn is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(self, *, select: bool = True) -> None:
        """Connect and log in, retrying per the retry config.

        With ``select=False`` (folder setup) no mailbox is selected, since
        the configured folders may not exist yet.
        """

        @with_retry(self._retry, log=self._log)
        def _attempt() -> None:
            self._connect_once(select)

        _attempt()
        self._log.info(
            "imap_connected",
            host=self._config.host,
            folder=self._config.scan_folder if select else None,
        )

    def _connect_once(self, select: bool) -> None:
        host, port = self._config.host, self._config.port
        try:
            if self._config.use_ssl:
                conn = imaplib.IMAP4_SSL(host, port)
            else:
                conn = imaplib.IMAP4(host, port)
        except (OSError, imaplib.IMAP4.error) as exc:
            raise MailboxConnectionError(f"could not reach {host}:{port}: {exc}") from exc

        try:
            conn.login(self._config.username, self._config.password.get_secret_value())
            status = "OK"
            if select:
                status, _ = conn.select(_quote(self._config.scan_folder))
        except (OSError, imaplib.IMAP4.error) as exc:
            self._force_close(conn)
            raise MailboxConnectionError(f"could not log in to {host}: {exc}") from exc

        if status != "OK":
            self._force_close(conn)
            raise MailboxConnectionError(
                f"could not select folder {self._config.scan_folder!r} on {host}"
            )
        self._conn = conn

    def disconnect(self) -> None:
        """Log out; force the transport closed if logout did not finish. Never raises."""
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        logged_out = False
        try:
            conn.logout()
            logged_out = conn.state == "LOGOUT"
        except Exception as exc:
            self._log.warning("imap_logout_failed", error=str(exc))
        if not logged_out:
            self._force_close(conn)
        self._log.info("imap_disconnected")

    @staticmethod
    def _force_close(conn: imaplib.IMAP4) -> None:
        try:
            conn.shutdown()
        except Exception:
            pass

    # ------------------------------------------------------------------
    # Folders
    # ------------------------------------------------------------------

    def ensure_folder(self, folder: str) -> bool:
        """Create *folder* unless it already exists. Returns True if created."""
        conn = self._require_conn()
        status, data = conn.list('""', _quote(folder))
        if status == "OK" and any(data):
            return False
        status, data = conn.create(_quote(folder))
        self._check(status, data, f"CREATE {folder}")
        return True

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def search_unseen(self) -> list[str]:
        """UIDs of messages in the selected folder not flagged as seen."""
        conn = self._require_conn()
        status, data = conn.uid("SEARCH", None, "NOT SEEN")
        self._check(status, data, "UID SEARCH")
        if not data or not data[0]:
            return []
        return [uid.decode() for uid in data[0].split()]

    def fetch(self, uid: str) -> FetchedEmail:
        """Full RFC 822 content of *uid*."""
        conn = self._require_conn()
        try:
            status, data = conn.uid("FETCH", uid, "(RFC822)")
        except imaplib.IMAP4.error as exc:
            raise MessageFetchError(f"fetch of uid {uid} failed: {exc}") from exc
        if status != "OK" or not data or not isinstance(data[0], tuple):
            raise MessageFetchError(f"no content returned for uid {uid}")
        return FetchedEmail(uid=uid, raw_bytes=data[0][1])

    def copy(self, uid: str, folder: str) -> None:
        conn = self._require_conn()
        status, data = conn.uid("COPY", uid, _quote(folder))
        self._check(status, data, f"UID COPY {uid} {folder}")

    def add_flags(self, uid: str, *flags: str) -> None:
        conn = self._require_conn()
        status, data = conn.uid("STORE", uid, "+FLAGS", f"({' '.join(flags)})")
        self._check(status, data, f"UID STORE {uid}")

    def expunge(self) -> None:
        """Permanently remove every message flagged deleted in the selected folder."""
        conn = self._require_conn()
        status, data = conn.expunge()
        self._check(status, data, "EXPUNGE")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_conn(self) -> imaplib.IMAP4:
        if self._conn is None:
            raise MailboxConnectionError("Not connected")
        return self._conn

    @staticmethod
    def _check(status: str, data: list, command: str) -> None:
        if status != "OK":
            raise MailboxCommandError(f"{command} failed: {status} {data!r}")
