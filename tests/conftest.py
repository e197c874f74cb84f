"""Shared test fixtures for the mail processor test suite."""

from __future__ import annotations

from datetime import datetime, timezone
from email.message import EmailMessage
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email import encoders
import imaplib
from unittest.mock import patch

import pytest
import structlog

from crm_mail.config import ImapConfig, RetryConfig
from crm_mail.directory import Grant, InMemoryDirectory, User
from crm_mail.handlers import MessageContext, MessageHandler


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.fixture
def imap_config() -> ImapConfig:
    return ImapConfig(
        host="imap.test.com",
        port=993,
        use_ssl=True,
        username="dropbox",
        password="testpass",
        scan_folder="INBOX",
    )


@pytest.fixture
def moving_imap_config() -> ImapConfig:
    return ImapConfig(
        host="imap.test.com",
        username="dropbox",
        password="testpass",
        scan_folder="INBOX",
        move_to_folder="Processed",
        move_invalid_to_folder="Invalid",
    )


@pytest.fixture
def retry_config() -> RetryConfig:
    return RetryConfig(
        max_attempts=2,
        initial_wait_seconds=0.01,
        max_wait_seconds=0.02,
        multiplier=1.0,
    )


# ------------------------------------------------------------------
# CRM collaborators
# ------------------------------------------------------------------

ALICE = User(id=1, email="alice@example.com")
BOB = User(id=2, email="bob@example.com", alt_email="Bob.Alt@Example.org")
CAROL = User(
    id=3,
    email="carol@example.com",
    suspended_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
)


@pytest.fixture
def directory() -> InMemoryDirectory:
    return InMemoryDirectory(
        users=[ALICE, BOB, CAROL],
        grants=[Grant(user_id=2, asset_type="Account", asset_id=42)],
    )


class RecordingHandler(MessageHandler):
    """Handler that remembers every message it was given."""

    def __init__(self, keyword: str = "lead", fail_on: set[str] | None = None) -> None:
        self._keyword = keyword
        self._fail_on = fail_on or set()
        self.calls: list[tuple[str, EmailMessage, MessageContext]] = []

    @property
    def keyword(self) -> str:
        return self._keyword

    def process(self, uid: str, message: EmailMessage, context: MessageContext) -> None:
        if uid in self._fail_on:
            raise RuntimeError(f"cannot create lead from {uid}")
        self.calls.append((uid, message, context))

    @property
    def uids(self) -> list[str]:
        return [uid for uid, _, _ in self.calls]


@pytest.fixture
def handler() -> RecordingHandler:
    return RecordingHandler()


# ------------------------------------------------------------------
# Fake IMAP server
# ------------------------------------------------------------------


def _unquote(name: str) -> str:
    if len(name) >= 2 and name[0] == name[-1] == '"':
        return name[1:-1].replace('\\"', '"').replace("\\\\", "\\")
    return name


class FakeImapConnection:
    """In-memory stand-in for ``imaplib.IMAP4_SSL`` with one scan folder."""

    def __init__(
        self,
        messages: dict[str, bytes] | None = None,
        folders: tuple[str, ...] = ("INBOX",),
    ) -> None:
        self.messages = dict(messages or {})
        self.flags: dict[str, set[str]] = {uid: set() for uid in self.messages}
        self.folders = set(folders)
        self.state = "NONAUTH"
        self.selected: str | None = None
        self.created: list[str] = []
        self.copies: list[tuple[str, str]] = []
        self.expunged: list[str] = []
        self.fail_fetch: set[str] = set()
        self.fail_copy: set[str] = set()
        self.fail_login = False
        self.shutdown_called = False
        self.commands: list[str] = []

    def deliver(self, uid: str, raw: bytes) -> None:
        self.messages[uid] = raw
        self.flags[uid] = set()

    def login(self, user, password):
        self.commands.append("LOGIN")
        if self.fail_login:
            raise imaplib.IMAP4.error("[AUTHENTICATIONFAILED] Invalid credentials")
        self.state = "AUTH"
        return ("OK", [b"Logged in"])

    def select(self, mailbox):
        self.commands.append("SELECT")
        name = _unquote(mailbox)
        if name not in self.folders:
            return ("NO", [b"Mailbox doesn't exist"])
        self.selected = name
        self.state = "SELECTED"
        return ("OK", [str(len(self.messages)).encode()])

    def list(self, directory='""', pattern="*"):
        self.commands.append("LIST")
        name = _unquote(pattern)
        if name in self.folders:
            return ("OK", [f'(\\HasNoChildren) "/" "{name}"'.encode()])
        return ("OK", [None])

    def create(self, mailbox):
        self.commands.append("CREATE")
        name = _unquote(mailbox)
        self.folders.add(name)
        self.created.append(name)
        return ("OK", [b"CREATE completed"])

    def uid(self, command, *args):
        self.commands.append(f"UID {command}")
        if command == "SEARCH":
            unseen = [u for u in self.messages if "\\Seen" not in self.flags[u]]
            return ("OK", [" ".join(unseen).encode()])
        if command == "FETCH":
            uid = args[0]
            if uid in self.fail_fetch or uid not in self.messages:
                return ("NO", [None])
            raw = self.messages[uid]
            header = f"1 (UID {uid} RFC822 {{{len(raw)}}}".encode()
            return ("OK", [(header, raw), b")"])
        if command == "COPY":
            uid, folder = args
            if _unquote(folder) in self.fail_copy:
                return ("NO", [b"[TRYCREATE] Mailbox doesn't exist"])
            self.copies.append((uid, _unquote(folder)))
            return ("OK", [b"COPY completed"])
        if command == "STORE":
            uid, _, flags = args
            self.flags[uid].update(flags.strip("()").split())
            return ("OK", [b"STORE completed"])
        return ("BAD", [b"unknown command"])

    def expunge(self):
        self.commands.append("EXPUNGE")
        removed = [u for u, flags in self.flags.items() if "\\Deleted" in flags]
        for uid in removed:
            del self.messages[uid]
            del self.flags[uid]
        self.expunged.extend(removed)
        return ("OK", [uid.encode() for uid in removed])

    def logout(self):
        self.commands.append("LOGOUT")
        self.state = "LOGOUT"
        return ("BYE", [b"Logging out"])

    def shutdown(self):
        self.shutdown_called = True


@pytest.fixture
def fake_imap():
    """Patch ``imaplib.IMAP4_SSL`` to return a programmable fake server."""
    server = FakeImapConnection()
    with patch("crm_mail.imap_client.imaplib.IMAP4_SSL", return_value=server) as ssl_cls:
        server.ssl_cls = ssl_cls
        yield server


# ------------------------------------------------------------------
# Sample EML builders
# ------------------------------------------------------------------


def build_plain_email(
    *,
    subject: str = "Re: proposal",
    from_addr: str = "alice@example.com",
    to_addr: str = "dropbox@crm.example.com",
    body: str = "Hello, World!",
    message_id: str = "<plain-001@example.com>",
) -> bytes:
    """Build a simple plain-text email as raw bytes."""
    msg = MIMEText(body, "plain")
    msg["Subject"] = subject
    msg["From"] = from_addr
    msg["To"] = to_addr
    msg["Message-ID"] = message_id
    msg["Date"] = "Mon, 02 Jun 2025 12:00:00 +0000"
    return msg.as_bytes()


def build_html_email(
    *,
    from_addr: str = "alice@example.com",
    body_html: str = "<p>Hello</p>",
) -> bytes:
    msg = MIMEText(body_html, "html")
    msg["Subject"] = "HTML Email"
    msg["From"] = from_addr
    msg["To"] = "dropbox@crm.example.com"
    msg["Message-ID"] = "<html-001@example.com>"
    msg["Date"] = "Mon, 02 Jun 2025 12:00:00 +0000"
    return msg.as_bytes()


def build_multipart_email(
    *,
    from_addr: str = "alice@example.com",
    body_text: str | None = "Plain body",
    body_html: str | None = "<p>HTML body</p>",
    attachments: list[tuple[str, str, bytes]] | None = None,
) -> bytes:
    """Build a multipart email with text and/or HTML alternatives and attachments."""
    msg = MIMEMultipart("mixed")
    msg["Subject"] = "Multipart Email"
    msg["From"] = from_addr
    msg["To"] = "dropbox@crm.example.com"
    msg["Message-ID"] = "<multi-001@example.com>"
    msg["Date"] = "Mon, 02 Jun 2025 12:00:00 +0000"

    alt = MIMEMultipart("alternative")
    if body_text is not None:
        alt.attach(MIMEText(body_text, "plain"))
    if body_html is not None:
        alt.attach(MIMEText(body_html, "html"))
    msg.attach(alt)

    for filename, content_type, payload in attachments or []:
        maintype, subtype = content_type.split("/", 1)
        part = MIMEBase(maintype, subtype)
        part.set_payload(payload)
        encoders.encode_base64(part)
        part.add_header("Content-Disposition", "attachment", filename=filename)
        msg.attach(part)

    return msg.as_bytes()
