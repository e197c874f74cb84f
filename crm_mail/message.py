"""Message handles: raw fetched bytes and the parsed message built from them."""

from __future__ import annotations

import email
import email.policy
import email.utils
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Any

from .errors import MessageParseError


@dataclass
class FetchedEmail:
    """Raw email data fetched from IMAP."""

    uid: str
    raw_bytes: bytes


def parse_message(raw_bytes: bytes) -> EmailMessage:
    """Parse raw RFC 822 bytes into a message tree."""
    try:
        return email.message_from_bytes(raw_bytes, policy=email.policy.default)
    except Exception as exc:
        raise MessageParseError(f"could not parse message: {exc}") from exc


def sender_address(message: EmailMessage) -> str | None:
    """First ``From`` address of *message*, lower-cased, or None."""
    headers = [str(value) for value in message.get_all("From", [])]
    for _, addr in email.utils.getaddresses(headers):
        if addr:
            return addr.lower()
    return None


def describe(message: EmailMessage | None) -> dict[str, Any]:
    """Log context for a message: sender, subject and Message-ID."""
    if message is None:
        return {}
    return {
        "sender": str(message.get("From", "")),
        "subject": str(message.get("Subject", "")),
        "message_id": str(message.get("Message-ID", "")),
    }
