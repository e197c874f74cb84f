"""Plain-text body resolution for multipart and HTML-only email."""

from __future__ import annotations

import re
from email.message import Message

_TAG = re.compile(r"</?[^>]*>")
_DOCTYPE = re.compile(r"<!DOCTYPE[^>\n]*>?", re.IGNORECASE)


def leaf_parts(message: Message) -> list[Message]:
    """Flatten the part tree of *message* into its leaf parts, in order.

    Nested ``multipart/*`` containers are expanded recursively.  Attached
    messages (``message/rfc822``) stay opaque leaves.  A message without
    any sub-parts is its own single leaf.
    """
    leaves: list[Message] = []
    if message.get_content_maintype() == "multipart" and message.is_multipart():
        for part in message.get_payload():
            leaves.extend(leaf_parts(part))
    return leaves or [message]


def plain_text_body(message: Message) -> str:
    """Return the plain-text version of *message*.

    Uses the first ``text/plain`` leaf.  Without one the message is assumed
    to be HTML-only: the first ``text/html`` leaf (or, lacking that, the raw
    body of the whole message) is stripped of its doctype declaration and tags.
    """
    leaves = leaf_parts(message)
    plain = next((p for p in leaves if "text/plain" in p.get_content_type()), None)
    if plain is not None:
        body = _decoded_text(plain)
    else:
        html = next((p for p in leaves if "text/html" in p.get_content_type()), None)
        body = _decoded_text(html) if html is not None else _raw_body(message)
        body = _DOCTYPE.sub("", body)
        body = _TAG.sub("", body)
    return body.strip().replace("\r\n", "\n")


def _decoded_text(part: Message) -> str:
    payload = part.get_payload(decode=True)
    if not isinstance(payload, bytes):
        return ""
    charset = part.get_content_charset() or "utf-8"
    try:
        return payload.decode(charset, errors="replace")
    except LookupError:
        return payload.decode("utf-8", errors="replace")


def _raw_body(message: Message) -> str:
    if not message.is_multipart():
        return _decoded_text(message)
    _, _, body = message.as_string().partition("\n\n")
    return body
