"""Abstract base class for per-keyword message handlers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage

from ..content import plain_text_body
from ..directory import Asset, Directory, Sender
from ..permissions import sender_has_permissions_for


@dataclass(frozen=True)
class MessageContext:
    """What a handler gets to see about an accepted message."""

    uid: str
    message: EmailMessage
    sender: Sender
    directory: Directory

    def can_access(self, asset: Asset) -> bool:
        """Whether the sender may attach this message to *asset*."""
        return sender_has_permissions_for(self.sender, asset, self.directory)

    def plain_text_body(self) -> str:
        return plain_text_body(self.message)


class MessageHandler(ABC):
    """Turn an accepted message into CRM activity for one record keyword.

    The processor calls :meth:`process` exactly once per accepted message
    (valid format, known sender), before archiving it.  Raising from
    :meth:`process` makes the processor discard the message instead.
    """

    @property
    @abstractmethod
    def keyword(self) -> str:
        """The record keyword this handler serves (e.g. ``"lead"``)."""

    @abstractmethod
    def process(self, uid: str, message: EmailMessage, context: MessageContext) -> None:
        """Create or update CRM records from *message*."""
