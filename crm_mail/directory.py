"""Collaborator interfaces the processor consumes from the CRM.

The CRM owns users, records and permission grants; the processor only
reads them.  :class:`Directory` is the seam, with an in-memory
implementation here and a SQLAlchemy one in :mod:`crm_mail.db`.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol


class Sender(Protocol):
    """A resolved user record."""

    id: Any
    email: str
    alt_email: str | None
    suspended_at: datetime | None


class Asset(Protocol):
    """An existing CRM record (account, campaign, contact, lead, opportunity)."""

    id: Any
    access: str
    user_id: Any
    assigned_to: Any


@dataclass(frozen=True)
class User:
    id: Any
    email: str
    alt_email: str | None = None
    suspended_at: datetime | None = None

    @property
    def active(self) -> bool:
        return self.suspended_at is None

    def matches(self, address: str) -> bool:
        address = address.lower()
        return address in {
            self.email.lower(),
            (self.alt_email or "").lower(),
        }


@dataclass(frozen=True)
class Grant:
    """Explicit permission linking a user to a shared asset."""

    user_id: Any
    asset_type: str
    asset_id: Any


class Directory(abc.ABC):
    """Sender lookup and permission grants, as provided by the CRM."""

    @abc.abstractmethod
    def find_sender(self, address: str) -> Sender | None:
        """Return the active user whose primary or alternate email is *address*.

        Matching is case-insensitive; suspended users never match.
        """
        ...

    @abc.abstractmethod
    def has_grant(self, user_id: Any, asset_type: str, asset_id: Any) -> bool:
        """True when a permission row links *user_id* to the given asset."""
        ...


@dataclass
class InMemoryDirectory(Directory):
    users: list[User] = field(default_factory=list)
    grants: list[Grant] = field(default_factory=list)

    def find_sender(self, address: str) -> User | None:
        if not address:
            return None
        return next((u for u in self.users if u.active and u.matches(address)), None)

    def has_grant(self, user_id: Any, asset_type: str, asset_id: Any) -> bool:
        return Grant(user_id, asset_type, asset_id) in self.grants
