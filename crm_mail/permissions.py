"""Access checks a sender must pass before a handler touches a record."""

from __future__ import annotations

from enum import Enum
from typing import Any

from .directory import Asset, Directory, Sender


class Access(str, Enum):
    """Visibility of a CRM record."""

    PUBLIC = "public"
    PRIVATE = "private"
    SHARED = "shared"


def access_of(asset: Asset) -> str:
    """Normalized visibility of *asset* ("Public", Access.PUBLIC -> "public")."""
    value: Any = getattr(asset.access, "value", asset.access)
    return str(value or "").lower()


def asset_type_of(asset: Asset) -> str:
    return getattr(asset, "asset_type", None) or type(asset).__name__


def sender_has_permissions_for(sender: Sender, asset: Asset, directory: Directory) -> bool:
    """Whether *sender* may attach mail to *asset*.

    Public records are open to everyone.  Otherwise the sender must own or
    be assigned the record, or, for shared records, hold an explicit grant.
    """
    access = access_of(asset)
    if access == Access.PUBLIC.value:
        return True
    if sender.id in (asset.user_id, asset.assigned_to):
        return True
    if access == Access.SHARED.value:
        return directory.has_grant(sender.id, asset_type_of(asset), asset.id)
    return False
