"""Directory implementation over the CRM database."""

from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine, func, or_, select
from sqlalchemy.orm import Session, sessionmaker

from ..directory import Directory, User
from .models import PermissionRecord, UserRecord


class SqlDirectory(Directory):
    """Read-only sender and grant lookups through a sync session factory."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    @classmethod
    def from_url(cls, url: str) -> SqlDirectory:
        engine = create_engine(url, echo=False)
        return cls(sessionmaker(engine, expire_on_commit=False))

    def find_sender(self, address: str) -> User | None:
        if not address:
            return None
        address = address.lower()
        stmt = (
            select(UserRecord)
            .where(
                or_(
                    func.lower(UserRecord.email) == address,
                    func.lower(UserRecord.alt_email) == address,
                ),
                UserRecord.suspended_at.is_(None),
            )
            .order_by(UserRecord.id)
            .limit(1)
        )
        with self._session_factory() as session:
            record = session.execute(stmt).scalar_one_or_none()
            if record is None:
                return None
            return User(
                id=record.id,
                email=record.email,
                alt_email=record.alt_email,
                suspended_at=record.suspended_at,
            )

    def has_grant(self, user_id: Any, asset_type: str, asset_id: Any) -> bool:
        stmt = (
            select(func.count())
            .select_from(PermissionRecord)
            .where(
                PermissionRecord.user_id == user_id,
                PermissionRecord.asset_id == asset_id,
                PermissionRecord.asset_type == asset_type,
            )
        )
        with self._session_factory() as session:
            count = session.execute(stmt).scalar_one()
        return count > 0
