"""SQLAlchemy-backed read access to CRM users and permission grants."""

from .directory import SqlDirectory
from .models import Base, PermissionRecord, UserRecord

__all__ = ["Base", "PermissionRecord", "SqlDirectory", "UserRecord"]
