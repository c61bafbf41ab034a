"""SQLModel database models."""

from scopegate.models.admin_session import AdminSession
from scopegate.models.base import TimestampMixin, ensure_utc, generate_nanoid, utcnow
from scopegate.models.directory_entry import AdminDirectoryEntry

__all__ = [
    "AdminDirectoryEntry",
    "AdminSession",
    "TimestampMixin",
    "ensure_utc",
    "generate_nanoid",
    "utcnow",
]
