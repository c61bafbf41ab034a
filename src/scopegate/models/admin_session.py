"""Admin session model.

One table holds both pending passcode challenges (``token`` is NULL) and
issued sessions. A session created by redeeming a passcode carries the
challenge's code hash and timestamps.
"""

from datetime import datetime

from sqlalchemy import DateTime, Index
from sqlmodel import Field, SQLModel

from scopegate.models.base import ensure_utc, generate_nanoid, utcnow


class AdminSession(SQLModel, table=True):
    """Issued admin session or pending passcode challenge."""

    __tablename__ = "admin_sessions"
    __table_args__ = (Index("ix_admin_sessions_email_created_at", "email", "created_at"),)

    id: str = Field(default_factory=generate_nanoid, primary_key=True, max_length=21)
    email: str = Field(max_length=255, description="Normalized owner email")
    token: str | None = Field(
        default=None,
        unique=True,
        index=True,
        max_length=128,
        description="Opaque bearer token, NULL while only a passcode challenge",
    )
    code_hash: str = Field(
        default="",
        max_length=128,
        description="sha256 hex digest of the passcode, empty for password sessions",
    )
    code_expires_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
    )
    code_used_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
    )
    expires_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
        description="created_at + session TTL; NULL on a pending challenge",
    )
    revoked: bool = Field(default=False)

    def is_code_expired(self, now: datetime) -> bool:
        if self.code_expires_at is None:
            return True
        return now >= ensure_utc(self.code_expires_at)

    def is_expired(self, now: datetime) -> bool:
        if self.expires_at is None:
            return True
        return now >= ensure_utc(self.expires_at)

    def is_usable(self, now: datetime) -> bool:
        """A session is usable only while not revoked and not yet expired."""
        return not self.revoked and not self.is_expired(now)
