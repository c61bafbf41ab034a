"""Admin directory model."""

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from scopegate.models.base import TimestampMixin, generate_nanoid


class AdminDirectoryEntry(TimestampMixin, SQLModel, table=True):
    """One email authorized for one concrete scope."""

    __tablename__ = "admin_directory_entries"
    __table_args__ = (UniqueConstraint("scope", "email", name="uq_admin_directory_scope_email"),)

    id: str = Field(default_factory=generate_nanoid, primary_key=True, max_length=21)
    scope: str = Field(max_length=20, index=True, description="admin, approvals, updates or coordinator")
    email: str = Field(max_length=255, index=True, description="Normalized email")
