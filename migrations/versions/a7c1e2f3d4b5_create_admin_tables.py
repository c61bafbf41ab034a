"""create_admin_tables

Create admin_sessions (passcode challenges and issued sessions) and
admin_directory_entries (email to scope authorization).

Revision ID: a7c1e2f3d4b5
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "a7c1e2f3d4b5"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "admin_sessions",
        sa.Column("id", sa.VARCHAR(21), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("token", sa.String(128), nullable=True),
        sa.Column("code_hash", sa.String(128), nullable=False, server_default=""),
        sa.Column("code_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("code_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_admin_sessions_token", "admin_sessions", ["token"], unique=True)
    op.create_index(
        "ix_admin_sessions_email_created_at", "admin_sessions", ["email", "created_at"]
    )

    op.create_table(
        "admin_directory_entries",
        sa.Column("id", sa.VARCHAR(21), primary_key=True),
        sa.Column("scope", sa.String(20), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("scope", "email", name="uq_admin_directory_scope_email"),
    )
    op.create_index("ix_admin_directory_entries_scope", "admin_directory_entries", ["scope"])
    op.create_index("ix_admin_directory_entries_email", "admin_directory_entries", ["email"])


def downgrade() -> None:
    op.drop_index("ix_admin_directory_entries_email", table_name="admin_directory_entries")
    op.drop_index("ix_admin_directory_entries_scope", table_name="admin_directory_entries")
    op.drop_table("admin_directory_entries")
    op.drop_index("ix_admin_sessions_email_created_at", table_name="admin_sessions")
    op.drop_index("ix_admin_sessions_token", table_name="admin_sessions")
    op.drop_table("admin_sessions")
