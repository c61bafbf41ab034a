"""Admin directory and access aggregation.

The directory maps each concrete scope to the emails allowed to hold it. It is
read fresh on every call so that operator changes apply to live sessions.
"""

import logging
from collections import defaultdict

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from scopegate.models import AdminDirectoryEntry
from scopegate.services.errors import ValidationError
from scopegate.services.scopes import (
    CONCRETE_SCOPES,
    AdminAccess,
    AdminScope,
    normalize_admin_scope,
    normalize_email,
)
from scopegate.services.store import store_call

logger = logging.getLogger(__name__)


async def get_admin_emails(session: AsyncSession, scope: AdminScope | str | None) -> set[str]:
    """Emails authorized for a scope; ``ANY`` is the union of all scopes.

    An empty set means no one is authorized for the scope.
    """
    normalized = normalize_admin_scope(scope)
    stmt = select(AdminDirectoryEntry.email)
    if normalized != AdminScope.ANY:
        stmt = stmt.where(AdminDirectoryEntry.scope == normalized.value)

    async with store_call("get_admin_emails"):
        result = await session.execute(stmt)
        emails = {normalize_email(email) for email in result.scalars().all()}

    emails.discard("")
    if not emails:
        logger.warning(f"No admin emails configured for scope '{normalized.value}'")
    return emails


async def is_admin_email(
    session: AsyncSession, email: str, scope: AdminScope | str | None = AdminScope.ANY
) -> bool:
    """Check whether an email is listed for a scope."""
    normalized = normalize_email(email)
    if not normalized:
        return False
    return normalized in await get_admin_emails(session, scope)


async def get_admin_access(session: AsyncSession, email: str) -> AdminAccess:
    """Compute every scope an email currently holds.

    Unknown, blank or unlisted emails yield all-false access.
    """
    normalized = normalize_email(email)
    if not normalized:
        return AdminAccess()

    stmt = select(AdminDirectoryEntry.scope).where(AdminDirectoryEntry.email == normalized)
    async with store_call("get_admin_access"):
        result = await session.execute(stmt)
        raw_scopes = result.scalars().all()

    scopes = {normalize_admin_scope(value) for value in raw_scopes}
    scopes.discard(AdminScope.ANY)
    return AdminAccess.from_scopes(scopes)


def _require_concrete_scope(scope: AdminScope | str) -> AdminScope:
    normalized = normalize_admin_scope(scope)
    if normalized not in CONCRETE_SCOPES:
        raise ValidationError(
            f"Scope must be one of: {', '.join(s.value for s in CONCRETE_SCOPES)}."
        )
    return normalized


async def add_admin_email(session: AsyncSession, scope: AdminScope | str, email: str) -> bool:
    """Authorize an email for a scope. Returns False if it was already listed."""
    normalized_scope = _require_concrete_scope(scope)
    normalized = normalize_email(email)
    if not normalized:
        raise ValidationError("Email is required.")

    stmt = select(AdminDirectoryEntry).where(
        AdminDirectoryEntry.scope == normalized_scope.value,
        AdminDirectoryEntry.email == normalized,
    )
    async with store_call("add_admin_email"):
        result = await session.execute(stmt)
        if result.scalar_one_or_none():
            return False
        session.add(AdminDirectoryEntry(scope=normalized_scope.value, email=normalized))
        await session.commit()

    logger.info(f"Authorized {normalized} for scope '{normalized_scope.value}'")
    return True


async def remove_admin_email(session: AsyncSession, scope: AdminScope | str, email: str) -> bool:
    """Remove an email from a scope. Returns False if it was not listed."""
    normalized_scope = _require_concrete_scope(scope)
    normalized = normalize_email(email)

    stmt = select(AdminDirectoryEntry).where(
        AdminDirectoryEntry.scope == normalized_scope.value,
        AdminDirectoryEntry.email == normalized,
    )
    async with store_call("remove_admin_email"):
        result = await session.execute(stmt)
        entry = result.scalar_one_or_none()
        if not entry:
            return False
        await session.delete(entry)
        await session.commit()

    logger.info(f"Removed {normalized} from scope '{normalized_scope.value}'")
    return True


async def list_directory(session: AsyncSession) -> dict[AdminScope, list[str]]:
    """All directory entries grouped by scope, emails sorted."""
    stmt = select(AdminDirectoryEntry).order_by(
        col(AdminDirectoryEntry.scope), col(AdminDirectoryEntry.email)
    )
    async with store_call("list_directory"):
        result = await session.execute(stmt)
        entries = result.scalars().all()

    grouped: dict[AdminScope, list[str]] = defaultdict(list)
    for entry in entries:
        grouped[normalize_admin_scope(entry.scope)].append(entry.email)
    return {scope: grouped.get(scope, []) for scope in CONCRETE_SCOPES}
