"""Session store: the repository for issued admin sessions.

All reads and writes of ``admin_sessions`` go through :class:`SessionStore`.
Each call is bounded by ``settings.store_timeout_seconds`` and backend errors
are translated into :class:`InfrastructureError`.

``mark_passcode_used_if_unset`` is the single operation that must be atomic. It
is one conditional UPDATE; on PostgreSQL a concurrent second UPDATE of the same
row waits for the first to commit and then re-evaluates ``code_used_at IS
NULL``, so at most one caller sees ``rowcount == 1``.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from scopegate.config import settings
from scopegate.models import AdminSession, utcnow
from scopegate.services.errors import InfrastructureError, is_permission_error

logger = logging.getLogger(__name__)


@asynccontextmanager
async def store_call(operation: str, timeout: float | None = None) -> AsyncIterator[None]:
    """Bound a store call in time and translate backend failures."""
    seconds = timeout if timeout is not None else settings.store_timeout_seconds
    try:
        async with asyncio.timeout(seconds):
            yield
    except TimeoutError as e:
        logger.error(f"Store call '{operation}' timed out after {seconds}s")
        raise InfrastructureError(f"{operation} timed out after {seconds}s") from e
    except SQLAlchemyError as e:
        if is_permission_error(e):
            logger.error(
                f"Store call '{operation}' was denied; check the database credentials: {e!r}"
            )
            raise InfrastructureError(str(e), permission_denied=True) from e
        logger.error(f"Store call '{operation}' failed: {e!r}")
        raise InfrastructureError(str(e)) from e


class SessionStore:
    """Narrow repository over the ``admin_sessions`` table."""

    def __init__(self, session: AsyncSession, timeout: float | None = None) -> None:
        self.session = session
        self.timeout = timeout

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Commit everything done in the block, or roll all of it back."""
        try:
            yield
            async with store_call("commit", self.timeout):
                await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    async def create_passcode_challenge(
        self,
        email: str,
        code_hash: str,
        code_expires_at: datetime,
        created_at: datetime | None = None,
    ) -> AdminSession:
        """Record a pending passcode for an email."""
        challenge = AdminSession(
            email=email,
            code_hash=code_hash,
            code_expires_at=code_expires_at,
            created_at=created_at or utcnow(),
        )
        async with store_call("create_passcode_challenge", self.timeout):
            self.session.add(challenge)
            await self.session.flush()
        return challenge

    async def find_latest_passcode_challenge(self, email: str) -> AdminSession | None:
        """Most recently issued, non-revoked passcode challenge for an email."""
        stmt = (
            select(AdminSession)
            .where(
                AdminSession.email == email,
                col(AdminSession.token).is_(None),
                AdminSession.code_hash != "",
                AdminSession.revoked == False,  # noqa: E712
            )
            .order_by(col(AdminSession.created_at).desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        async with store_call("find_latest_passcode_challenge", self.timeout):
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()

    async def mark_passcode_used_if_unset(self, challenge_id: str, used_at: datetime) -> bool:
        """Set ``code_used_at`` only if it is currently unset.

        Returns True for exactly one caller per challenge.
        """
        stmt = (
            update(AdminSession)
            .where(
                col(AdminSession.id) == challenge_id,
                col(AdminSession.code_used_at).is_(None),
            )
            .values(code_used_at=used_at)
            .execution_options(synchronize_session=False)
        )
        async with store_call("mark_passcode_used_if_unset", self.timeout):
            result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def create_session(
        self,
        email: str,
        token: str,
        created_at: datetime,
        session_ttl_hours: float,
        *,
        code_hash: str = "",
        code_expires_at: datetime | None = None,
        code_used_at: datetime | None = None,
    ) -> AdminSession:
        """Persist a new session expiring ``session_ttl_hours`` after creation."""
        admin_session = AdminSession(
            email=email,
            token=token,
            code_hash=code_hash,
            code_expires_at=code_expires_at,
            code_used_at=code_used_at,
            created_at=created_at,
            expires_at=created_at + timedelta(hours=session_ttl_hours),
            revoked=False,
        )
        async with store_call("create_session", self.timeout):
            self.session.add(admin_session)
            await self.session.flush()
        return admin_session

    async def find_session_by_token(self, token: str) -> AdminSession | None:
        """Look up a session by token regardless of its state."""
        if not token:
            return None
        stmt = (
            select(AdminSession)
            .where(AdminSession.token == token)
            .execution_options(populate_existing=True)
        )
        async with store_call("find_session_by_token", self.timeout):
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()

    async def find_active_session_by_token(
        self, token: str, now: datetime
    ) -> AdminSession | None:
        """Look up a session by token, returning it only while usable."""
        admin_session = await self.find_session_by_token(token)
        if admin_session is None or not admin_session.is_usable(now):
            return None
        return admin_session

    async def revoke_session(self, token: str) -> bool:
        """Flip ``revoked`` on the session holding this token."""
        if not token:
            return False
        stmt = (
            update(AdminSession)
            .where(AdminSession.token == token)
            .values(revoked=True)
            .execution_options(synchronize_session=False)
        )
        async with store_call("revoke_session", self.timeout):
            result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def revoke_session_by_id(self, session_id: str) -> bool:
        stmt = (
            update(AdminSession)
            .where(AdminSession.id == session_id)
            .values(revoked=True)
            .execution_options(synchronize_session=False)
        )
        async with store_call("revoke_session_by_id", self.timeout):
            result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def list_sessions(
        self, email: str | None = None, limit: int = 50
    ) -> list[AdminSession]:
        """Issued sessions, newest first."""
        stmt = select(AdminSession).where(col(AdminSession.token).is_not(None))
        if email:
            stmt = stmt.where(AdminSession.email == email)
        stmt = stmt.order_by(col(AdminSession.created_at).desc()).limit(limit)
        async with store_call("list_sessions", self.timeout):
            result = await self.session.execute(stmt)
            return list(result.scalars().all())
