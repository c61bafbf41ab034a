"""Session guard for protected admin endpoints.

A caller is represented by an :class:`AuthenticatedPrincipal`. Two strategies
produce one: a browser SSO identity (trusted directly) or a bearer token looked
up in the session store. Either way, scope membership is recomputed from the
directory on every check so that directory edits apply immediately.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from scopegate.models import AdminSession, utcnow
from scopegate.services.directory import get_admin_access
from scopegate.services.errors import (
    GENERIC_TOKEN_MESSAGE,
    AuthenticationError,
    AuthorizationError,
)
from scopegate.services.scopes import (
    AdminAccess,
    AdminScope,
    get_admin_scope_label,
    normalize_admin_scope,
)
from scopegate.services.sso import SSOIdentity
from scopegate.services.store import SessionStore

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


class PrincipalSource(str, Enum):
    """How a principal was authenticated."""

    SSO = "sso"
    TOKEN = "token"


@dataclass(frozen=True)
class AuthenticatedPrincipal:
    """An authenticated admin and the scopes they currently hold."""

    email: str
    access: AdminAccess
    source: PrincipalSource
    session: AdminSession | None = None


def extract_bearer_token(header: str | None) -> str:
    """Token from an Authorization header; a raw, unprefixed token is accepted."""
    if not header:
        return ""
    if header.startswith(BEARER_PREFIX):
        return header[len(BEARER_PREFIX):].strip()
    return header.strip()


def _token_failure(reason: str) -> AuthenticationError:
    return AuthenticationError(reason, GENERIC_TOKEN_MESSAGE, status_code=401)


class SessionGuard:
    """Resolves principals and enforces scopes."""

    def __init__(self, session: AsyncSession, store: SessionStore | None = None):
        self.session = session
        self.store = store or SessionStore(session)

    async def principal_from_sso(self, identity: SSOIdentity) -> AuthenticatedPrincipal:
        access = await get_admin_access(self.session, identity.email)
        return AuthenticatedPrincipal(
            email=identity.email,
            access=access,
            source=PrincipalSource.SSO,
        )

    async def principal_from_token(
        self, token: str, now: datetime | None = None
    ) -> AuthenticatedPrincipal:
        """Look up a bearer token; any unusable token is a 401."""
        if not token:
            raise _token_failure("token_missing")

        admin_session = await self.store.find_active_session_by_token(token, now or utcnow())
        if admin_session is None:
            raise _token_failure(await self._rejection_reason(token))

        access = await get_admin_access(self.session, admin_session.email)
        return AuthenticatedPrincipal(
            email=admin_session.email,
            access=access,
            source=PrincipalSource.TOKEN,
            session=admin_session,
        )

    async def _rejection_reason(self, token: str) -> str:
        # Only reached on failure; the client always sees the same 401.
        stale = await self.store.find_session_by_token(token)
        if stale is None:
            reason = "token_not_found"
        elif stale.revoked:
            reason = "session_revoked"
        else:
            reason = "session_expired"
        logger.debug(f"Rejected bearer token: {reason}")
        return reason

    async def get_scoped_session(
        self,
        token: str,
        scope: AdminScope | str | None = AdminScope.ANY,
        *,
        sso_identity: SSOIdentity | None = None,
        now: datetime | None = None,
    ) -> AuthenticatedPrincipal:
        """Authenticate the caller and require ``scope``.

        An SSO identity takes priority and skips the token check entirely.
        """
        normalized_scope = normalize_admin_scope(scope)
        if sso_identity is not None:
            principal = await self.principal_from_sso(sso_identity)
        else:
            principal = await self.principal_from_token(token, now)

        if not principal.access.has(normalized_scope):
            label = get_admin_scope_label(normalized_scope)
            logger.info(
                f"{principal.email} ({principal.source.value}) lacks scope "
                f"'{normalized_scope.value}'"
            )
            raise AuthorizationError(f"Email not authorized for {label} access.")

        return principal

    async def revoke(self, token: str, now: datetime | None = None) -> AuthenticatedPrincipal:
        """Revoke the session behind a valid token (logout)."""
        principal = await self.principal_from_token(token, now)
        async with self.store.transaction():
            await self.store.revoke_session(token)
        logger.info(f"Revoked admin session for {principal.email}")
        return principal
