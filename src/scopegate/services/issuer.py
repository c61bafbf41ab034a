"""Session issuer: the only path that creates admin sessions.

Each issuance runs the same pipeline: validate input, normalize scope, resolve
the directory, check membership, verify the credential and persist the session.
The session is created only when every step succeeds, and credential
redemption commits in the same transaction as the session insert.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from scopegate.config import settings
from scopegate.models import utcnow
from scopegate.services.credentials import (
    CredentialVerifier,
    PasscodeVerifier,
    PasswordVerifier,
    generate_passcode,
    generate_session_token,
    hash_passcode,
)
from scopegate.services.directory import get_admin_emails, is_admin_email
from scopegate.services.errors import AuthorizationError, ConfigurationError, ValidationError
from scopegate.services.scopes import (
    AdminScope,
    get_admin_scope_label,
    normalize_admin_scope,
    normalize_email,
)
from scopegate.services.store import SessionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedSession:
    """Result of a successful issuance."""

    token: str
    email: str
    expires_at: datetime


@dataclass(frozen=True)
class PasscodeRequest:
    """A passcode ready for out-of-band delivery."""

    email: str
    code: str
    code_expires_at: datetime
    scope: AdminScope


def _clean(value: object) -> str:
    return value.strip() if isinstance(value, str) else ""


class SessionIssuer:
    """Orchestrates directory lookup, credential checks and session creation."""

    def __init__(self, session: AsyncSession, store: SessionStore | None = None):
        self.session = session
        self.store = store or SessionStore(session)

    async def authorize_email(self, email: str, scope: AdminScope | str | None) -> AdminScope:
        """Fail unless the email is listed for the (normalized) scope."""
        normalized_scope = normalize_admin_scope(scope)
        admins = await get_admin_emails(self.session, normalized_scope)
        if not admins:
            logger.error(
                f"Sign-in for {email} refused: no admin emails configured "
                f"for scope '{normalized_scope.value}'"
            )
            raise ConfigurationError("No admin emails are configured.")

        if email not in admins:
            label = get_admin_scope_label(normalized_scope)
            logger.info(f"Sign-in for {email} refused: not authorized for {label}")
            raise AuthorizationError(f"Email not authorized for {label} access.")
        return normalized_scope

    async def _issue(
        self,
        email: str,
        secret: str,
        scope: AdminScope | str | None,
        verifier: CredentialVerifier,
        session_ttl_hours: float,
        now: datetime | None,
    ) -> IssuedSession:
        normalized_scope = await self.authorize_email(email, scope)
        now = now or utcnow()
        token = generate_session_token()

        async with self.store.transaction():
            proof = await verifier.verify(self.store, email, secret, now)
            await self.store.create_session(
                email=email,
                token=token,
                created_at=now,
                session_ttl_hours=session_ttl_hours,
                code_hash=proof.code_hash,
                code_expires_at=proof.code_expires_at,
                code_used_at=proof.code_used_at,
            )

        logger.info(
            f"Issued {proof.method} admin session for {email} "
            f"(scope '{normalized_scope.value}', {session_ttl_hours}h)"
        )
        return IssuedSession(
            token=token,
            email=email,
            expires_at=now + timedelta(hours=session_ttl_hours),
        )

    async def issue_by_password(
        self,
        email: str,
        password: str,
        scope: AdminScope | str | None = None,
        *,
        session_ttl_hours: float,
        password_hash: str | None = None,
        now: datetime | None = None,
    ) -> IssuedSession:
        """Issue a session after checking the shared admin password."""
        email = normalize_email(email)
        password = _clean(password)
        if not email or not password:
            raise ValidationError("Email and password are required.")

        verifier = PasswordVerifier(
            password_hash if password_hash is not None else settings.admin_password_hash
        )
        return await self._issue(email, password, scope, verifier, session_ttl_hours, now)

    async def issue_by_passcode(
        self,
        email: str,
        code: str,
        scope: AdminScope | str | None = None,
        *,
        session_ttl_hours: float,
        now: datetime | None = None,
    ) -> IssuedSession:
        """Redeem an emailed passcode for a session."""
        email = normalize_email(email)
        code = _clean(code)
        if not email or not code:
            raise ValidationError("Email and passcode are required.")

        return await self._issue(email, code, scope, PasscodeVerifier(), session_ttl_hours, now)

    async def request_passcode(
        self,
        email: str,
        scope: AdminScope | str | None = None,
        *,
        code_ttl_minutes: float,
        now: datetime | None = None,
    ) -> PasscodeRequest:
        """Create a passcode challenge; the caller delivers the code."""
        email = normalize_email(email)
        if not email:
            raise ValidationError("Email is required.")

        normalized_scope = await self.authorize_email(email, scope)
        now = now or utcnow()
        code = generate_passcode()
        code_expires_at = now + timedelta(minutes=code_ttl_minutes)

        async with self.store.transaction():
            await self.store.create_passcode_challenge(
                email=email,
                code_hash=hash_passcode(code),
                code_expires_at=code_expires_at,
                created_at=now,
            )

        logger.info(f"Created admin passcode for {email} (scope '{normalized_scope.value}')")
        return PasscodeRequest(
            email=email,
            code=code,
            code_expires_at=code_expires_at,
            scope=normalized_scope,
        )

    async def issue_automation_token(
        self,
        email: str,
        *,
        session_ttl_hours: float,
        now: datetime | None = None,
    ) -> IssuedSession:
        """Create a long-lived session for external automation.

        Operator-only (CLI); the email must hold at least one scope.
        """
        email = normalize_email(email)
        if not email:
            raise ValidationError("Email is required.")

        if not await is_admin_email(self.session, email, AdminScope.ANY):
            raise AuthorizationError("Email not authorized for admin access.")

        now = now or utcnow()
        token = generate_session_token()
        async with self.store.transaction():
            await self.store.create_session(
                email=email,
                token=token,
                created_at=now,
                session_ttl_hours=session_ttl_hours,
            )

        logger.info(f"Issued automation token for {email} ({session_ttl_hours}h)")
        return IssuedSession(
            token=token,
            email=email,
            expires_at=now + timedelta(hours=session_ttl_hours),
        )
