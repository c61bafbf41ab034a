"""FastAPI dependencies for dependency injection."""

import logging
from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from scopegate.config import settings
from scopegate.database import get_session
from scopegate.services.errors import RateLimitedError
from scopegate.services.guard import AuthenticatedPrincipal, SessionGuard, extract_bearer_token
from scopegate.services.issuer import SessionIssuer
from scopegate.services.rate_limit import (
    RateLimitType,
    check_rate_limit,
    rate_limit_headers,
)
from scopegate.services.scopes import AdminScope
from scopegate.services.sso import SSOIdentity, decode_sso_identity

logger = logging.getLogger(__name__)

# Type alias for database session dependency
SessionDep = Annotated[AsyncSession, Depends(get_session)]


def get_bearer_token(authorization: Annotated[str | None, Header()] = None) -> str:
    """Bearer token from the Authorization header, empty when absent."""
    return extract_bearer_token(authorization)


def get_sso_identity(request: Request) -> SSOIdentity | None:
    """Browser SSO identity from its cookie, if present and valid."""
    return decode_sso_identity(request.cookies.get(settings.sso_cookie_name))


def get_issuer(session: SessionDep) -> SessionIssuer:
    return SessionIssuer(session)


def get_guard(session: SessionDep) -> SessionGuard:
    return SessionGuard(session)


BearerToken = Annotated[str, Depends(get_bearer_token)]
SSOIdentityDep = Annotated[SSOIdentity | None, Depends(get_sso_identity)]
IssuerDep = Annotated[SessionIssuer, Depends(get_issuer)]
GuardDep = Annotated[SessionGuard, Depends(get_guard)]


class RequireScope:
    """Dependency resolving the caller and requiring an admin scope.

    Usage:
        @router.post("/send")
        async def send(
            principal: Annotated[AuthenticatedPrincipal, Depends(RequireScope(AdminScope.UPDATES))]
        ):
            ...
    """

    def __init__(self, scope: AdminScope) -> None:
        self.scope = scope

    async def __call__(
        self,
        guard: GuardDep,
        token: BearerToken,
        sso_identity: SSOIdentityDep,
    ) -> AuthenticatedPrincipal:
        return await guard.get_scoped_session(token, self.scope, sso_identity=sso_identity)


async def enforce_rate_limit(
    request: Request,
    limit_type: RateLimitType,
    email: str | None = None,
) -> None:
    """Raise RateLimitedError when the client or email is over its limit."""
    result = await check_rate_limit(request, limit_type, email)
    if not result.success:
        logger.warning(f"Rate limit '{limit_type.value}' exceeded for {email or 'anonymous'}")
        raise RateLimitedError(rate_limit_headers(result))


class RateLimitDependency:
    """Per-IP rate limit as a route dependency."""

    def __init__(self, limit_type: RateLimitType) -> None:
        self.limit_type = limit_type

    async def __call__(self, request: Request) -> None:
        await enforce_rate_limit(request, self.limit_type)


# Pre-configured dependencies
AnyAdmin = Annotated[AuthenticatedPrincipal, Depends(RequireScope(AdminScope.ANY))]
AccessRateLimit = Annotated[None, Depends(RateLimitDependency(RateLimitType.ACCESS))]
