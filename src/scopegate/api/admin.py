"""Admin session endpoints."""

import logging

from fastapi import APIRouter, Request, Response

from scopegate.api.deps import (
    AccessRateLimit,
    AnyAdmin,
    BearerToken,
    GuardDep,
    IssuerDep,
    SessionDep,
    enforce_rate_limit,
)
from scopegate.api.utils import build_cors_headers, preflight_response
from scopegate.config import settings
from scopegate.schemas import (
    AccessCheckResponse,
    AccessFlags,
    ErrorResponse,
    OkResponse,
    PasscodeRequest,
    PasscodeSignInRequest,
    PasswordSignInRequest,
    SessionIssuedResponse,
)
from scopegate.services.directory import get_admin_access
from scopegate.services.email import email_service
from scopegate.services.errors import InfrastructureError
from scopegate.services.rate_limit import RateLimitType
from scopegate.services.scopes import get_admin_scope_label, normalize_email

logger = logging.getLogger(__name__)

router = APIRouter()

POST_METHODS = "POST, OPTIONS"
GET_METHODS = "GET, OPTIONS"

ERROR_RESPONSES: dict[int | str, dict] = {
    status_code: {"model": ErrorResponse} for status_code in (400, 401, 403, 429, 500)
}


@router.options("/password", include_in_schema=False)
@router.options("/verify", include_in_schema=False)
@router.options("/login", include_in_schema=False)
@router.options("/logout", include_in_schema=False)
async def post_preflight() -> Response:
    return preflight_response(POST_METHODS)


@router.options("/access", include_in_schema=False)
async def get_preflight() -> Response:
    return preflight_response(GET_METHODS)


@router.post("/password", response_model=SessionIssuedResponse, responses=ERROR_RESPONSES)
async def sign_in_with_password(
    body: PasswordSignInRequest,
    request: Request,
    response: Response,
    session: SessionDep,
    issuer: IssuerDep,
):
    """Issue an admin session using the shared admin password."""
    response.headers.update(build_cors_headers(POST_METHODS))
    await enforce_rate_limit(request, RateLimitType.SIGN_IN, normalize_email(body.email))

    issued = await issuer.issue_by_password(
        body.email or "",
        body.password or "",
        body.scope,
        session_ttl_hours=settings.session_ttl_hours,
    )
    access = await get_admin_access(session, issued.email)
    return SessionIssuedResponse(
        token=issued.token,
        email=issued.email,
        access=AccessFlags.from_access(access),
    )


@router.post("/verify", response_model=SessionIssuedResponse, responses=ERROR_RESPONSES)
async def sign_in_with_passcode(
    body: PasscodeSignInRequest,
    request: Request,
    response: Response,
    session: SessionDep,
    issuer: IssuerDep,
):
    """Redeem an emailed passcode for an admin session."""
    response.headers.update(build_cors_headers(POST_METHODS))
    await enforce_rate_limit(request, RateLimitType.SIGN_IN, normalize_email(body.email))

    issued = await issuer.issue_by_passcode(
        body.email or "",
        body.code or "",
        body.scope,
        session_ttl_hours=settings.session_ttl_hours,
    )
    access = await get_admin_access(session, issued.email)
    return SessionIssuedResponse(
        token=issued.token,
        email=issued.email,
        access=AccessFlags.from_access(access),
    )


@router.post("/login", response_model=OkResponse, responses=ERROR_RESPONSES)
async def request_passcode(
    body: PasscodeRequest,
    request: Request,
    response: Response,
    issuer: IssuerDep,
):
    """Email a one-time passcode to an authorized admin."""
    response.headers.update(build_cors_headers(POST_METHODS))
    await enforce_rate_limit(request, RateLimitType.PASSCODE_REQUEST, normalize_email(body.email))

    passcode = await issuer.request_passcode(
        body.email or "",
        body.scope,
        code_ttl_minutes=settings.passcode_ttl_minutes,
    )
    sent = await email_service.send_admin_passcode(
        to=passcode.email,
        code=passcode.code,
        expires_minutes=settings.passcode_ttl_minutes,
        scope_label=get_admin_scope_label(passcode.scope),
    )
    if not sent:
        raise InfrastructureError(f"Passcode email to {passcode.email} was not delivered")

    return OkResponse()


@router.get("/access", response_model=AccessCheckResponse, responses=ERROR_RESPONSES)
async def check_access(
    response: Response,
    _rate_limit: AccessRateLimit,
    principal: AnyAdmin,
):
    """Report the caller's scopes (browser SSO or bearer token)."""
    response.headers.update(build_cors_headers(GET_METHODS))

    access = {
        "approvals": principal.access.approvals,
        "updates": principal.access.updates,
    }
    if principal.access.admin:
        access["admin"] = True
        access["coordinator"] = principal.access.coordinator

    return AccessCheckResponse(email=principal.email, access=access)


@router.post("/logout", response_model=OkResponse, responses=ERROR_RESPONSES)
async def logout(
    response: Response,
    token: BearerToken,
    guard: GuardDep,
):
    """Revoke the session behind the presented bearer token."""
    response.headers.update(build_cors_headers(POST_METHODS))
    await guard.revoke(token)
    return OkResponse()
