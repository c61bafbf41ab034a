"""Request and response bodies for the admin session API."""

from pydantic import BaseModel, Field

from scopegate.services.scopes import AdminAccess


class PasswordSignInRequest(BaseModel):
    """Request body for password sign-in."""

    email: str | None = None
    password: str | None = None
    scope: str | None = Field(default=None, description="admin, approvals, updates, coordinator or any")


class PasscodeSignInRequest(BaseModel):
    """Request body for passcode redemption."""

    email: str | None = None
    code: str | None = None
    scope: str | None = None


class PasscodeRequest(BaseModel):
    """Request body for emailing a passcode."""

    email: str | None = None
    scope: str | None = None


class AccessFlags(BaseModel):
    """Full scope membership for a freshly signed-in admin."""

    admin: bool = False
    approvals: bool = False
    updates: bool = False
    coordinator: bool = False

    @classmethod
    def from_access(cls, access: AdminAccess) -> "AccessFlags":
        return cls(**access.to_dict())


class SessionIssuedResponse(BaseModel):
    """Response for a successful sign-in."""

    ok: bool = True
    token: str
    email: str
    access: AccessFlags


class AccessCheckResponse(BaseModel):
    """Response for an access check.

    ``access`` always has ``approvals`` and ``updates``; ``admin`` and
    ``coordinator`` appear only for admins.
    """

    ok: bool = True
    email: str
    access: dict[str, bool]


class OkResponse(BaseModel):
    """Bare success response."""

    ok: bool = True
