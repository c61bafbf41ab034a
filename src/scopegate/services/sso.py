"""Browser single sign-on identity.

The SSO layer in front of the admin pages authenticates users independently and
hands us a signed JWT cookie. Its ``email`` claim is trusted as-is; scope
membership is always recomputed from the directory.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from scopegate.config import settings
from scopegate.services.scopes import normalize_email

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SSOIdentity:
    """An independently authenticated browser user."""

    email: str
    name: str | None = None


def decode_sso_identity(raw: str | None) -> SSOIdentity | None:
    """Decode an SSO cookie value; invalid or expired cookies yield None."""
    if not raw:
        return None

    try:
        payload = jwt.decode(raw, settings.sso_secret, algorithms=[settings.sso_algorithm])
    except JWTError as e:
        logger.debug(f"Ignoring invalid SSO identity: {e!r}")
        return None

    email = normalize_email(payload.get("email"))
    if not email:
        return None
    name = payload.get("name")
    return SSOIdentity(email=email, name=name if isinstance(name, str) else None)


def create_sso_identity_token(
    email: str,
    name: str | None = None,
    expires_hours: int | None = None,
) -> str:
    """Mint an SSO identity JWT (development and tests)."""
    now = datetime.now(UTC)
    hours = expires_hours if expires_hours is not None else settings.sso_expiration_hours
    payload = {
        "sub": normalize_email(email),
        "email": normalize_email(email),
        "name": name,
        "iat": now,
        "exp": now + timedelta(hours=hours),
    }
    return jwt.encode(payload, settings.sso_secret, algorithm=settings.sso_algorithm)
