"""Credential verification policies for admin sign-in.

Two policies share one contract: given an email and a submitted secret they
either return a :class:`CredentialProof` or raise :class:`AuthenticationError`.
The password policy checks one centrally configured secret. The passcode
policy redeems the latest emailed one-time code exactly once.
"""

import base64
import hashlib
import hmac
import logging
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from scopegate.services.errors import AuthenticationError
from scopegate.services.store import SessionStore

logger = logging.getLogger(__name__)

PASSWORD_HASH_PREFIX = "pbkdf2"
PASSWORD_HASH_DIGEST = "sha256"
PASSWORD_HASH_ITERATIONS = 120_000
PASSWORD_HASH_BYTES = 64
PASSWORD_SALT_BYTES = 16

PASSCODE_MIN = 100_000
PASSCODE_SPAN = 900_000


def generate_session_token() -> str:
    """256-bit random bearer token."""
    return secrets.token_hex(32)


def generate_passcode() -> str:
    """Six digit numeric passcode."""
    return str(PASSCODE_MIN + secrets.randbelow(PASSCODE_SPAN))


def hash_passcode(code: str) -> str:
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


def passcode_matches(code: str, code_hash: str) -> bool:
    if not code or not code_hash:
        return False
    return hmac.compare_digest(hash_passcode(code), code_hash)


def hash_password(
    password: str,
    *,
    iterations: int = PASSWORD_HASH_ITERATIONS,
    salt: bytes | None = None,
) -> str:
    """Encode a password as ``pbkdf2$sha256$<iterations>$<salt_b64>$<hash_b64>``."""
    salt = salt if salt is not None else secrets.token_bytes(PASSWORD_SALT_BYTES)
    derived = hashlib.pbkdf2_hmac(
        PASSWORD_HASH_DIGEST, password.encode("utf-8"), salt, iterations, PASSWORD_HASH_BYTES
    )
    return "$".join(
        [
            PASSWORD_HASH_PREFIX,
            PASSWORD_HASH_DIGEST,
            str(iterations),
            base64.b64encode(salt).decode("ascii"),
            base64.b64encode(derived).decode("ascii"),
        ]
    )


def verify_password(password: str, encoded: str) -> bool:
    """Check a password against an encoded PBKDF2 hash.

    Malformed hashes never match.
    """
    try:
        prefix, digest, iterations_str, salt_b64, hash_b64 = encoded.split("$")
        if prefix != PASSWORD_HASH_PREFIX:
            return False
        iterations = int(iterations_str)
        salt = base64.b64decode(salt_b64, validate=True)
        expected = base64.b64decode(hash_b64, validate=True)
        derived = hashlib.pbkdf2_hmac(
            digest, password.encode("utf-8"), salt, iterations, len(expected)
        )
    except ValueError:
        logger.error("Configured admin password hash is malformed")
        return False
    return hmac.compare_digest(derived, expected)


@dataclass(frozen=True)
class CredentialProof:
    """Evidence that a secret was verified, carried onto the new session."""

    method: Literal["password", "passcode"]
    code_hash: str = ""
    code_expires_at: datetime | None = None
    code_used_at: datetime | None = None


class CredentialVerifier(ABC):
    """Abstract verification policy."""

    @abstractmethod
    async def verify(
        self,
        store: SessionStore,
        email: str,
        secret: str,
        now: datetime,
    ) -> CredentialProof:
        """Verify ``secret`` for ``email`` or raise AuthenticationError."""
        pass


class PasswordVerifier(CredentialVerifier):
    """Checks the shared admin password."""

    def __init__(self, password_hash: str):
        self.password_hash = password_hash

    async def verify(
        self,
        store: SessionStore,
        email: str,
        secret: str,
        now: datetime,
    ) -> CredentialProof:
        if not self.password_hash:
            logger.warning(f"Password sign-in attempted by {email} but no admin password is configured")
            raise AuthenticationError("password_not_configured")

        if not verify_password(secret, self.password_hash):
            logger.info(f"Password sign-in rejected for {email}: password mismatch")
            raise AuthenticationError("password_mismatch")

        return CredentialProof(method="password")


class PasscodeVerifier(CredentialVerifier):
    """Redeems the latest passcode challenge for an email.

    Must run inside the store transaction that creates the session so that the
    redemption and the new session commit together.
    """

    async def verify(
        self,
        store: SessionStore,
        email: str,
        secret: str,
        now: datetime,
    ) -> CredentialProof:
        challenge = await store.find_latest_passcode_challenge(email)

        if challenge is None:
            logger.info(f"Passcode rejected for {email}: no passcode requested")
            raise AuthenticationError("passcode_not_found")

        if challenge.code_used_at is not None:
            logger.info(f"Passcode rejected for {email}: already used")
            raise AuthenticationError("passcode_used")

        if challenge.is_code_expired(now):
            logger.info(f"Passcode rejected for {email}: expired")
            raise AuthenticationError("passcode_expired")

        if not passcode_matches(secret, challenge.code_hash):
            logger.info(f"Passcode rejected for {email}: mismatch")
            raise AuthenticationError("passcode_mismatch")

        if not await store.mark_passcode_used_if_unset(challenge.id, now):
            logger.info(f"Passcode rejected for {email}: redeemed concurrently")
            raise AuthenticationError("passcode_used")

        return CredentialProof(
            method="passcode",
            code_hash=challenge.code_hash,
            code_expires_at=challenge.code_expires_at,
            code_used_at=now,
        )
