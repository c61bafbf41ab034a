"""Pydantic schemas for API requests/responses."""

from scopegate.schemas.admin import (
    AccessCheckResponse,
    AccessFlags,
    OkResponse,
    PasscodeRequest,
    PasscodeSignInRequest,
    PasswordSignInRequest,
    SessionIssuedResponse,
)
from scopegate.schemas.common import ErrorResponse

__all__ = [
    "AccessCheckResponse",
    "AccessFlags",
    "ErrorResponse",
    "OkResponse",
    "PasscodeRequest",
    "PasscodeSignInRequest",
    "PasswordSignInRequest",
    "SessionIssuedResponse",
]
