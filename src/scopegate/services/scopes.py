"""Admin capability scopes."""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


class AdminScope(str, Enum):
    """Independent administrative capabilities an email may hold.

    ``ANY`` is a meta-value meaning "any of the concrete scopes suffices" and is
    never stored in the directory.
    """

    ADMIN = "admin"
    APPROVALS = "approvals"
    UPDATES = "updates"
    COORDINATOR = "coordinator"
    ANY = "any"


CONCRETE_SCOPES: tuple[AdminScope, ...] = (
    AdminScope.ADMIN,
    AdminScope.APPROVALS,
    AdminScope.UPDATES,
    AdminScope.COORDINATOR,
)

SCOPE_LABELS: dict[AdminScope, str] = {
    AdminScope.ADMIN: "admin",
    AdminScope.APPROVALS: "study approvals",
    AdminScope.UPDATES: "study updates",
    AdminScope.COORDINATOR: "coordinator",
}

DEFAULT_SCOPE_LABEL = "admin"


def normalize_admin_scope(value: Any) -> AdminScope:
    """Map untrusted input to a scope, falling back to ``ANY``."""
    if isinstance(value, AdminScope):
        return value
    if not isinstance(value, str):
        return AdminScope.ANY
    try:
        return AdminScope(value.strip().lower())
    except ValueError:
        return AdminScope.ANY


def get_admin_scope_label(scope: Any) -> str:
    """Human readable label used in authorization messages."""
    return SCOPE_LABELS.get(normalize_admin_scope(scope), DEFAULT_SCOPE_LABEL)


def normalize_email(value: Any) -> str:
    """Trim and lowercase an email; non-strings normalize to an empty string."""
    if not isinstance(value, str):
        return ""
    return value.strip().lower()


@dataclass(frozen=True)
class AdminAccess:
    """Scope membership flags for one email."""

    admin: bool = False
    approvals: bool = False
    updates: bool = False
    coordinator: bool = False

    @classmethod
    def from_scopes(cls, scopes: set[AdminScope]) -> "AdminAccess":
        return cls(
            admin=AdminScope.ADMIN in scopes,
            approvals=AdminScope.APPROVALS in scopes,
            updates=AdminScope.UPDATES in scopes,
            coordinator=AdminScope.COORDINATOR in scopes,
        )

    def has(self, scope: AdminScope) -> bool:
        """Check membership; ``ANY`` is satisfied by at least one scope."""
        if scope == AdminScope.ANY:
            return self.has_any()
        return bool(getattr(self, scope.value))

    def has_any(self) -> bool:
        return any((self.admin, self.approvals, self.updates, self.coordinator))

    def to_dict(self) -> dict[str, bool]:
        return asdict(self)
