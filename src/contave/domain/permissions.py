"""Authorization gate.

Permissions are flat ``module:action`` strings. ``*:*`` grants everything.
The checks are pure; callers pass in the identity they already resolved.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from contave.domain.errors import ForbiddenError, UnauthenticatedError, permission_denied

SUPER_PERMISSION = "*:*"


@dataclass(frozen=True)
class Caller:
    """Authenticated identity performing an operation."""

    user_id: int
    company_id: Optional[int]
    permissions: frozenset[str]
    username: Optional[str] = None

    @classmethod
    def build(
        cls,
        user_id: int,
        company_id: Optional[int],
        permissions: Iterable[str],
        username: Optional[str] = None,
    ) -> "Caller":
        return cls(
            user_id=user_id,
            company_id=company_id,
            permissions=frozenset(permissions),
            username=username,
        )


def permission_key(module: str, action: str) -> str:
    """Return the ``module:action`` string for a permission."""
    return f"{module}:{action}"


def allowed(permissions: Iterable[str], module: str, action: str) -> bool:
    """Check whether a permission set grants ``module:action``."""
    granted = permissions if isinstance(permissions, (set, frozenset)) else set(permissions)
    if SUPER_PERMISSION in granted:
        return True
    return permission_key(module, action) in granted


def allowed_any(permissions: Iterable[str], required: Iterable[tuple[str, str]]) -> bool:
    """True if at least one of the ``(module, action)`` pairs is granted."""
    granted = frozenset(permissions)
    return any(allowed(granted, module, action) for module, action in required)


def allowed_all(permissions: Iterable[str], required: Iterable[tuple[str, str]]) -> bool:
    """True if every ``(module, action)`` pair is granted."""
    granted = frozenset(permissions)
    return all(allowed(granted, module, action) for module, action in required)


def require(caller: Optional[Caller], module: str, action: str) -> Caller:
    """Return the caller if it may perform ``module:action``.

    Raises:
        UnauthenticatedError: If there is no caller
        ForbiddenError: If the caller lacks the permission
    """
    if caller is None:
        raise UnauthenticatedError("Authentication required")
    if not allowed(caller.permissions, module, action):
        raise ForbiddenError(permission_denied(module, action))
    return caller


def require_authenticated(caller: Optional[Caller]) -> Caller:
    """Return the caller, or fail when there is none."""
    if caller is None:
        raise UnauthenticatedError("Authentication required")
    return caller
