"""Users, roles, password login and caller tokens."""

from datetime import datetime, timedelta, UTC
from typing import Iterable, Optional

import bcrypt
import jwt

from contave.config import Settings
from contave.database.base import Database
from contave.domain.entities import Role as RoleEntity, User as UserEntity
from contave.domain.errors import (
    ConflictError,
    IncompleteDataError,
    NotFoundError,
    UnauthenticatedError,
    ValidationError,
    company_not_found,
    missing_fields,
    user_not_found,
)
from contave.domain.permissions import SUPER_PERMISSION, Caller
from contave.logging_config import get_logger

logger = get_logger(__name__)

ADMIN_ROLE = "ADMIN"
TOKEN_ALGORITHM = "HS256"


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password with bcrypt."""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a bcrypt hash.

    A malformed stored hash counts as a mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("stored password hash is not a valid bcrypt hash")
        return False


def parse_permission(permission: str) -> tuple[str, str]:
    """Split ``"module:action"`` into its parts."""
    module, sep, action = permission.partition(":")
    if not sep or not module or not action:
        raise ValidationError(f"Invalid permission '{permission}', expected 'module:action'")
    return module, action


def ensure_admin_role(db: Database) -> RoleEntity:
    """Return the ADMIN role, creating it with ``*:*`` if needed."""
    role = db.get_role_by_name(ADMIN_ROLE)
    if role is None:
        role_id = db.create_role(ADMIN_ROLE, [parse_permission(SUPER_PERMISSION)], "Full access")
        role = db.get_role(role_id)
    return role


class AuthService:
    """Service for identities, login and tokens."""

    def __init__(self, db: Database, settings: Optional[Settings] = None):
        """Initialize auth service.

        Args:
            db: Database instance
            settings: Settings providing the token secret, token lifetime and
                bcrypt work factor (defaults apply when omitted)
        """
        self.db = db
        self.settings = settings or Settings()

    def create_user(
        self,
        username: str,
        email: str,
        password: str,
        first_name: str = "",
        last_name: str = "",
    ) -> int:
        """Create a user with a hashed password.

        Returns:
            User ID

        Raises:
            IncompleteDataError: If username, email or password is empty
            ConflictError: If the username or email is taken
        """
        missing = [
            name
            for name, value in (("username", username), ("email", email), ("password", password))
            if not value
        ]
        if missing:
            raise IncompleteDataError(missing_fields(missing))

        if self.db.get_user_by_login(username) is not None or self.db.get_user_by_login(email) is not None:
            raise ConflictError("Username or email already exists")

        user_id = self.db.create_user(
            username=username,
            email=email,
            password_hash=hash_password(password, self.settings.bcrypt_rounds),
            first_name=first_name,
            last_name=last_name,
        )
        logger.info("user created", extra={"user_id": user_id, "username": username})
        return user_id

    def get_user(self, user_id: int) -> Optional[UserEntity]:
        """Get user by ID."""
        return self.db.get_user(user_id)

    def create_role(
        self, name: str, permissions: Iterable[str], description: Optional[str] = None
    ) -> int:
        """Create a role from ``module:action`` strings.

        Raises:
            ConflictError: If a role with that name exists
            ValidationError: If a permission string is malformed
        """
        if self.db.get_role_by_name(name) is not None:
            raise ConflictError(f"Role '{name}' already exists")
        grants = [parse_permission(p) for p in permissions]
        return self.db.create_role(name, grants, description)

    def grant_company(self, user_id: int, company_id: int, role_id: int, is_default: bool = False) -> None:
        """Give a user access to a company through a role."""
        if self.db.get_user(user_id) is None:
            raise NotFoundError(user_not_found(user_id))
        if self.db.get_company(company_id) is None:
            raise NotFoundError(company_not_found(company_id))
        if self.db.get_role(role_id) is None:
            raise NotFoundError(f"Role {role_id} not found")
        self.db.add_membership(user_id, company_id, role_id, is_default=is_default)

    def authenticate(self, login: str, password: str) -> Caller:
        """Log in with username (or email) and password.

        The caller works in the user's default company, or the first one
        when none is marked default.

        Raises:
            UnauthenticatedError: With a message naming the reason
        """
        user = self.db.get_user_by_login(login)
        if user is None:
            raise UnauthenticatedError("User not found")
        if not user.is_active:
            raise UnauthenticatedError("User is inactive")
        if user.is_blocked:
            raise UnauthenticatedError("User is blocked")

        password_hash = self.db.get_password_hash(user.id)
        if password_hash is None or not verify_password(password, password_hash):
            self.db.record_failed_login(user.id)
            logger.warning("failed login", extra={"user_id": user.id})
            raise UnauthenticatedError("Incorrect password")

        memberships = self.db.list_memberships(user.id)
        if not memberships:
            raise UnauthenticatedError("User has no companies assigned")

        self.db.record_successful_login(user.id)

        membership = next((m for m in memberships if m.is_default), memberships[0])
        role = self.db.get_role(membership.role_id)
        permissions = role.permissions if role is not None else frozenset()

        logger.info("user logged in", extra={"user_id": user.id, "company_id": membership.company_id})
        return Caller.build(user.id, membership.company_id, permissions, username=user.username)

    def issue_token(self, caller: Caller, now: Optional[datetime] = None) -> str:
        """Sign a token carrying the caller identity."""
        issued = now or datetime.now(UTC)
        payload = {
            "sub": str(caller.user_id),
            "username": caller.username,
            "company_id": caller.company_id,
            "permissions": sorted(caller.permissions),
            "iat": issued,
            "exp": issued + timedelta(hours=self.settings.token_hours),
        }
        return jwt.encode(payload, self.settings.jwt_secret, algorithm=TOKEN_ALGORITHM)

    def verify_token(self, token: Optional[str]) -> Optional[Caller]:
        """Return the caller in a token, or None if it is missing, expired or forged."""
        if not token:
            return None
        try:
            payload = jwt.decode(token, self.settings.jwt_secret, algorithms=[TOKEN_ALGORITHM])
        except jwt.InvalidTokenError as e:
            logger.debug("rejected token", extra={"reason": str(e)})
            return None

        return Caller.build(
            user_id=int(payload["sub"]),
            company_id=payload.get("company_id"),
            permissions=payload.get("permissions", []),
            username=payload.get("username"),
        )

    def bootstrap_admin(
        self,
        username: str,
        email: str,
        password: str,
        first_name: str = "Admin",
        last_name: str = "",
    ) -> Caller:
        """Create the first user and the ADMIN role.

        The returned caller holds ``*:*`` but no company yet; creating a
        company links the admin to it, after which normal login works.

        Raises:
            ConflictError: If any user already exists
        """
        if self.db.count_users() > 0:
            raise ConflictError("An administrator already exists")

        with self.db.transaction():
            user_id = self.create_user(username, email, password, first_name, last_name)
            role = ensure_admin_role(self.db)

        logger.info("administrator bootstrapped", extra={"user_id": user_id})
        return Caller.build(user_id, None, role.permissions, username=username)
