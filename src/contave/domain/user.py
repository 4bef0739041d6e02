"""User administration service."""

from typing import Iterable, Optional

from contave.config import Settings
from contave.database.base import Database
from contave.domain.auth import AuthService, hash_password
from contave.domain.entities import User as UserEntity, UserPatch
from contave.domain.errors import (
    ConflictError,
    IncompleteDataError,
    NotFoundError,
    ValidationError,
    user_not_found,
)
from contave.domain.permissions import Caller, require
from contave.logging_config import get_logger

logger = get_logger(__name__)


class UserService:
    """Permission-checked management of users, roles and company access.

    :class:`AuthService` holds the unchecked primitives used by login and
    bootstrap; everything here goes through the ``users`` and ``roles``
    permissions first.
    """

    def __init__(self, db: Database, settings: Optional[Settings] = None):
        """Initialize user service.

        Args:
            db: Database instance
            settings: Settings providing the bcrypt work factor
        """
        self.db = db
        self.auth = AuthService(db, settings)

    def get_user(self, user_id: int) -> UserEntity:
        """Get user by ID.

        Raises:
            NotFoundError: If the user does not exist
        """
        user = self.db.get_user(user_id)
        if user is None:
            raise NotFoundError(user_not_found(user_id))
        return user

    def list_users(self, caller: Optional[Caller], active_only: bool = False) -> list[UserEntity]:
        """List users ordered by username."""
        require(caller, "users", "view")
        return self.db.list_users(active_only=active_only)

    def create_user(
        self,
        caller: Optional[Caller],
        username: str,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        company_id: Optional[int] = None,
        role_name: Optional[str] = None,
    ) -> int:
        """Create a user, optionally giving access to one company.

        When ``company_id`` is given the user gets that company as default,
        through ``role_name``.

        Returns:
            User ID

        Raises:
            IncompleteDataError: If a required field is missing, or a company
                is given without a role
            ConflictError: If the username or email is taken
            NotFoundError: If the company or role does not exist
        """
        caller = require(caller, "users", "create")
        if not first_name or not last_name:
            raise IncompleteDataError("First and last name are required")
        if company_id is not None and not role_name:
            raise IncompleteDataError("A role is required to grant company access")

        with self.db.transaction():
            user_id = self.auth.create_user(username, email, password, first_name, last_name)
            if company_id is not None:
                self._grant(user_id, company_id, role_name, is_default=True)

        logger.info("user registered", extra={"user_id": user_id, "created_by": caller.user_id})
        return user_id

    def update_user(
        self,
        caller: Optional[Caller],
        user_id: int,
        patch: UserPatch,
        password: Optional[str] = None,
    ) -> None:
        """Apply a user patch and optionally set a new password.

        Raises:
            NotFoundError: If the user does not exist
            ConflictError: If the new email belongs to someone else
            ValidationError: If a name or the email is set to empty, or a
                caller tries to deactivate or block themselves
        """
        caller = require(caller, "users", "edit")
        self.get_user(user_id)

        changes = patch.changes()
        for name in ("email", "first_name", "last_name"):
            if name in changes and not str(changes[name]).strip():
                raise ValidationError(f"{name.replace('_', ' ').capitalize()} cannot be empty")
        if user_id == caller.user_id and (changes.get("is_active") is False or changes.get("is_blocked")):
            raise ValidationError("You cannot deactivate or block your own user")
        if "email" in changes:
            other = self.db.get_user_by_login(changes["email"])
            if other is not None and other.id != user_id:
                raise ConflictError("Username or email already exists")

        with self.db.transaction():
            if changes:
                self.db.update_user(user_id, changes)
            if password:
                self.db.set_password_hash(user_id, hash_password(password, self.auth.settings.bcrypt_rounds))

        logger.info(
            "user updated",
            extra={"user_id": user_id, "fields": sorted(changes), "password_changed": bool(password)},
        )

    def deactivate_user(self, caller: Optional[Caller], user_id: int) -> None:
        """Soft-delete a user so they can no longer log in.

        Raises:
            NotFoundError: If the user does not exist
            ValidationError: If callers target themselves
        """
        caller = require(caller, "users", "delete")
        if user_id == caller.user_id:
            raise ValidationError("You cannot deactivate your own user")
        self.get_user(user_id)

        self.db.update_user(user_id, {"is_active": False})
        logger.info("user deactivated", extra={"user_id": user_id, "deactivated_by": caller.user_id})

    def create_role(
        self,
        caller: Optional[Caller],
        name: str,
        permissions: Iterable[str],
        description: Optional[str] = None,
    ) -> int:
        """Create a role from ``module:action`` strings. Returns role ID."""
        require(caller, "roles", "create")
        if not name or not name.strip():
            raise IncompleteDataError("Role name is required")
        permissions = list(permissions)
        if not permissions:
            raise IncompleteDataError("A role needs at least one permission")
        return self.auth.create_role(name.strip().upper(), permissions, description)

    def grant_company(
        self,
        caller: Optional[Caller],
        user_id: int,
        company_id: int,
        role_name: str,
        is_default: bool = False,
    ) -> None:
        """Give a user access to a company through a named role.

        Granting again replaces the role for that company.
        """
        caller = require(caller, "users", "edit")
        self._grant(user_id, company_id, role_name, is_default)
        logger.info(
            "company access granted",
            extra={"user_id": user_id, "company_id": company_id, "role": role_name, "granted_by": caller.user_id},
        )

    def _grant(self, user_id: int, company_id: int, role_name: str, is_default: bool) -> None:
        role = self.db.get_role_by_name(role_name.strip().upper())
        if role is None:
            raise NotFoundError(f"Role '{role_name}' not found")
        self.auth.grant_company(user_id, company_id, role.id, is_default=is_default)
