"""Tests for users, login and tokens."""

from datetime import datetime, timedelta, UTC

import jwt
import pytest

from contave.config import Settings
from contave.database.models import User as UserRow
from contave.domain.auth import (
    ADMIN_ROLE,
    AuthService,
    ensure_admin_role,
    hash_password,
    parse_permission,
    verify_password,
)
from contave.domain.errors import ConflictError, IncompleteDataError, UnauthenticatedError, ValidationError
from contave.domain.permissions import Caller


def _set_user_flag(db, user_id, **values):
    session = db._get_session()
    row = session.get(UserRow, user_id)
    for name, value in values.items():
        setattr(row, name, value)
    session.commit()


def test_hash_and_verify_password():
    hashed = hash_password("clave-segura", rounds=4)

    assert hashed != "clave-segura"
    assert verify_password("clave-segura", hashed)
    assert not verify_password("otra", hashed)


def test_verify_against_malformed_hash():
    assert verify_password("clave", "not-a-bcrypt-hash") is False


@pytest.mark.parametrize(
    "permission, expected",
    [("journal:create", ("journal", "create")), ("*:*", ("*", "*"))],
)
def test_parse_permission(permission, expected):
    assert parse_permission(permission) == expected


@pytest.mark.parametrize("permission", ["journal", ":create", "journal:", ""])
def test_parse_permission_invalid(permission):
    with pytest.raises(ValidationError):
        parse_permission(permission)


def test_ensure_admin_role_is_idempotent(temp_db):
    first = ensure_admin_role(temp_db)
    second = ensure_admin_role(temp_db)

    assert first.id == second.id
    assert first.name == ADMIN_ROLE
    assert first.permissions == frozenset({"*:*"})


def test_create_user_duplicates(auth_service):
    auth_service.create_user("maria", "maria@example.com", "pw")

    with pytest.raises(ConflictError):
        auth_service.create_user("maria", "otra@example.com", "pw")
    with pytest.raises(ConflictError):
        auth_service.create_user("otra", "maria@example.com", "pw")


def test_create_user_incomplete(auth_service):
    with pytest.raises(IncompleteDataError):
        auth_service.create_user("maria", "", "pw")


def test_bootstrap_admin(auth_service, bootstrap_caller):
    assert bootstrap_caller.company_id is None
    assert bootstrap_caller.permissions == frozenset({"*:*"})
    assert auth_service.get_user(bootstrap_caller.user_id).username == "admin"


def test_bootstrap_only_once(auth_service, bootstrap_caller):
    with pytest.raises(ConflictError):
        auth_service.bootstrap_admin("root", "root@example.com", "pw")


def test_authenticate(auth_service, company_id):
    caller = auth_service.authenticate("admin", "s3cret")

    assert caller.company_id == company_id
    assert caller.username == "admin"
    assert "*:*" in caller.permissions
    assert auth_service.get_user(caller.user_id).last_login_at is not None


def test_authenticate_by_email(auth_service, company_id):
    assert auth_service.authenticate("admin@example.com", "s3cret").company_id == company_id


def test_authenticate_unknown_user(auth_service):
    with pytest.raises(UnauthenticatedError, match="User not found"):
        auth_service.authenticate("nadie", "pw")


def test_wrong_password_counts_attempts(auth_service, company_id, bootstrap_caller):
    for _ in range(2):
        with pytest.raises(UnauthenticatedError, match="Incorrect password"):
            auth_service.authenticate("admin", "wrong")

    assert auth_service.get_user(bootstrap_caller.user_id).failed_login_attempts == 2

    auth_service.authenticate("admin", "s3cret")
    assert auth_service.get_user(bootstrap_caller.user_id).failed_login_attempts == 0


def test_inactive_user(temp_db, auth_service, company_id, bootstrap_caller):
    _set_user_flag(temp_db, bootstrap_caller.user_id, is_active=False)

    with pytest.raises(UnauthenticatedError, match="User is inactive"):
        auth_service.authenticate("admin", "s3cret")


def test_blocked_user(temp_db, auth_service, company_id, bootstrap_caller):
    _set_user_flag(temp_db, bootstrap_caller.user_id, is_blocked=True)

    with pytest.raises(UnauthenticatedError, match="User is blocked"):
        auth_service.authenticate("admin", "s3cret")


def test_user_without_company(auth_service, bootstrap_caller):
    with pytest.raises(UnauthenticatedError, match="User has no companies assigned"):
        auth_service.authenticate("admin", "s3cret")


def test_default_company_wins(auth_service, company_service, company_id, bootstrap_caller):
    from contave.domain.entities import CompanyDraft

    other_id = company_service.create_company(
        bootstrap_caller,
        CompanyDraft(code="OTRA", legal_name="Otra C.A.", rif="J-98765432-1", fiscal_address="Valencia"),
    )
    role = ensure_admin_role(auth_service.db)

    # First company stays default until another is marked
    assert auth_service.authenticate("admin", "s3cret").company_id == company_id

    auth_service.grant_company(bootstrap_caller.user_id, other_id, role.id, is_default=True)
    assert auth_service.authenticate("admin", "s3cret").company_id == other_id


def test_role_permissions_reach_caller(auth_service, company_id):
    role_id = auth_service.create_role("CONTADOR", ["journal:create", "journal:approve"])
    user_id = auth_service.create_user("ana", "ana@example.com", "pw")
    auth_service.grant_company(user_id, company_id, role_id)

    caller = auth_service.authenticate("ana", "pw")

    assert caller.permissions == frozenset({"journal:create", "journal:approve"})


def test_create_role_twice(auth_service):
    auth_service.create_role("AUDITOR", ["journal:view"])

    with pytest.raises(ConflictError):
        auth_service.create_role("AUDITOR", ["journal:view"])


def test_token_round_trip(auth_service):
    caller = Caller.build(7, 3, ["journal:create", "periods:close"], username="ana")

    token = auth_service.issue_token(caller)

    assert auth_service.verify_token(token) == caller


def test_token_claims(auth_service, settings):
    issued = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
    token = auth_service.issue_token(Caller.build(7, 3, ["*:*"]), now=issued)

    claims = jwt.decode(
        token, settings.jwt_secret, algorithms=["HS256"], options={"verify_exp": False}
    )
    assert claims["sub"] == "7"
    assert claims["company_id"] == 3
    assert claims["exp"] - claims["iat"] == settings.token_hours * 3600


def test_expired_token(auth_service):
    issued = datetime.now(UTC) - timedelta(hours=auth_service.settings.token_hours + 1)
    token = auth_service.issue_token(Caller.build(7, 3, ["*:*"]), now=issued)

    assert auth_service.verify_token(token) is None


def test_forged_token(temp_db, settings):
    other_settings = Settings(jwt_secret="another-secret-0123456789abcdef01234567", bcrypt_rounds=4)
    other = AuthService(temp_db, other_settings)
    token = other.issue_token(Caller.build(7, 3, ["*:*"]))

    assert AuthService(temp_db, settings).verify_token(token) is None


@pytest.mark.parametrize("token", [None, "", "garbage"])
def test_missing_or_malformed_token(auth_service, token):
    assert auth_service.verify_token(token) is None
