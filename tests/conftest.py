"""Shared pytest fixtures for contave tests."""

import tempfile
import os
from datetime import date
from decimal import Decimal

import pytest

from contave.config import Settings
from contave.database.factories import create_sqlite_database
from contave.domain.account import AccountService
from contave.domain.auth import AuthService
from contave.domain.company import CompanyService
from contave.domain.entities import (
    AccountDraft,
    AccountNature,
    AccountType,
    CompanyDraft,
    EntryDraft,
    EntryType,
    LineDraft,
)
from contave.domain.journal import JournalService
from contave.domain.period import PeriodService
from contave.domain.permissions import Caller
from contave.domain.third_party import ThirdPartyService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def settings(temp_db):
    """Settings with a cheap bcrypt work factor and a fixed token secret."""
    return Settings(
        database_path=temp_db.database_path,
        jwt_secret="test-secret-0123456789abcdef0123456789",
        bcrypt_rounds=4,
    )


@pytest.fixture
def auth_service(temp_db, settings):
    """Create an AuthService with a temporary database."""
    return AuthService(temp_db, settings)


@pytest.fixture
def company_service(temp_db):
    """Create a CompanyService with a temporary database."""
    return CompanyService(temp_db)


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def period_service(temp_db):
    """Create a PeriodService with a temporary database."""
    return PeriodService(temp_db)


@pytest.fixture
def journal_service(temp_db):
    """Create a JournalService with a temporary database."""
    return JournalService(temp_db)


@pytest.fixture
def third_party_service(temp_db):
    """Create a ThirdPartyService with a temporary database."""
    return ThirdPartyService(temp_db)


@pytest.fixture
def bootstrap_caller(auth_service):
    """Administrator created on an empty database (no company yet)."""
    return auth_service.bootstrap_admin("admin", "admin@example.com", "s3cret")


@pytest.fixture
def company_id(company_service, bootstrap_caller):
    """A company created on 2024-03-15, so all twelve 2024 periods are OPEN."""
    draft = CompanyDraft(
        code="ACME",
        legal_name="Acme Venezuela C.A.",
        rif="J-12345678-9",
        fiscal_address="Av. Principal, Caracas",
    )
    return company_service.create_company(bootstrap_caller, draft, today=date(2024, 3, 15))


@pytest.fixture
def admin(bootstrap_caller, company_id):
    """Super administrator working in the sample company."""
    return Caller.build(bootstrap_caller.user_id, company_id, ["*:*"], username="admin")


@pytest.fixture
def clerk(auth_service, company_id):
    """User who may only create journal entries."""
    user_id = auth_service.create_user("clerk", "clerk@example.com", "clerkpass")
    return Caller.build(user_id, company_id, ["journal:create"], username="clerk")


@pytest.fixture
def accounts(account_service, admin, company_id):
    """A small chart of accounts keyed by code."""
    chart = [
        ("1", "ACTIVO", AccountNature.DEBIT, AccountType.ASSET, None),
        ("11", "ACTIVO CORRIENTE", AccountNature.DEBIT, AccountType.ASSET, "1"),
        ("1101", "Caja", AccountNature.DEBIT, AccountType.ASSET, "11"),
        ("1102", "Bancos", AccountNature.DEBIT, AccountType.ASSET, "11"),
        ("2", "PASIVO", AccountNature.CREDIT, AccountType.LIABILITY, None),
        ("2105", "IVA por pagar", AccountNature.CREDIT, AccountType.LIABILITY, "2"),
        ("4101", "Ventas", AccountNature.CREDIT, AccountType.INCOME, None),
        ("5101", "Gastos generales", AccountNature.DEBIT, AccountType.EXPENSE, None),
    ]
    ids = {}
    for code, name, nature, account_type, parent in chart:
        ids[code] = account_service.create_account(
            admin,
            AccountDraft(
                company_id=company_id,
                code=code,
                name=name,
                nature=nature,
                account_type=account_type,
                parent_id=ids[parent] if parent else None,
            ),
        )
    return ids


@pytest.fixture
def period_for(temp_db, company_id):
    """Return a function looking up the sample company's period for a month."""

    def _period_for(year: int, month: int):
        return temp_db.get_period_by_month(company_id, year, month)

    return _period_for


@pytest.fixture
def make_draft(company_id, accounts):
    """Return a function building a two-line entry draft."""

    def _make_draft(
        debit_code: str = "5101",
        credit_code: str = "1101",
        debit: str = "100.00",
        credit: str | None = None,
        entry_date: date = date(2024, 2, 18),
        entry_type: EntryType = EntryType.DAILY,
        period_id: int | None = None,
        description: str = "Pago de servicios",
    ) -> EntryDraft:
        return EntryDraft(
            company_id=company_id,
            entry_date=entry_date,
            description=description,
            entry_type=entry_type,
            period_id=period_id,
            lines=(
                LineDraft(account_id=accounts[debit_code], debit=Decimal(debit)),
                LineDraft(account_id=accounts[credit_code], credit=Decimal(credit or debit)),
            ),
        )

    return _make_draft


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
