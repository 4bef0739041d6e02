"""SQLAlchemy models for the contave database."""

from datetime import datetime, UTC
from decimal import Decimal
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    UniqueConstraint,
    Index,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()

MONEY = Numeric(18, 2)
RATE = Numeric(18, 6)
ALIQUOT = Numeric(5, 2)


def _now() -> datetime:
    return datetime.now(UTC)


class Company(Base):
    """Company keeping its own books."""

    __tablename__ = "companies"

    id = Column(Integer, primary_key=True)
    code = Column(String(20), unique=True, nullable=False)
    legal_name = Column(String(200), nullable=False)
    commercial_name = Column(String(200), nullable=True)
    rif = Column(String(20), nullable=False)
    fiscal_address = Column(String(500), nullable=False)
    phone = Column(String(50), nullable=True)
    email = Column(String(100), nullable=True)
    activity = Column(String(200), nullable=True)
    functional_currency = Column(String(3), default="VES", nullable=False)
    secondary_currency = Column(String(3), default="USD", nullable=False)
    iva_aliquot = Column(ALIQUOT, default=Decimal("16.00"), nullable=False)
    reduced_iva_aliquot = Column(ALIQUOT, default=Decimal("8.00"), nullable=False)
    additional_iva_aliquot = Column(ALIQUOT, default=Decimal("31.50"), nullable=False)
    igtf_aliquot = Column(ALIQUOT, default=Decimal("3.00"), nullable=False)
    retention_percentage = Column(ALIQUOT, default=Decimal("75.00"), nullable=False)
    islr_retention_percentage = Column(ALIQUOT, default=Decimal("2.00"), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    # Relationships
    periods = relationship("Period", back_populates="company", cascade="all, delete-orphan")
    accounts = relationship("Account", back_populates="company", cascade="all, delete-orphan")


class User(Base):
    """Application user."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String(50), unique=True, nullable=False)
    email = Column(String(100), unique=True, nullable=False)
    password_hash = Column(String(100), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_blocked = Column(Boolean, default=False, nullable=False)
    failed_login_attempts = Column(Integer, default=0, nullable=False)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    # Relationships
    memberships = relationship("UserCompany", back_populates="user", cascade="all, delete-orphan")


class Role(Base):
    """Named group of permissions."""

    __tablename__ = "roles"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), unique=True, nullable=False)
    description = Column(String(200), nullable=True)

    # Relationships
    permissions = relationship("RolePermission", back_populates="role", cascade="all, delete-orphan")


class RolePermission(Base):
    """One ``module:action`` grant of a role."""

    __tablename__ = "role_permissions"

    id = Column(Integer, primary_key=True)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False)
    module = Column(String(50), nullable=False)
    action = Column(String(50), nullable=False)

    __table_args__ = (UniqueConstraint("role_id", "module", "action", name="uq_role_permission"),)

    # Relationships
    role = relationship("Role", back_populates="permissions")


class UserCompany(Base):
    """Membership of a user in a company through a role."""

    __tablename__ = "user_companies"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (UniqueConstraint("user_id", "company_id", name="uq_user_company"),)

    # Relationships
    user = relationship("User", back_populates="memberships")


class Account(Base):
    """Chart of accounts entry with hierarchical structure."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    code = Column(String(30), nullable=False)
    name = Column(String(200), nullable=False)
    parent_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    level = Column(Integer, default=1, nullable=False)
    nature = Column(String(10), nullable=False)
    account_type = Column(String(20), nullable=False)
    requires_movement = Column(Boolean, default=False, nullable=False)
    requires_third_party = Column(Boolean, default=False, nullable=False)
    requires_cost_center = Column(Boolean, default=False, nullable=False)
    allows_manual_entry = Column(Boolean, default=True, nullable=False)
    currency = Column(String(3), default="VES", nullable=False)
    is_cash_flow_item = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)
    updated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    updated_at = Column(DateTime, nullable=True)

    # Account code is unique within a company
    __table_args__ = (UniqueConstraint("company_id", "code", name="uq_company_account_code"),)

    # Relationships
    company = relationship("Company", back_populates="accounts")
    parent = relationship("Account", remote_side=[id], backref="children")


class ThirdParty(Base):
    """Customer, supplier, employee or other counterpart."""

    __tablename__ = "third_parties"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    third_party_type = Column(String(20), nullable=False)
    rif = Column(String(20), nullable=False)
    legal_name = Column(String(200), nullable=False)
    commercial_name = Column(String(200), nullable=True)
    fiscal_address = Column(String(500), nullable=True)
    phone = Column(String(50), nullable=True)
    email = Column(String(100), nullable=True)
    contact_person = Column(String(100), nullable=True)
    tax_category = Column(String(20), default="ORDINARY", nullable=False)
    is_withholding_agent = Column(Boolean, default=False, nullable=False)
    iva_applicable = Column(Boolean, default=True, nullable=False)
    islr_applicable = Column(Boolean, default=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)
    updated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    updated_at = Column(DateTime, nullable=True)

    __table_args__ = (UniqueConstraint("company_id", "rif", name="uq_company_rif"),)


class Period(Base):
    """Monthly accounting period."""

    __tablename__ = "periods"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(String(10), default="OPEN", nullable=False)
    closed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    closed_at = Column(DateTime, nullable=True)
    closing_note = Column(String(500), nullable=True)
    reopened_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    reopened_at = Column(DateTime, nullable=True)
    reopening_note = Column(String(500), nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (UniqueConstraint("company_id", "year", "month", name="uq_company_period"),)

    # Relationships
    company = relationship("Company", back_populates="periods")


class DocumentSequence(Base):
    """Counter behind human-readable document numbers."""

    __tablename__ = "document_sequences"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    document_type = Column(String(20), nullable=False)
    current_number = Column(Integer, default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint("company_id", "document_type", name="uq_company_document_type"),
    )


class JournalEntryHeader(Base):
    """Journal entry header."""

    __tablename__ = "journal_entry_headers"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    period_id = Column(Integer, ForeignKey("periods.id"), nullable=False)
    entry_type = Column(String(20), nullable=False)
    entry_number = Column(String(30), nullable=False)
    entry_date = Column(Date, nullable=False)
    description = Column(String(500), nullable=False)
    reference = Column(String(100), nullable=True)
    status = Column(String(10), default="DRAFT", nullable=False)
    total_debit = Column(MONEY, default=Decimal("0"), nullable=False)
    total_credit = Column(MONEY, default=Decimal("0"), nullable=False)
    currency = Column(String(3), default="VES", nullable=False)
    exchange_rate = Column(RATE, default=Decimal("1"), nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    annulled_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    annulled_at = Column(DateTime, nullable=True)
    annulment_reason = Column(String(500), nullable=True)
    reverses_entry_id = Column(Integer, ForeignKey("journal_entry_headers.id"), nullable=True)

    __table_args__ = (
        Index("ix_journal_company_date", "company_id", "entry_date"),
        Index("ix_journal_period_status", "period_id", "status"),
    )

    # Relationships
    lines = relationship(
        "JournalEntryLine",
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="JournalEntryLine.line_number",
    )


class JournalEntryLine(Base):
    """Journal entry line. Written once together with its header."""

    __tablename__ = "journal_entry_lines"

    id = Column(Integer, primary_key=True)
    entry_id = Column(Integer, ForeignKey("journal_entry_headers.id"), nullable=False)
    line_number = Column(Integer, nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    third_party_id = Column(Integer, ForeignKey("third_parties.id"), nullable=True)
    cost_center_id = Column(Integer, nullable=True)
    description = Column(String(500), nullable=True)
    debit = Column(MONEY, default=Decimal("0"), nullable=False)
    credit = Column(MONEY, default=Decimal("0"), nullable=False)
    currency = Column(String(3), default="VES", nullable=False)
    exchange_rate = Column(RATE, default=Decimal("1"), nullable=False)
    base_amount = Column(MONEY, default=Decimal("0"), nullable=False)
    reference = Column(String(100), nullable=True)
    tax_base = Column(MONEY, default=Decimal("0"), nullable=False)
    iva_amount = Column(MONEY, default=Decimal("0"), nullable=False)
    igtf_amount = Column(MONEY, default=Decimal("0"), nullable=False)
    is_igtf_applicable = Column(Boolean, default=False, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (UniqueConstraint("entry_id", "line_number", name="uq_entry_line_number"),)

    # Relationships
    entry = relationship("JournalEntryHeader", back_populates="lines")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
