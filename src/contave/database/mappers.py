"""Mapper functions to convert SQLAlchemy models into domain entities.

This layer isolates the conversion logic, so status strings stored in the
database become enums and ORM rows never leak out of the database package.
"""

from contave.domain import entities as domain
from contave.database.models import (
    Account as ORMAccount,
    Company as ORMCompany,
    JournalEntryHeader as ORMJournalEntryHeader,
    JournalEntryLine as ORMJournalEntryLine,
    Period as ORMPeriod,
    Role as ORMRole,
    ThirdParty as ORMThirdParty,
    User as ORMUser,
    UserCompany as ORMUserCompany,
)


def company_to_domain(orm_company: ORMCompany) -> domain.Company:
    """Convert SQLAlchemy Company model to domain Company entity."""
    return domain.Company(
        id=orm_company.id,
        code=orm_company.code,
        legal_name=orm_company.legal_name,
        rif=orm_company.rif,
        fiscal_address=orm_company.fiscal_address,
        commercial_name=orm_company.commercial_name,
        phone=orm_company.phone,
        email=orm_company.email,
        activity=orm_company.activity,
        functional_currency=orm_company.functional_currency,
        secondary_currency=orm_company.secondary_currency,
        iva_aliquot=orm_company.iva_aliquot,
        reduced_iva_aliquot=orm_company.reduced_iva_aliquot,
        additional_iva_aliquot=orm_company.additional_iva_aliquot,
        igtf_aliquot=orm_company.igtf_aliquot,
        retention_percentage=orm_company.retention_percentage,
        islr_retention_percentage=orm_company.islr_retention_percentage,
        is_active=orm_company.is_active,
        created_at=orm_company.created_at,
    )


def user_to_domain(orm_user: ORMUser) -> domain.User:
    """Convert SQLAlchemy User model to domain User entity (without the hash)."""
    return domain.User(
        id=orm_user.id,
        username=orm_user.username,
        email=orm_user.email,
        first_name=orm_user.first_name,
        last_name=orm_user.last_name,
        is_active=orm_user.is_active,
        is_blocked=orm_user.is_blocked,
        failed_login_attempts=orm_user.failed_login_attempts,
        last_login_at=orm_user.last_login_at,
        created_at=orm_user.created_at,
    )


def role_to_domain(orm_role: ORMRole) -> domain.Role:
    """Convert SQLAlchemy Role model to domain Role entity."""
    return domain.Role(
        id=orm_role.id,
        name=orm_role.name,
        description=orm_role.description,
        permissions=frozenset(f"{p.module}:{p.action}" for p in orm_role.permissions),
    )


def membership_to_domain(orm_membership: ORMUserCompany) -> domain.Membership:
    """Convert SQLAlchemy UserCompany model to domain Membership entity."""
    return domain.Membership(
        user_id=orm_membership.user_id,
        company_id=orm_membership.company_id,
        role_id=orm_membership.role_id,
        is_default=orm_membership.is_default,
        is_active=orm_membership.is_active,
    )


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        company_id=orm_account.company_id,
        code=orm_account.code,
        name=orm_account.name,
        parent_id=orm_account.parent_id,
        level=orm_account.level,
        nature=domain.AccountNature(orm_account.nature),
        account_type=domain.AccountType(orm_account.account_type),
        requires_movement=orm_account.requires_movement,
        requires_third_party=orm_account.requires_third_party,
        requires_cost_center=orm_account.requires_cost_center,
        allows_manual_entry=orm_account.allows_manual_entry,
        currency=orm_account.currency,
        is_cash_flow_item=orm_account.is_cash_flow_item,
        is_active=orm_account.is_active,
        created_at=orm_account.created_at,
    )


def third_party_to_domain(orm_third_party: ORMThirdParty) -> domain.ThirdParty:
    """Convert SQLAlchemy ThirdParty model to domain ThirdParty entity."""
    return domain.ThirdParty(
        id=orm_third_party.id,
        company_id=orm_third_party.company_id,
        third_party_type=domain.ThirdPartyType(orm_third_party.third_party_type),
        rif=orm_third_party.rif,
        legal_name=orm_third_party.legal_name,
        commercial_name=orm_third_party.commercial_name,
        fiscal_address=orm_third_party.fiscal_address,
        phone=orm_third_party.phone,
        email=orm_third_party.email,
        contact_person=orm_third_party.contact_person,
        tax_category=domain.TaxCategory(orm_third_party.tax_category),
        is_withholding_agent=orm_third_party.is_withholding_agent,
        iva_applicable=orm_third_party.iva_applicable,
        islr_applicable=orm_third_party.islr_applicable,
        is_active=orm_third_party.is_active,
        created_at=orm_third_party.created_at,
    )


def period_to_domain(orm_period: ORMPeriod) -> domain.Period:
    """Convert SQLAlchemy Period model to domain Period entity."""
    return domain.Period(
        id=orm_period.id,
        company_id=orm_period.company_id,
        year=orm_period.year,
        month=orm_period.month,
        start_date=orm_period.start_date,
        end_date=orm_period.end_date,
        status=domain.PeriodStatus(orm_period.status),
        closed_by=orm_period.closed_by,
        closed_at=orm_period.closed_at,
        closing_note=orm_period.closing_note,
        reopened_by=orm_period.reopened_by,
        reopened_at=orm_period.reopened_at,
        reopening_note=orm_period.reopening_note,
    )


def journal_line_to_domain(orm_line: ORMJournalEntryLine) -> domain.JournalLine:
    """Convert SQLAlchemy JournalEntryLine model to domain JournalLine entity."""
    return domain.JournalLine(
        id=orm_line.id,
        entry_id=orm_line.entry_id,
        line_number=orm_line.line_number,
        account_id=orm_line.account_id,
        third_party_id=orm_line.third_party_id,
        cost_center_id=orm_line.cost_center_id,
        description=orm_line.description,
        debit=orm_line.debit,
        credit=orm_line.credit,
        currency=orm_line.currency,
        exchange_rate=orm_line.exchange_rate,
        base_amount=orm_line.base_amount,
        reference=orm_line.reference,
        tax_base=orm_line.tax_base,
        iva_amount=orm_line.iva_amount,
        igtf_amount=orm_line.igtf_amount,
        is_igtf_applicable=orm_line.is_igtf_applicable,
    )


def journal_entry_to_domain(
    orm_entry: ORMJournalEntryHeader, include_lines: bool = True
) -> domain.JournalEntry:
    """Convert SQLAlchemy JournalEntryHeader model to domain JournalEntry entity.

    Args:
        orm_entry: ORM header row
        include_lines: If False, ``lines`` is left empty (used by listings)
    """
    lines: tuple[domain.JournalLine, ...] = ()
    if include_lines:
        lines = tuple(
            journal_line_to_domain(line)
            for line in sorted(orm_entry.lines, key=lambda line: line.line_number)
        )

    return domain.JournalEntry(
        id=orm_entry.id,
        company_id=orm_entry.company_id,
        period_id=orm_entry.period_id,
        entry_type=domain.EntryType(orm_entry.entry_type),
        entry_number=orm_entry.entry_number,
        entry_date=orm_entry.entry_date,
        description=orm_entry.description,
        reference=orm_entry.reference,
        status=domain.EntryStatus(orm_entry.status),
        total_debit=orm_entry.total_debit,
        total_credit=orm_entry.total_credit,
        currency=orm_entry.currency,
        exchange_rate=orm_entry.exchange_rate,
        created_by=orm_entry.created_by,
        created_at=orm_entry.created_at,
        approved_by=orm_entry.approved_by,
        approved_at=orm_entry.approved_at,
        annulled_by=orm_entry.annulled_by,
        annulled_at=orm_entry.annulled_at,
        annulment_reason=orm_entry.annulment_reason,
        reverses_entry_id=orm_entry.reverses_entry_id,
        lines=lines,
    )
