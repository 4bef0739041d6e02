"""Tests for the journal entry service."""

from datetime import date
from decimal import Decimal

import pytest

from contave.domain.entities import (
    EntryDraft,
    EntryFilters,
    EntryStatus,
    EntryType,
    LineDraft,
    PeriodStatus,
)
from contave.domain.errors import (
    ForbiddenError,
    IncompleteDataError,
    InvalidStateError,
    NoOpenPeriodError,
    NotFoundError,
    PeriodClosedError,
    ReasonRequiredError,
    UnauthenticatedError,
    UnbalancedEntryError,
    ValidationError,
)


def _header_count(db, company_id):
    return db.count_journal_entries(company_id, EntryFilters())


def test_expense_entry_lifecycle(journal_service, admin, make_draft):
    """Create, approve and annul an expense entry."""
    draft = make_draft(debit="125500.00", entry_type=EntryType.EXPENSE)

    posted = journal_service.create_entry(admin, draft)

    assert posted.entry_number == "000001"
    entry = journal_service.get_entry(posted.entry_id)
    assert entry.status == EntryStatus.DRAFT
    assert entry.entry_type == EntryType.EXPENSE
    assert entry.entry_date == date(2024, 2, 18)
    assert entry.total_debit == Decimal("125500.00")
    assert entry.total_credit == Decimal("125500.00")
    assert entry.created_by == admin.user_id

    journal_service.approve_entry(admin, posted.entry_id)
    entry = journal_service.get_entry(posted.entry_id)
    assert entry.status == EntryStatus.APPROVED
    assert entry.approved_by == admin.user_id
    assert entry.approved_at is not None

    with pytest.raises(ReasonRequiredError):
        journal_service.annul_entry(admin, posted.entry_id, "")
    assert journal_service.get_entry(posted.entry_id).status == EntryStatus.APPROVED

    journal_service.annul_entry(admin, posted.entry_id, "error de digitación")
    entry = journal_service.get_entry(posted.entry_id)
    assert entry.status == EntryStatus.ANNULED
    assert entry.annulment_reason == "error de digitación"
    assert entry.annulled_by == admin.user_id
    # Lines stay as posted
    assert len(entry.lines) == 2


def test_unbalanced_entry_writes_nothing(temp_db, journal_service, admin, company_id, make_draft):
    """An entry off by more than 0.01 is rejected with both totals."""
    draft = make_draft(debit="100.00", credit="90.00")

    with pytest.raises(UnbalancedEntryError) as exc_info:
        journal_service.create_entry(admin, draft)

    assert exc_info.value.total_debit == Decimal("100.00")
    assert exc_info.value.total_credit == Decimal("90.00")
    assert "100.00" in str(exc_info.value)
    assert _header_count(temp_db, company_id) == 0


def test_unbalanced_entry_returns_sequence_number(temp_db, journal_service, admin, company_id, make_draft):
    """A rejected entry does not consume a number."""
    with pytest.raises(UnbalancedEntryError):
        journal_service.create_entry(admin, make_draft(debit="100.00", credit="90.00"))

    assert temp_db.get_sequence_value(company_id, "DAILY") is None

    posted = journal_service.create_entry(admin, make_draft())
    assert posted.entry_number == "000001"


def test_balance_tolerance_of_one_cent(journal_service, admin, make_draft):
    """A difference of exactly 0.01 is accepted."""
    posted = journal_service.create_entry(admin, make_draft(debit="100.00", credit="99.99"))

    assert posted.entry_number == "000001"


def test_balance_tolerance_exceeded(journal_service, admin, make_draft):
    """A difference of 0.02 is rejected."""
    with pytest.raises(UnbalancedEntryError):
        journal_service.create_entry(admin, make_draft(debit="100.00", credit="99.98"))


def test_sequence_is_consecutive_per_type(journal_service, admin, make_draft):
    """Numbers count up per entry type independently."""
    daily = [journal_service.create_entry(admin, make_draft()).entry_number for _ in range(3)]
    expense = journal_service.create_entry(admin, make_draft(entry_type=EntryType.EXPENSE)).entry_number

    assert daily == ["000001", "000002", "000003"]
    assert expense == "000001"


def test_line_numbers_follow_input_order(journal_service, admin, company_id, accounts):
    """Lines are numbered 1..n in the order they were given."""
    draft = EntryDraft(
        company_id=company_id,
        entry_date=date(2024, 1, 10),
        description="Venta de contado",
        lines=(
            LineDraft(account_id=accounts["1101"], debit=Decimal("1160.00")),
            LineDraft(account_id=accounts["4101"], credit=Decimal("1000.00")),
            LineDraft(account_id=accounts["2105"], credit=Decimal("160.00")),
        ),
    )

    entry = journal_service.get_entry(journal_service.create_entry(admin, draft).entry_id)

    assert [line.line_number for line in entry.lines] == [1, 2, 3]
    assert [line.account_id for line in entry.lines] == [accounts["1101"], accounts["4101"], accounts["2105"]]


def test_base_amount_and_currency_defaults(journal_service, admin, company_id, accounts):
    """Line rate falls back to the header rate, then to 1."""
    draft = EntryDraft(
        company_id=company_id,
        entry_date=date(2024, 1, 10),
        description="Cobro en divisas",
        currency="USD",
        exchange_rate=Decimal("36.50"),
        lines=(
            LineDraft(account_id=accounts["1102"], debit=Decimal("100.00"), exchange_rate=Decimal("40")),
            LineDraft(account_id=accounts["4101"], credit=Decimal("100.00")),
        ),
    )

    entry = journal_service.get_entry(journal_service.create_entry(admin, draft).entry_id)

    first, second = entry.lines
    assert first.base_amount == Decimal("4000.00")
    assert first.exchange_rate == Decimal("40")
    assert second.base_amount == Decimal("3650.00")
    assert second.exchange_rate == Decimal("36.50")
    assert second.currency == "USD"
    assert entry.currency == "USD"


def test_base_amount_without_rates(journal_service, admin, make_draft):
    """Without any rate the base amount equals the amount in VES."""
    entry = journal_service.get_entry(journal_service.create_entry(admin, make_draft(debit="50.25")).entry_id)

    assert entry.currency == "VES"
    assert entry.exchange_rate == Decimal("1")
    assert [line.base_amount for line in entry.lines] == [Decimal("50.25"), Decimal("50.25")]
    assert all(line.currency == "VES" for line in entry.lines)


@pytest.mark.parametrize(
    "changes",
    [
        {"company_id": None},
        {"entry_date": None},
        {"description": ""},
        {"description": "   "},
        {"lines": ()},
    ],
)
def test_incomplete_data(journal_service, admin, make_draft, changes):
    """Missing header fields or lines are rejected before anything else."""
    draft = make_draft()
    draft = EntryDraft(**{**vars(draft), **changes})

    with pytest.raises(IncompleteDataError):
        journal_service.create_entry(admin, draft)


def test_no_open_period(temp_db, journal_service, admin, company_id, make_draft):
    """Without an explicit period an OPEN one must exist."""
    for period in temp_db.list_periods(company_id):
        temp_db.set_period_status(period.id, PeriodStatus.CLOSED, admin.user_id)

    with pytest.raises(NoOpenPeriodError):
        journal_service.create_entry(admin, make_draft())
    assert _header_count(temp_db, company_id) == 0


def test_default_period_is_earliest_open(journal_service, admin, make_draft, period_for):
    """With several OPEN periods the earliest one receives the entry."""
    entry = journal_service.get_entry(journal_service.create_entry(admin, make_draft()).entry_id)

    assert entry.period_id == period_for(2024, 1).id


def test_explicit_period_used(journal_service, admin, make_draft, period_for):
    """An explicit OPEN period is used as given."""
    march = period_for(2024, 3)

    entry = journal_service.get_entry(
        journal_service.create_entry(admin, make_draft(period_id=march.id)).entry_id
    )

    assert entry.period_id == march.id


@pytest.mark.parametrize("status", [PeriodStatus.CLOSED, PeriodStatus.LOCKED])
def test_closed_period_rejects_postings(temp_db, journal_service, admin, company_id, make_draft, period_for, status):
    """Postings to a CLOSED or LOCKED period fail and write nothing."""
    february = period_for(2024, 2)
    temp_db.set_period_status(february.id, status, admin.user_id)

    with pytest.raises(PeriodClosedError):
        journal_service.create_entry(admin, make_draft(period_id=february.id))

    assert _header_count(temp_db, company_id) == 0
    assert temp_db.get_sequence_value(company_id, "DAILY") is None


def test_unknown_period_is_rejected_as_closed(journal_service, admin, make_draft):
    """An explicit period ID that does not exist cannot take postings."""
    with pytest.raises(PeriodClosedError):
        journal_service.create_entry(admin, make_draft(period_id=9999))


def test_unknown_account_rejected(temp_db, journal_service, admin, company_id, accounts):
    """Every line must reference an account of the company."""
    draft = EntryDraft(
        company_id=company_id,
        entry_date=date(2024, 1, 10),
        description="Cuenta inexistente",
        lines=(
            LineDraft(account_id=accounts["1101"], debit=Decimal("10")),
            LineDraft(account_id=9999, credit=Decimal("10")),
        ),
    )

    with pytest.raises(NotFoundError):
        journal_service.create_entry(admin, draft)
    assert _header_count(temp_db, company_id) == 0


def test_inactive_account_rejected(journal_service, account_service, admin, make_draft, accounts):
    """Deactivated accounts no longer take postings."""
    account_service.deactivate_account(admin, accounts["5101"])

    with pytest.raises(ValidationError, match="inactive"):
        journal_service.create_entry(admin, make_draft())


def test_permission_required_to_create(journal_service, make_draft, clerk, admin):
    """Creation needs journal:create; other transitions need their own permission."""
    posted = journal_service.create_entry(clerk, make_draft())

    with pytest.raises(ForbiddenError):
        journal_service.approve_entry(clerk, posted.entry_id)
    with pytest.raises(UnauthenticatedError):
        journal_service.create_entry(None, make_draft())


def test_forbidden_before_validation(journal_service, make_draft, clerk):
    """A caller without permission is rejected even for an invalid request."""
    with pytest.raises(ForbiddenError):
        journal_service.annul_entry(clerk, 9999, "")


def test_approve_requires_draft(journal_service, admin, make_draft):
    """Approving twice is an invalid transition."""
    posted = journal_service.create_entry(admin, make_draft())
    journal_service.approve_entry(admin, posted.entry_id)

    with pytest.raises(InvalidStateError):
        journal_service.approve_entry(admin, posted.entry_id)


def test_approve_missing_entry(journal_service, admin):
    with pytest.raises(NotFoundError):
        journal_service.approve_entry(admin, 9999)


def test_annul_requires_approved(journal_service, admin, make_draft):
    """A DRAFT entry cannot be annulled."""
    posted = journal_service.create_entry(admin, make_draft())

    with pytest.raises(InvalidStateError):
        journal_service.annul_entry(admin, posted.entry_id, "duplicado")
    assert journal_service.get_entry(posted.entry_id).status == EntryStatus.DRAFT


def test_annulled_entry_is_terminal(journal_service, admin, make_draft):
    """Neither approve nor annul work on an ANNULED entry."""
    posted = journal_service.create_entry(admin, make_draft())
    journal_service.approve_entry(admin, posted.entry_id)
    journal_service.annul_entry(admin, posted.entry_id, "duplicado")

    with pytest.raises(InvalidStateError):
        journal_service.approve_entry(admin, posted.entry_id)
    with pytest.raises(InvalidStateError):
        journal_service.annul_entry(admin, posted.entry_id, "otra vez")


def test_annul_reason_checked_first(journal_service, admin):
    """A missing reason is reported even for an unknown entry."""
    with pytest.raises(ReasonRequiredError):
        journal_service.annul_entry(admin, 9999, None)


def test_list_and_count_entries(journal_service, admin, company_id, make_draft):
    """Listing filters by status and text, newest first."""
    first = journal_service.create_entry(admin, make_draft(entry_date=date(2024, 1, 5), description="Alquiler enero"))
    second = journal_service.create_entry(admin, make_draft(entry_date=date(2024, 1, 20), description="Luz enero"))
    journal_service.approve_entry(admin, first.entry_id)

    entries = journal_service.list_entries(company_id)
    assert [e.id for e in entries] == [second.entry_id, first.entry_id]
    assert all(e.lines == () for e in entries)

    approved = EntryFilters(status=EntryStatus.APPROVED)
    assert [e.id for e in journal_service.list_entries(company_id, approved)] == [first.entry_id]
    assert journal_service.count_entries(company_id, approved) == 1

    by_text = EntryFilters(search="luz")
    assert [e.id for e in journal_service.list_entries(company_id, by_text)] == [second.entry_id]

    by_number = EntryFilters(search="000001")
    assert [e.id for e in journal_service.list_entries(company_id, by_number)] == [first.entry_id]

    by_date = EntryFilters(date_from=date(2024, 1, 10), date_to=date(2024, 1, 31))
    assert journal_service.count_entries(company_id, by_date) == 1


def test_list_entries_pagination(journal_service, admin, company_id, make_draft):
    for day in range(1, 6):
        journal_service.create_entry(admin, make_draft(entry_date=date(2024, 1, day)))

    page = journal_service.list_entries(company_id, offset=2, limit=2)

    assert [e.entry_date for e in page] == [date(2024, 1, 3), date(2024, 1, 2)]
    assert journal_service.count_entries(company_id) == 5


def test_get_missing_entry(journal_service):
    with pytest.raises(NotFoundError):
        journal_service.get_entry(12345)
