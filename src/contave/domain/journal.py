"""Journal entry domain service.

Entries move ``DRAFT -> APPROVED -> ANNULED``. A reversal is a new APPROVED
entry that mirrors another one; the reversed entry itself is not touched.
"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from contave.database.base import Database
from contave.domain.account import AccountService
from contave.domain.entities import (
    EntryDraft,
    EntryFilters,
    EntryRecord,
    EntryStatus,
    EntryType,
    JournalEntry as JournalEntryEntity,
    LineDraft,
    LineRecord,
    PeriodStatus,
    PostedEntry,
)
from contave.domain.errors import (
    IncompleteDataError,
    InvalidStateError,
    NotFoundError,
    PeriodClosedError,
    ReasonRequiredError,
    UnbalancedEntryError,
    ValidationError,
    entry_not_found,
    missing_fields,
    third_party_not_found,
)
from contave.domain.period import PeriodService
from contave.domain.permissions import Caller, require
from contave.domain.sequence import SequenceAllocator
from contave.logging_config import get_logger

logger = get_logger(__name__)

BALANCE_TOLERANCE = Decimal("0.01")
CENT = Decimal("0.01")
REVERSAL_SUFFIX = "-R"
REVERSAL_DESCRIPTION_PREFIX = "REVERSO: "
REVERSAL_REFERENCE_PREFIX = "Revierte: "


def to_cents(value: Decimal) -> Decimal:
    """Round a money amount to two decimals."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def base_amount(line: LineDraft, header_rate: Optional[Decimal]) -> Decimal:
    """Amount of a line in the functional currency.

    The line's own rate wins over the header rate; without either the rate
    is 1. The debit is used when it is non-zero, otherwise the credit.
    """
    rate = line.exchange_rate or header_rate or Decimal("1")
    amount = line.debit if line.debit else line.credit
    return to_cents(Decimal(rate) * Decimal(amount))


class JournalService:
    """Service for posting and maintaining journal entries."""

    def __init__(self, db: Database, default_currency: str = "VES"):
        """Initialize journal service.

        Args:
            db: Database instance
            default_currency: Currency used when neither line nor header has one
        """
        self.db = db
        self.default_currency = default_currency
        self.accounts = AccountService(db)
        self.periods = PeriodService(db)
        self.sequences = SequenceAllocator(db)

    def create_entry(self, caller: Optional[Caller], draft: EntryDraft) -> PostedEntry:
        """Validate and post a new DRAFT entry.

        Everything happens in one transaction: if any check fails nothing is
        written and the claimed entry number is given back.

        Args:
            caller: Identity performing the operation
            draft: Entry header and lines

        Returns:
            ID and number of the new entry

        Raises:
            IncompleteDataError: If company, date, description or lines are missing
            NoOpenPeriodError: If no period was given and none is OPEN
            PeriodClosedError: If the given period is unknown or not OPEN
            UnbalancedEntryError: If debits and credits differ by more than 0.01
            NotFoundError: If a line references an unknown account or third party
            ValidationError: If a line references an inactive account
        """
        caller = require(caller, "journal", "create")
        self._check_required(draft)

        company_id = draft.company_id
        entry_type = draft.entry_type or EntryType.DAILY

        with self.db.transaction():
            if draft.period_id is not None:
                period = self.db.get_period(draft.period_id)
                if period is None or period.company_id != company_id:
                    raise PeriodClosedError(f"Period {draft.period_id} is not available for postings")
                if period.status != PeriodStatus.OPEN:
                    raise PeriodClosedError(
                        f"Period {period.year}-{period.month:02d} is {period.status.value}"
                    )
            else:
                period = self.periods.find_open_period(company_id)

            entry_number = self.sequences.next(company_id, entry_type.value)

            total_debit = sum((Decimal(line.debit) for line in draft.lines), Decimal("0"))
            total_credit = sum((Decimal(line.credit) for line in draft.lines), Decimal("0"))
            if abs(total_debit - total_credit) > BALANCE_TOLERANCE:
                raise UnbalancedEntryError(total_debit, total_credit)

            self._check_lines(company_id, draft.lines)

            header_currency = draft.currency or self.default_currency
            header_rate = draft.exchange_rate or Decimal("1")
            record = EntryRecord(
                company_id=company_id,
                period_id=period.id,
                entry_type=entry_type,
                entry_number=entry_number,
                entry_date=draft.entry_date,
                description=draft.description,
                reference=draft.reference,
                status=EntryStatus.DRAFT,
                total_debit=to_cents(total_debit),
                total_credit=to_cents(total_credit),
                currency=header_currency,
                exchange_rate=header_rate,
                created_by=caller.user_id,
                lines=tuple(
                    LineRecord(
                        line_number=number,
                        account_id=line.account_id,
                        third_party_id=line.third_party_id,
                        cost_center_id=line.cost_center_id,
                        description=line.description,
                        debit=to_cents(line.debit),
                        credit=to_cents(line.credit),
                        currency=line.currency or draft.currency or self.default_currency,
                        exchange_rate=line.exchange_rate or draft.exchange_rate or Decimal("1"),
                        base_amount=base_amount(line, draft.exchange_rate),
                        reference=line.reference,
                        tax_base=to_cents(line.tax_base),
                        iva_amount=to_cents(line.iva_amount),
                        igtf_amount=to_cents(line.igtf_amount),
                        is_igtf_applicable=line.is_igtf_applicable,
                    )
                    for number, line in enumerate(draft.lines, start=1)
                ),
            )
            entry_id = self.db.create_journal_entry(record)

        logger.info(
            "journal entry created",
            extra={
                "entry_id": entry_id,
                "entry_number": entry_number,
                "company_id": company_id,
                "user_id": caller.user_id,
            },
        )
        return PostedEntry(entry_id=entry_id, entry_number=entry_number)

    def _check_required(self, draft: EntryDraft) -> None:
        missing = []
        if draft.company_id is None:
            missing.append("company")
        if draft.entry_date is None:
            missing.append("date")
        if not draft.description or not draft.description.strip():
            missing.append("description")
        if not draft.lines:
            missing.append("lines")
        if missing:
            raise IncompleteDataError(missing_fields(missing))

    def _check_lines(self, company_id: int, lines: tuple[LineDraft, ...]) -> None:
        for number, line in enumerate(lines, start=1):
            account = self.accounts.resolve(company_id, line.account_id)
            if not account.is_active:
                raise ValidationError(f"Line {number}: account {account.code} is inactive")
            if line.third_party_id is not None:
                third_party = self.db.get_third_party(line.third_party_id)
                if third_party is None or third_party.company_id != company_id:
                    raise NotFoundError(third_party_not_found(line.third_party_id))

    def approve_entry(self, caller: Optional[Caller], entry_id: int) -> None:
        """Approve a DRAFT entry.

        Raises:
            NotFoundError: If the entry does not exist
            InvalidStateError: If the entry is not DRAFT
        """
        caller = require(caller, "journal", "approve")

        with self.db.transaction():
            entry = self._get_for_update(entry_id)
            if entry.status != EntryStatus.DRAFT:
                raise InvalidStateError(
                    f"Only DRAFT entries can be approved, entry {entry.entry_number} is {entry.status.value}"
                )
            self.db.mark_entry_approved(entry_id, caller.user_id)

        logger.info(
            "journal entry approved",
            extra={"entry_id": entry_id, "entry_number": entry.entry_number, "user_id": caller.user_id},
        )

    def annul_entry(self, caller: Optional[Caller], entry_id: int, reason: Optional[str]) -> None:
        """Annul an APPROVED entry. Its lines stay as they are.

        Raises:
            ReasonRequiredError: If no reason is given
            NotFoundError: If the entry does not exist
            InvalidStateError: If the entry is not APPROVED
        """
        caller = require(caller, "journal", "annul")
        if reason is None or not reason.strip():
            raise ReasonRequiredError("An annulment reason is required")

        with self.db.transaction():
            entry = self._get_for_update(entry_id)
            if entry.status != EntryStatus.APPROVED:
                raise InvalidStateError(
                    f"Only APPROVED entries can be annulled, entry {entry.entry_number} is {entry.status.value}"
                )
            self.db.mark_entry_annulled(entry_id, caller.user_id, reason.strip())

        logger.info(
            "journal entry annulled",
            extra={"entry_id": entry_id, "entry_number": entry.entry_number, "user_id": caller.user_id},
        )

    def reverse_entry(
        self, caller: Optional[Caller], entry_id: int, on_date: Optional[date] = None
    ) -> PostedEntry:
        """Post the mirror image of an entry.

        The new entry is an APPROVED ADJUSTMENT in the same period, numbered
        after the original with a ``-R`` suffix, with every debit and credit
        swapped. The status of the original is not checked and it is left
        unchanged, so an entry can be reversed more than once.

        Args:
            caller: Identity performing the operation
            entry_id: Entry to reverse
            on_date: Date of the reversal (defaults to today)

        Returns:
            ID and number of the reversal

        Raises:
            NotFoundError: If the entry does not exist
        """
        caller = require(caller, "journal", "reverse")

        with self.db.transaction():
            original = self.db.get_journal_entry(entry_id)
            if original is None:
                raise NotFoundError(entry_not_found(entry_id))

            record = EntryRecord(
                company_id=original.company_id,
                period_id=original.period_id,
                entry_type=EntryType.ADJUSTMENT,
                entry_number=original.entry_number + REVERSAL_SUFFIX,
                entry_date=on_date or date.today(),
                description=REVERSAL_DESCRIPTION_PREFIX + original.description,
                reference=REVERSAL_REFERENCE_PREFIX + original.entry_number,
                status=EntryStatus.APPROVED,
                total_debit=original.total_credit,
                total_credit=original.total_debit,
                currency=original.currency,
                exchange_rate=original.exchange_rate,
                created_by=caller.user_id,
                reverses_entry_id=original.id,
                lines=tuple(
                    LineRecord(
                        line_number=line.line_number,
                        account_id=line.account_id,
                        third_party_id=line.third_party_id,
                        cost_center_id=line.cost_center_id,
                        description=line.description,
                        debit=line.credit,
                        credit=line.debit,
                        currency=line.currency,
                        exchange_rate=line.exchange_rate,
                        base_amount=line.base_amount,
                        reference=line.reference,
                        tax_base=line.tax_base,
                        iva_amount=line.iva_amount,
                        igtf_amount=line.igtf_amount,
                        is_igtf_applicable=line.is_igtf_applicable,
                    )
                    for line in original.lines
                ),
            )
            reversal_id = self.db.create_journal_entry(record)

        logger.info(
            "journal entry reversed",
            extra={
                "entry_id": reversal_id,
                "entry_number": record.entry_number,
                "reverses_entry_id": entry_id,
                "user_id": caller.user_id,
            },
        )
        return PostedEntry(entry_id=reversal_id, entry_number=record.entry_number)

    def _get_for_update(self, entry_id: int) -> JournalEntryEntity:
        entry = self.db.get_journal_entry(entry_id, for_update=True)
        if entry is None:
            raise NotFoundError(entry_not_found(entry_id))
        return entry

    def get_entry(self, entry_id: int) -> JournalEntryEntity:
        """Get an entry with its lines in line-number order.

        Raises:
            NotFoundError: If the entry does not exist
        """
        entry = self.db.get_journal_entry(entry_id)
        if entry is None:
            raise NotFoundError(entry_not_found(entry_id))
        return entry

    def list_entries(
        self,
        company_id: int,
        filters: Optional[EntryFilters] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> list[JournalEntryEntity]:
        """List entry headers, newest first.

        Args:
            company_id: Company ID
            filters: Optional period, status, type, date and text filters
            offset: Number of entries to skip
            limit: Maximum number of entries to return

        Returns:
            List of entries without their lines
        """
        return self.db.list_journal_entries(company_id, filters or EntryFilters(), offset=offset, limit=limit)

    def count_entries(self, company_id: int, filters: Optional[EntryFilters] = None) -> int:
        """Count entries matching the filters."""
        return self.db.count_journal_entries(company_id, filters or EntryFilters())
