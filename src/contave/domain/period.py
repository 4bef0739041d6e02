"""Accounting period domain service."""

from datetime import date
from typing import Optional

from dateutil.relativedelta import relativedelta

from contave.database.base import Database
from contave.domain.entities import Period as PeriodEntity, PeriodStatus
from contave.domain.errors import (
    ConflictError,
    InvalidStateError,
    NextPeriodOpenError,
    NoOpenPeriodError,
    NotFoundError,
    PeriodClosedError,
    UnbalancedEntryError,
    ValidationError,
    company_not_found,
    period_not_found,
)
from contave.domain.permissions import Caller, require
from contave.logging_config import get_logger

logger = get_logger(__name__)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """Return the first and last calendar day of a month."""
    start = date(year, month, 1)
    return start, start + relativedelta(months=1, days=-1)


def next_month(year: int, month: int) -> tuple[int, int]:
    """Return the (year, month) after the given one. December rolls over."""
    following = date(year, month, 1) + relativedelta(months=1)
    return following.year, following.month


class PeriodService:
    """Service for opening, closing and reopening accounting periods."""

    def __init__(self, db: Database):
        """Initialize period service.

        Args:
            db: Database instance
        """
        self.db = db

    def get_period(self, period_id: int) -> Optional[PeriodEntity]:
        """Get period by ID."""
        return self.db.get_period(period_id)

    def list_periods(
        self, company_id: int, year: Optional[int] = None, status: Optional[PeriodStatus] = None
    ) -> list[PeriodEntity]:
        """List a company's periods, newest first.

        Args:
            company_id: Company ID
            year: Optional year filter
            status: Optional status filter

        Returns:
            List of period entities
        """
        return self.db.list_periods(company_id, year=year, status=status)

    def find_open_period(self, company_id: int) -> PeriodEntity:
        """Return the period postings go to when none is given.

        If several periods are OPEN, the earliest one wins.

        Raises:
            NoOpenPeriodError: If the company has no OPEN period
        """
        period = self.db.find_open_period(company_id)
        if period is None:
            raise NoOpenPeriodError(f"No open period for company {company_id}")
        return period

    def assert_open(self, period_id: int) -> PeriodEntity:
        """Return the period if it accepts postings.

        Raises:
            NotFoundError: If the period does not exist
            PeriodClosedError: If its status is not OPEN
        """
        period = self.db.get_period(period_id)
        if period is None:
            raise NotFoundError(period_not_found(period_id))
        if period.status != PeriodStatus.OPEN:
            raise PeriodClosedError(f"Period {period.year}-{period.month:02d} is {period.status.value}")
        return period

    def close(self, caller: Optional[Caller], period_id: int, note: Optional[str] = None) -> None:
        """Close an OPEN period.

        The approved entries of the period must add up: total debit equal to
        total credit, compared exactly.

        Args:
            caller: Identity performing the operation
            period_id: Period ID
            note: Optional closing note

        Raises:
            NotFoundError: If the period does not exist
            InvalidStateError: If the period is not OPEN
            UnbalancedEntryError: If approved debits and credits differ
        """
        caller = require(caller, "periods", "close")

        with self.db.transaction():
            period = self.db.get_period(period_id, for_update=True)
            if period is None:
                raise NotFoundError(period_not_found(period_id))
            if period.status != PeriodStatus.OPEN:
                raise InvalidStateError(
                    f"Only OPEN periods can be closed, period {period_id} is {period.status.value}"
                )

            total_debit, total_credit = self.db.get_approved_totals(period_id)
            if total_debit != total_credit:
                raise UnbalancedEntryError(
                    total_debit,
                    total_credit,
                    f"Period {period.year}-{period.month:02d} cannot be closed: approved entries are "
                    f"unbalanced. Total debit: {total_debit}, total credit: {total_credit}",
                )

            self.db.set_period_status(period_id, PeriodStatus.CLOSED, caller.user_id, note)

        logger.info(
            "period closed",
            extra={"period_id": period_id, "company_id": period.company_id, "user_id": caller.user_id},
        )

    def reopen(self, caller: Optional[Caller], period_id: int, note: Optional[str] = None) -> None:
        """Reopen a CLOSED period.

        Not allowed while the following month of the same company is OPEN.

        Args:
            caller: Identity performing the operation
            period_id: Period ID
            note: Optional reopening note

        Raises:
            NotFoundError: If the period does not exist
            InvalidStateError: If the period is not CLOSED
            NextPeriodOpenError: If the next period is OPEN
        """
        caller = require(caller, "periods", "reopen")

        with self.db.transaction():
            period = self.db.get_period(period_id, for_update=True)
            if period is None:
                raise NotFoundError(period_not_found(period_id))
            if period.status != PeriodStatus.CLOSED:
                raise InvalidStateError(
                    f"Only CLOSED periods can be reopened, period {period_id} is {period.status.value}"
                )

            year, month = next_month(period.year, period.month)
            following = self.db.get_period_by_month(period.company_id, year, month)
            if following is not None and following.status == PeriodStatus.OPEN:
                raise NextPeriodOpenError(
                    f"Cannot reopen {period.year}-{period.month:02d} while {year}-{month:02d} is OPEN"
                )

            self.db.set_period_status(period_id, PeriodStatus.OPEN, caller.user_id, note)

        logger.info(
            "period reopened",
            extra={"period_id": period_id, "company_id": period.company_id, "user_id": caller.user_id},
        )

    def create_fiscal_year(self, caller: Optional[Caller], company_id: int, year: int) -> list[int]:
        """Create the twelve monthly periods of a year, all OPEN.

        Raises:
            NotFoundError: If the company does not exist
            ConflictError: If the year already has periods
        """
        caller = require(caller, "periods", "create")

        if self.db.get_company(company_id) is None:
            raise NotFoundError(company_not_found(company_id))

        with self.db.transaction():
            period_ids = self.seed_year(company_id, year, created_by=caller.user_id)

        logger.info("fiscal year created", extra={"company_id": company_id, "year": year})
        return period_ids

    def seed_year(self, company_id: int, year: int, created_by: Optional[int] = None) -> list[int]:
        """Write the twelve periods of a year without a permission check.

        Used by company creation, which has already been authorized.
        """
        if not 1 <= year <= 9999:
            raise ValidationError(f"Invalid year: {year}")
        if self.db.list_periods(company_id, year=year):
            raise ConflictError(f"Periods for {year} already exist for company {company_id}")

        period_ids = []
        for month in range(1, 13):
            start, end = month_bounds(year, month)
            period_ids.append(
                self.db.create_period(company_id, year, month, start, end, created_by=created_by)
            )
        return period_ids
