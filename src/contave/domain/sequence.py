"""Document number allocation."""

from contave.database.base import Database

NUMBER_WIDTH = 6


def format_number(value: int) -> str:
    """Render a counter value as a zero-padded document number."""
    return str(value).zfill(NUMBER_WIDTH)


class SequenceAllocator:
    """Hands out consecutive document numbers per company and document type.

    Call :meth:`next` inside the transaction that will use the number. The
    counter row stays locked until that transaction ends, and a rollback
    returns the number.
    """

    def __init__(self, db: Database):
        """Initialize sequence allocator.

        Args:
            db: Database instance
        """
        self.db = db

    def next(self, company_id: int, document_type: str) -> str:
        """Claim the next number, e.g. ``"000001"`` for a new counter."""
        return format_number(self.db.next_sequence_value(company_id, document_type))

    def current(self, company_id: int, document_type: str) -> str | None:
        """Return the last issued number without claiming one."""
        value = self.db.get_sequence_value(company_id, document_type)
        return None if value is None else format_number(value)
