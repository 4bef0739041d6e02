"""Response envelope and error-to-status mapping."""

import math
from dataclasses import dataclass, fields, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from contave.domain.errors import (
    DomainError,
    ForbiddenError,
    NotFoundError,
    UnauthenticatedError,
    UnbalancedEntryError,
)

# Field names whose PascalCase form is not a plain title-casing
_ACRONYMS = {"iva": "IVA", "igtf": "IGTF", "islr": "ISLR", "rif": "RIF", "id": "Id"}


@dataclass(frozen=True)
class ApiResponse:
    """HTTP status plus JSON-ready body."""

    status: int
    body: dict[str, Any]

    @property
    def success(self) -> bool:
        return bool(self.body.get("Success"))


def pascal_case(name: str) -> str:
    """``entry_number`` -> ``EntryNumber``, ``iva_amount`` -> ``IVAAmount``."""
    return "".join(_ACRONYMS.get(part, part.capitalize()) for part in name.split("_"))


def to_json_value(value: Any) -> Any:
    """Convert a domain value into something ``json.dumps`` accepts.

    Money stays exact as a string; dates use ISO format.
    """
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (frozenset, set)):
        return sorted(to_json_value(v) for v in value)
    if isinstance(value, (list, tuple)):
        return [to_json_value(v) for v in value]
    if is_dataclass(value):
        return to_payload(value)
    return value


def to_payload(entity: Any, id_key: Optional[str] = None) -> dict[str, Any]:
    """Render a domain dataclass with PascalCase keys.

    Args:
        entity: Frozen domain dataclass
        id_key: Name to use for the ``id`` field (e.g. ``EntryId``)
    """
    payload = {}
    for f in fields(entity):
        key = id_key if f.name == "id" and id_key else pascal_case(f.name)
        payload[key] = to_json_value(getattr(entity, f.name))
    return payload


def ok(
    data: Any = None, message: Optional[str] = None, status: int = 200, **extra: Any
) -> ApiResponse:
    """Build a successful response."""
    body: dict[str, Any] = {"Success": True}
    if data is not None:
        body["Data"] = data
    if message is not None:
        body["Message"] = message
    body.update(extra)
    return ApiResponse(status, body)


def paginated(data: list[Any], total: int, page: int, page_size: int) -> ApiResponse:
    """Build a listing response with pagination metadata."""
    return ok(
        data,
        Total=total,
        Page=page,
        PageSize=page_size,
        TotalPages=math.ceil(total / page_size) if page_size else 0,
    )


def status_for(error: DomainError) -> int:
    """Map a domain error to its HTTP status code."""
    if isinstance(error, UnauthenticatedError):
        return 401
    if isinstance(error, ForbiddenError):
        return 403
    if isinstance(error, NotFoundError):
        return 404
    return 400


def error_response(error: DomainError) -> ApiResponse:
    """Build the failure response for a domain error."""
    body: dict[str, Any] = {"Success": False, "Message": str(error)}
    if isinstance(error, UnbalancedEntryError):
        body["Data"] = {
            "TotalDebit": to_json_value(error.total_debit),
            "TotalCredit": to_json_value(error.total_credit),
        }
    return ApiResponse(status_for(error), body)


def unexpected_error() -> ApiResponse:
    """Failure response for anything that is not a domain error."""
    return ApiResponse(500, {"Success": False, "Message": "Unexpected error"})
