"""Error taxonomy for the salary calculation workflow.

Every failure surfaced to the orchestration layer is a ``SalaryError``:

* ``ValidationError`` - bad input, raised before any network call where
  possible and attached to the offending form field.
* ``ConflictError`` - the server state disagrees with ours (duplicate period,
  illegal transition, missing calculation); callers resync by refetching.
* ``NetworkError`` - transport failures and server outages; retryable, never
  retried automatically.
* ``RejectedError`` - other coded business refusals such as missing rate
  configuration.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class ErrorCode:
    """Machine-readable codes returned by the salary calculation API."""

    TEACHER_NOT_FOUND = "teacher_not_found"
    NO_ACTIVE_ACADEMIC_YEAR = "no_active_academic_year"
    PERIOD_OUTSIDE_ACADEMIC_YEAR = "period_outside_academic_year"
    OVERLAPPING_SALARY_PERIOD = "overlapping_salary_period"
    DUPLICATE_SALARY_MONTH_YEAR = "duplicate_salary_month_year"
    FUTURE_MONTH_NOT_ALLOWED = "future_month_not_allowed"
    NO_CONDUCTED_LESSONS = "no_conducted_lessons"
    TEACHER_NO_CLASSES = "teacher_no_classes"
    NO_SALARY_RULES_CONFIGURED = "no_salary_rules_configured"
    CALCULATION_NOT_FOUND = "salary_calculation_not_found"
    CALCULATION_NOT_BELONG_TO_TEACHER = "salary_calculation_not_belong_to_teacher"
    CANNOT_APPROVE_NON_PENDING = "cannot_approve_non_pending"
    ADJUSTMENT_REASON_REQUIRED = "adjustment_reason_required"
    CANNOT_REOPEN_NON_APPROVED = "cannot_reopen_non_approved"

    # Client-side codes, never sent by the server.
    VALIDATION = "validation"
    PERIOD_NOT_SELECTABLE = "period_not_selectable"
    NETWORK = "network"
    SERVER = "server_error"
    UNKNOWN = "unknown"


CONFLICT_CODES = frozenset(
    {
        ErrorCode.DUPLICATE_SALARY_MONTH_YEAR,
        ErrorCode.OVERLAPPING_SALARY_PERIOD,
        ErrorCode.CANNOT_APPROVE_NON_PENDING,
        ErrorCode.CANNOT_REOPEN_NON_APPROVED,
        ErrorCode.CALCULATION_NOT_FOUND,
        ErrorCode.CALCULATION_NOT_BELONG_TO_TEACHER,
    }
)

VALIDATION_CODES = frozenset(
    {
        ErrorCode.ADJUSTMENT_REASON_REQUIRED,
        ErrorCode.FUTURE_MONTH_NOT_ALLOWED,
        ErrorCode.PERIOD_OUTSIDE_ACADEMIC_YEAR,
    }
)


class SalaryError(Exception):
    """Base class for all user-facing salary workflow failures."""

    retryable: bool = False

    def __init__(self, message: str, *, code: str = ErrorCode.UNKNOWN) -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ValidationError(SalaryError):
    """Input rejected before or by the server; bound to a form field."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        code: str = ErrorCode.VALIDATION,
    ) -> None:
        super().__init__(message, code=code)
        self.field = field


class ConflictError(SalaryError):
    """Server state conflicts with the requested change."""


class RejectedError(SalaryError):
    """A coded business refusal that is neither a conflict nor bad input."""


class NetworkError(SalaryError):
    """The collaborator could not be reached or failed internally."""

    retryable = True

    def __init__(self, message: str, *, code: str = ErrorCode.NETWORK) -> None:
        super().__init__(message, code=code)


def extract_error_code(payload: Any) -> str | None:
    """Return the error code carried by a ProblemDetails-style payload.

    The code is read from ``code`` when present, otherwise from ``type``,
    where it may be the trailing segment of an ``.../errors/<code>`` URL.
    """

    if not isinstance(payload, Mapping):
        return None
    code = payload.get("code")
    if isinstance(code, str) and code:
        return code
    error_type = payload.get("type")
    if isinstance(error_type, str) and error_type:
        if "/errors/" in error_type:
            return error_type.rsplit("/errors/", 1)[-1] or error_type
        return error_type
    return None


def error_from_response(status_code: int, payload: Any) -> SalaryError:
    """Translate an HTTP error response into the matching ``SalaryError``."""

    code = extract_error_code(payload)
    message = None
    if isinstance(payload, Mapping):
        message = payload.get("detail") or payload.get("title") or payload.get("message")
    message = str(message) if message else f"Request failed with status {status_code}"

    if status_code >= 500:
        return NetworkError(message, code=code or ErrorCode.SERVER)
    if code in CONFLICT_CODES or status_code in (404, 409):
        return ConflictError(message, code=code or ErrorCode.UNKNOWN)
    if code in VALIDATION_CODES:
        field = "reason" if code == ErrorCode.ADJUSTMENT_REASON_REQUIRED else None
        return ValidationError(message, field=field, code=code)
    if code is not None:
        return RejectedError(message, code=code)
    if status_code in (400, 422):
        return ValidationError(message)
    return RejectedError(message)
