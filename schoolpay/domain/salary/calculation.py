"""Salary calculation entity and its guarded lifecycle.

A calculation is created ``pending`` by *generate*, moves to ``approved`` via
*approve* and back to ``reopened`` via *reopen*; ``reopened`` can be approved
again. No state is terminal.

The transition functions here are pure: they take a calculation and return a
``TransitionResult`` holding either the next calculation or the error that
prevented the move. Illegal transitions are ordinary, user-facing outcomes,
so they are returned rather than raised. The same guards are exposed
individually so the service layer can reject bad input before it reaches
the network.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum

from .errors import ConflictError, ErrorCode, SalaryError, ValidationError
from .period import PeriodKey

APPROVAL_REASON_MIN_LENGTH = 10
REOPEN_REASON_MIN_LENGTH = 10
REOPEN_REASON_MAX_LENGTH = 500


class CalculationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REOPENED = "reopened"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class EmploymentType(str, Enum):
    FULL_TIME = "full_time"
    CONTRACT = "contract"

    @property
    def label(self) -> str:
        return "Full-time" if self is EmploymentType.FULL_TIME else "Contract"


class CalculationAction(str, Enum):
    """User actions offered for a calculation in a given state."""

    APPROVE = "approve"
    REOPEN = "reopen"


_ACTIONS_BY_STATUS: dict[CalculationStatus, tuple[CalculationAction, ...]] = {
    CalculationStatus.PENDING: (CalculationAction.APPROVE,),
    CalculationStatus.APPROVED: (CalculationAction.REOPEN,),
    CalculationStatus.REOPENED: (CalculationAction.APPROVE,),
}


@dataclass(frozen=True, slots=True)
class SalaryCalculation:
    """One generated calculation for a teacher and a calendar month.

    ``calculated_amount`` is the full server-derived figure and includes the
    fixed ``base_salary_amount`` for full-time teachers. ``employment_type``
    is the value captured at generation time and never follows later changes
    to the teacher record.

    ``approved_amount`` is only set while the calculation is ``approved``.
    When a calculation is reopened, the figure that was approved moves to
    ``last_approved_amount`` so it stays visible for audit without counting
    as the payout.
    """

    id: str
    teacher_id: str
    period: PeriodKey
    employment_type: EmploymentType
    base_salary_amount: Decimal
    calculated_amount: Decimal
    status: CalculationStatus
    created_at: datetime
    updated_at: datetime
    approved_amount: Decimal | None = None
    approved_at: datetime | None = None
    last_approved_amount: Decimal | None = None
    teacher_name: str | None = None
    academic_year_id: str | None = None

    def __post_init__(self) -> None:
        if self.base_salary_amount < 0:
            raise ValueError("base_salary_amount cannot be negative")
        if self.calculated_amount < 0:
            raise ValueError("calculated_amount cannot be negative")
        if self.approved_amount is not None and self.approved_amount < 0:
            raise ValueError("approved_amount cannot be negative")
        approved = self.status is CalculationStatus.APPROVED
        if approved != (self.approved_amount is not None):
            raise ValueError(
                "approved_amount must be set exactly when the calculation is approved"
            )

    @property
    def allowed_actions(self) -> tuple[CalculationAction, ...]:
        return _ACTIONS_BY_STATUS[self.status]

    @property
    def can_approve(self) -> bool:
        return CalculationAction.APPROVE in self.allowed_actions

    @property
    def can_reopen(self) -> bool:
        return CalculationAction.REOPEN in self.allowed_actions

    @property
    def payout_amount(self) -> Decimal | None:
        """The authoritative payout, or ``None`` while not approved."""

        return self.approved_amount if self.status is CalculationStatus.APPROVED else None

    @property
    def variable_amount(self) -> Decimal:
        """Portion of the calculated figure that depends on lessons taught."""

        return max(self.calculated_amount - self.base_salary_amount, Decimal("0"))

    @property
    def is_adjusted(self) -> bool:
        return (
            self.approved_amount is not None
            and self.approved_amount != self.calculated_amount
        )


@dataclass(frozen=True, slots=True)
class TransitionResult:
    """Outcome of a lifecycle transition: a calculation or an error."""

    calculation: SalaryCalculation | None = None
    error: SalaryError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> SalaryCalculation:
        if self.error is not None:
            raise self.error
        assert self.calculation is not None
        return self.calculation


def parse_amount(value: object, *, field: str = "approved_amount") -> Decimal:
    """Coerce ``value`` to a finite, non-negative ``Decimal``."""

    if isinstance(value, bool) or value is None:
        raise ValidationError("Approved amount is required", field=field)
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("Approved amount must be a valid number", field=field) from None
    if not amount.is_finite():
        raise ValidationError("Approved amount must be a valid number", field=field)
    if amount < 0:
        raise ValidationError("Approved amount cannot be negative", field=field)
    return amount


def approval_reason(
    calculated_amount: Decimal,
    approved_amount: Decimal,
    reason: str | None,
) -> str | None:
    """Return the reason to send with an approval, or ``None``.

    A reason only travels with an adjusted amount. When the amounts match,
    any reason left over from an earlier attempt is dropped.
    """

    if approved_amount == calculated_amount:
        return None
    text = reason or ""
    if not text.strip():
        raise ValidationError(
            "Reason is required when amount differs from calculated",
            field="reason",
            code=ErrorCode.ADJUSTMENT_REASON_REQUIRED,
        )
    if len(text) < APPROVAL_REASON_MIN_LENGTH:
        raise ValidationError(
            f"Reason must be at least {APPROVAL_REASON_MIN_LENGTH} characters",
            field="reason",
            code=ErrorCode.ADJUSTMENT_REASON_REQUIRED,
        )
    return text


def reopen_reason(reason: str | None) -> str:
    """Validate the mandatory justification for reopening."""

    text = reason or ""
    if not text.strip():
        raise ValidationError(
            "Reason is required to reopen an approved calculation", field="reason"
        )
    if len(text) < REOPEN_REASON_MIN_LENGTH:
        raise ValidationError(
            f"Reason must be at least {REOPEN_REASON_MIN_LENGTH} characters", field="reason"
        )
    if len(text) > REOPEN_REASON_MAX_LENGTH:
        raise ValidationError(
            f"Reason must not exceed {REOPEN_REASON_MAX_LENGTH} characters", field="reason"
        )
    return text


def new_calculation(
    *,
    calculation_id: str,
    teacher_id: str,
    period: PeriodKey,
    employment_type: EmploymentType,
    base_salary_amount: Decimal,
    calculated_amount: Decimal,
    now: datetime,
    academic_year_id: str | None = None,
    teacher_name: str | None = None,
) -> SalaryCalculation:
    """Build the ``pending`` calculation produced by *generate*."""

    return SalaryCalculation(
        id=calculation_id,
        teacher_id=teacher_id,
        period=period,
        employment_type=employment_type,
        base_salary_amount=(
            Decimal("0") if employment_type is EmploymentType.CONTRACT else base_salary_amount
        ),
        calculated_amount=calculated_amount,
        status=CalculationStatus.PENDING,
        created_at=now,
        updated_at=now,
        academic_year_id=academic_year_id,
        teacher_name=teacher_name,
    )


def approve(
    calculation: SalaryCalculation,
    approved_amount: object,
    reason: str | None = None,
    *,
    now: datetime,
) -> TransitionResult:
    """Commit ``approved_amount`` as the payout for ``calculation``."""

    if not calculation.can_approve:
        return TransitionResult(
            error=ConflictError(
                "Cannot approve a calculation that is not pending or reopened",
                code=ErrorCode.CANNOT_APPROVE_NON_PENDING,
            )
        )
    try:
        amount = parse_amount(approved_amount)
        approval_reason(calculation.calculated_amount, amount, reason)
    except ValidationError as exc:
        return TransitionResult(error=exc)

    return TransitionResult(
        calculation=replace(
            calculation,
            status=CalculationStatus.APPROVED,
            approved_amount=amount,
            approved_at=now,
            last_approved_amount=None,
            updated_at=now,
        )
    )


def reopen(
    calculation: SalaryCalculation,
    reason: str | None,
    *,
    now: datetime,
) -> TransitionResult:
    """Return an approved calculation to a revisable state."""

    if not calculation.can_reopen:
        return TransitionResult(
            error=ConflictError(
                "Cannot reopen a calculation that is not approved",
                code=ErrorCode.CANNOT_REOPEN_NON_APPROVED,
            )
        )
    try:
        reopen_reason(reason)
    except ValidationError as exc:
        return TransitionResult(error=exc)

    return TransitionResult(
        calculation=replace(
            calculation,
            status=CalculationStatus.REOPENED,
            approved_amount=None,
            last_approved_amount=calculation.approved_amount,
            updated_at=now,
        )
    )
