"""In-process stand-in for the salary calculation API.

Used as the ``memory`` backend during local development and as the server
side of service tests. Amounts are the plain sum of the scheduled class
estimates plus the base salary; rate tiers are whatever the registered
``ClassEstimate`` rows say.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from decimal import Decimal
from itertools import count
from typing import Callable, Iterable

from schoolpay.core.log import get_logger
from schoolpay.domain.salary import (
    AuditEntry,
    CalculationItem,
    ClassEstimate,
    ConflictError,
    EmploymentType,
    ErrorCode,
    PeriodKey,
    RejectedError,
    RuleSnapshot,
    SalaryCalculation,
    SalaryCalculationDetail,
    SalaryPreview,
    ValidationError,
    approve,
    new_calculation,
    reopen,
)

from .base import CalculationFilters

LOGGER = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class TeacherProfile:
    teacher_id: str
    name: str
    employment_type: EmploymentType
    base_salary_amount: Decimal = Decimal("0")


class InMemorySalaryApi:
    """Dictionary-backed implementation of ``SalaryCalculationApi``."""

    def __init__(
        self,
        *,
        today: Callable[[], date] = date.today,
        clock: Callable[[], datetime] = _utcnow,
        academic_year_id: str | None = None,
    ) -> None:
        self._today = today
        self._clock = clock
        self._academic_year_id = academic_year_id
        self._teachers: dict[str, TeacherProfile] = {}
        self._schedules: dict[tuple[str, PeriodKey], tuple[ClassEstimate, ...]] = {}
        self._calculations: dict[str, SalaryCalculation] = {}
        self._items: dict[str, tuple[CalculationItem, ...]] = {}
        self._audit: dict[str, list[AuditEntry]] = {}
        self._ids = count(1)

    # -- setup -----------------------------------------------------------

    def register_teacher(self, profile: TeacherProfile) -> None:
        self._teachers[profile.teacher_id] = profile

    def update_teacher(self, teacher_id: str, **changes: object) -> None:
        """Change the live teacher record; existing calculations keep their snapshot."""

        self._teachers[teacher_id] = replace(self._require_teacher(teacher_id), **changes)

    def schedule(self, teacher_id: str, period: PeriodKey, estimates: Iterable[ClassEstimate]) -> None:
        self._schedules[(teacher_id, period)] = tuple(estimates)

    # -- helpers ---------------------------------------------------------

    def _require_teacher(self, teacher_id: str) -> TeacherProfile:
        profile = self._teachers.get(teacher_id)
        if profile is None:
            raise RejectedError("Teacher not found", code=ErrorCode.TEACHER_NOT_FOUND)
        return profile

    def _require_calculation(self, teacher_id: str, calculation_id: str) -> SalaryCalculation:
        calculation = self._calculations.get(calculation_id)
        if calculation is None:
            raise ConflictError(
                "Salary calculation not found", code=ErrorCode.CALCULATION_NOT_FOUND
            )
        if calculation.teacher_id != teacher_id:
            raise ConflictError(
                "Calculation does not belong to the specified teacher",
                code=ErrorCode.CALCULATION_NOT_BELONG_TO_TEACHER,
            )
        return calculation

    def _record(self, calculation_id: str, action: str, **fields: object) -> None:
        entries = self._audit.setdefault(calculation_id, [])
        entries.append(
            AuditEntry(
                id=f"audit-{next(self._ids)}",
                action=action,
                created_at=self._clock(),
                **fields,  # type: ignore[arg-type]
            )
        )

    @staticmethod
    def _period_from_bounds(period_start: str, period_end: str) -> PeriodKey:
        try:
            period = PeriodKey.from_iso(period_start)
        except ValueError as exc:
            raise ValidationError(str(exc), field="period_start") from None
        if period.wire_bounds() != (period_start, period_end):
            raise ValidationError(
                "Period must span exactly one calendar month", field="period_end"
            )
        return period

    # -- SalaryCalculationApi ---------------------------------------------

    async def list_calculations(
        self,
        teacher_id: str,
        filters: CalculationFilters | None = None,
    ) -> list[SalaryCalculation]:
        filters = filters or CalculationFilters()
        rows = [
            calculation
            for calculation in self._calculations.values()
            if calculation.teacher_id == teacher_id and filters.matches(calculation)
        ]
        return sorted(rows, key=lambda calculation: calculation.period, reverse=True)

    async def get_calculation(
        self, teacher_id: str, calculation_id: str
    ) -> SalaryCalculationDetail:
        calculation = self._require_calculation(teacher_id, calculation_id)
        return SalaryCalculationDetail(
            calculation=calculation,
            items=self._items.get(calculation_id, ()),
            audit_log=tuple(self._audit.get(calculation_id, ())),
        )

    async def generate(
        self, teacher_id: str, period_start: str, period_end: str
    ) -> SalaryCalculation:
        profile = self._require_teacher(teacher_id)
        period = self._period_from_bounds(period_start, period_end)
        if period.is_future(self._today()):
            raise ValidationError(
                "Cannot generate salary for future months",
                field="month",
                code=ErrorCode.FUTURE_MONTH_NOT_ALLOWED,
            )
        if any(
            calculation.teacher_id == teacher_id and calculation.period == period
            for calculation in self._calculations.values()
        ):
            raise ConflictError(
                "A salary calculation already exists for this month/year",
                code=ErrorCode.DUPLICATE_SALARY_MONTH_YEAR,
            )

        estimates = self._schedules.get((teacher_id, period), ())
        if not estimates and profile.employment_type is EmploymentType.CONTRACT:
            raise RejectedError(
                "No conducted lessons found for the period",
                code=ErrorCode.NO_CONDUCTED_LESSONS,
            )
        base = (
            profile.base_salary_amount
            if profile.employment_type is EmploymentType.FULL_TIME
            else Decimal("0")
        )
        variable = sum((estimate.estimated_amount for estimate in estimates), Decimal("0"))
        calculation = new_calculation(
            calculation_id=f"calc-{next(self._ids)}",
            teacher_id=teacher_id,
            teacher_name=profile.name,
            period=period,
            employment_type=profile.employment_type,
            base_salary_amount=base,
            calculated_amount=base + variable,
            now=self._clock(),
            academic_year_id=self._academic_year_id,
        )
        self._calculations[calculation.id] = calculation
        self._items[calculation.id] = tuple(
            CalculationItem(
                class_id=estimate.class_id,
                class_name=estimate.class_name,
                lessons_count=estimate.scheduled_lessons,
                active_students=estimate.active_students,
                rate_applied=estimate.rate_applied,
                amount=estimate.estimated_amount,
                rule_snapshot=RuleSnapshot(
                    min_students=estimate.active_students,
                    rate_per_lesson=estimate.rate_applied,
                    effective_from=period.period_start,
                ),
                student_count_at_lesson=estimate.active_students,
            )
            for estimate in estimates
        )
        self._record(calculation.id, "created", new_amount=calculation.calculated_amount)
        LOGGER.debug("Generated %s for %s (%s)", calculation.id, teacher_id, period)
        return calculation

    async def approve(
        self,
        teacher_id: str,
        calculation_id: str,
        approved_amount: Decimal,
        adjustment_reason: str | None = None,
    ) -> SalaryCalculation:
        current = self._require_calculation(teacher_id, calculation_id)
        updated = approve(current, approved_amount, adjustment_reason, now=self._clock()).unwrap()
        self._calculations[calculation_id] = updated
        if updated.is_adjusted:
            self._record(
                calculation_id,
                "adjusted",
                previous_amount=current.calculated_amount,
                new_amount=updated.approved_amount,
                reason=adjustment_reason,
            )
        self._record(calculation_id, "approved", new_amount=updated.approved_amount)
        return updated

    async def reopen(
        self, teacher_id: str, calculation_id: str, reason: str
    ) -> SalaryCalculation:
        current = self._require_calculation(teacher_id, calculation_id)
        updated = reopen(current, reason, now=self._clock()).unwrap()
        self._calculations[calculation_id] = updated
        self._record(
            calculation_id,
            "reopened",
            previous_amount=current.approved_amount,
            reason=reason,
        )
        return updated

    async def preview(
        self, teacher_id: str, period_start: str, period_end: str
    ) -> SalaryPreview:
        profile = self._require_teacher(teacher_id)
        period = self._period_from_bounds(period_start, period_end)
        estimates = self._schedules.get((teacher_id, period), ())
        warnings = tuple(
            f"{estimate.class_name} skipped (0 students)"
            for estimate in estimates
            if estimate.active_students == 0
        )
        return SalaryPreview(
            teacher_id=teacher_id,
            teacher_name=profile.name,
            period=period,
            total_estimated=sum(
                (estimate.estimated_amount for estimate in estimates), Decimal("0")
            ),
            base_salary_amount=(
                profile.base_salary_amount
                if profile.employment_type is EmploymentType.FULL_TIME
                else Decimal("0")
            ),
            employment_type=profile.employment_type,
            class_breakdown=estimates,
            warnings=warnings,
        )
