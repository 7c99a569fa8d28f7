"""Ephemeral salary projections for periods that have not been generated."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from .calculation import EmploymentType
from .period import PeriodKey

NO_CLASSES_WARNING = "No classes scheduled for this period"


@dataclass(frozen=True, slots=True)
class ClassEstimate:
    """Projected earnings for one class the teacher is scheduled to teach."""

    class_id: str
    class_name: str
    scheduled_lessons: int
    active_students: int
    rate_applied: Decimal
    rate_tier_description: str
    estimated_amount: Decimal
    has_pending_enrollment_changes: bool = False
    pending_enrollments: int = 0
    pending_withdrawals: int = 0

    def __post_init__(self) -> None:
        for name in ("scheduled_lessons", "active_students", "pending_enrollments", "pending_withdrawals"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative")

    @property
    def pending_summary(self) -> str:
        """Describe pending changes, e.g. ``+2 enrollments, -1 withdrawals``."""

        parts: list[str] = []
        if self.pending_enrollments > 0:
            noun = "enrollment" if self.pending_enrollments == 1 else "enrollments"
            parts.append(f"+{self.pending_enrollments} {noun}")
        if self.pending_withdrawals > 0:
            noun = "withdrawal" if self.pending_withdrawals == 1 else "withdrawals"
            parts.append(f"-{self.pending_withdrawals} {noun}")
        return ", ".join(parts)


@dataclass(frozen=True, slots=True)
class SalaryPreview:
    """Projection for one ``(teacher, period)``; never authoritative."""

    teacher_id: str
    period: PeriodKey
    total_estimated: Decimal
    base_salary_amount: Decimal = Decimal("0")
    employment_type: EmploymentType | None = None
    class_breakdown: tuple[ClassEstimate, ...] = ()
    warnings: tuple[str, ...] = ()
    pending_change_warnings: tuple[str, ...] = ()
    teacher_name: str | None = None

    @property
    def is_empty(self) -> bool:
        """True when nothing is scheduled; no total should be displayed."""

        return not self.class_breakdown

    @property
    def has_pending_changes(self) -> bool:
        return any(item.has_pending_enrollment_changes for item in self.class_breakdown)

    @property
    def includes_base_salary(self) -> bool:
        if self.employment_type is not None:
            return self.employment_type is EmploymentType.FULL_TIME
        return self.base_salary_amount > 0

    @property
    def grand_total(self) -> Decimal | None:
        """Base salary plus the estimate, or ``None`` for an empty preview."""

        if self.is_empty:
            return None
        if self.includes_base_salary:
            return self.base_salary_amount + self.total_estimated
        return self.total_estimated
