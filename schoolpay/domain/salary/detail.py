"""Per-class items and audit history attached to a calculation."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from .calculation import SalaryCalculation

_ACTION_LABELS: dict[str, str] = {
    "created": "Generated",
    "approved": "Approved",
    "adjusted": "Adjusted",
    "reopened": "Reopened",
    "recalculated": "Recalculated",
}


@dataclass(frozen=True, slots=True)
class RuleSnapshot:
    """Copy of the rate rule in force when the item was calculated."""

    min_students: int
    rate_per_lesson: Decimal
    effective_from: date


@dataclass(frozen=True, slots=True)
class CalculationItem:
    class_id: str
    class_name: str
    lessons_count: int
    active_students: int
    rate_applied: Decimal
    amount: Decimal
    rule_snapshot: RuleSnapshot
    # Older items carry no per-lesson student count.
    student_count_at_lesson: int | None = None


@dataclass(frozen=True, slots=True)
class AuditEntry:
    id: str
    action: str
    created_at: datetime
    previous_amount: Decimal | None = None
    new_amount: Decimal | None = None
    reason: str | None = None

    @property
    def label(self) -> str:
        return _ACTION_LABELS.get(self.action, self.action[:1].upper() + self.action[1:])

    @property
    def delta(self) -> Decimal | None:
        """Signed change in amount, or ``None`` when nothing changed."""

        if self.previous_amount is None or self.new_amount is None:
            return None
        if self.previous_amount == self.new_amount:
            return None
        return self.new_amount - self.previous_amount


@dataclass(frozen=True, slots=True)
class SalaryCalculationDetail:
    calculation: SalaryCalculation
    items: tuple[CalculationItem, ...] = ()
    audit_log: tuple[AuditEntry, ...] = ()

    @property
    def timeline(self) -> tuple[AuditEntry, ...]:
        """Audit entries, newest first."""

        return tuple(sorted(self.audit_log, key=lambda entry: entry.created_at, reverse=True))

    @property
    def items_total(self) -> Decimal:
        return sum((item.amount for item in self.items), Decimal("0"))
