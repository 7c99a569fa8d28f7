"""Response and request bodies of the salary web endpoints."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import Field, field_serializer

from schoolpay.domain.salary import (
    AuditEntry,
    CalculationItem,
    ClassEstimate,
    SalaryCalculation,
    SalaryCalculationDetail,
    SalaryPreview,
)
from schoolpay.services.period_availability import MonthOption
from schoolpay.services.salary_dialogs import DialogOutcome

from .salary import WireModel


def _decimal_to_str(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


class CalculationView(WireModel):
    id: str
    teacher_id: str
    teacher_name: str | None = None
    period: str
    period_label: str
    period_start: date
    period_end: date
    status: str
    status_label: str
    employment_type: str
    base_salary_amount: Decimal
    calculated_amount: Decimal
    approved_amount: Decimal | None = None
    last_approved_amount: Decimal | None = None
    payout_amount: Decimal | None = None
    approved_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    actions: list[str] = Field(default_factory=list)

    @field_serializer(
        "base_salary_amount",
        "calculated_amount",
        "approved_amount",
        "last_approved_amount",
        "payout_amount",
    )
    def serialize_amount(self, value: Decimal | None) -> str | None:
        return _decimal_to_str(value)

    @classmethod
    def from_domain(cls, calculation: SalaryCalculation) -> "CalculationView":
        return cls(
            id=calculation.id,
            teacher_id=calculation.teacher_id,
            teacher_name=calculation.teacher_name,
            period=str(calculation.period),
            period_label=calculation.period.label,
            period_start=calculation.period.period_start,
            period_end=calculation.period.period_end,
            status=calculation.status.value,
            status_label=calculation.status.label,
            employment_type=calculation.employment_type.value,
            base_salary_amount=calculation.base_salary_amount,
            calculated_amount=calculation.calculated_amount,
            approved_amount=calculation.approved_amount,
            last_approved_amount=calculation.last_approved_amount,
            payout_amount=calculation.payout_amount,
            approved_at=calculation.approved_at,
            created_at=calculation.created_at,
            updated_at=calculation.updated_at,
            actions=[action.value for action in calculation.allowed_actions],
        )


class CalculationItemView(WireModel):
    class_id: str
    class_name: str
    lessons_count: int
    active_students: int
    rate_applied: Decimal
    amount: Decimal
    min_students: int
    rate_per_lesson: Decimal
    rule_effective_from: date

    @field_serializer("rate_applied", "amount", "rate_per_lesson")
    def serialize_amount(self, value: Decimal) -> str:
        return str(value)

    @classmethod
    def from_domain(cls, item: CalculationItem) -> "CalculationItemView":
        return cls(
            class_id=item.class_id,
            class_name=item.class_name,
            lessons_count=item.lessons_count,
            active_students=item.active_students,
            rate_applied=item.rate_applied,
            amount=item.amount,
            min_students=item.rule_snapshot.min_students,
            rate_per_lesson=item.rule_snapshot.rate_per_lesson,
            rule_effective_from=item.rule_snapshot.effective_from,
        )


class AuditEntryView(WireModel):
    id: str
    action: str
    label: str
    previous_amount: Decimal | None = None
    new_amount: Decimal | None = None
    delta: Decimal | None = None
    reason: str | None = None
    created_at: datetime

    @field_serializer("previous_amount", "new_amount", "delta")
    def serialize_amount(self, value: Decimal | None) -> str | None:
        return _decimal_to_str(value)

    @classmethod
    def from_domain(cls, entry: AuditEntry) -> "AuditEntryView":
        return cls(
            id=entry.id,
            action=entry.action,
            label=entry.label,
            previous_amount=entry.previous_amount,
            new_amount=entry.new_amount,
            delta=entry.delta,
            reason=entry.reason,
            created_at=entry.created_at,
        )


class CalculationDetailView(WireModel):
    calculation: CalculationView
    items: list[CalculationItemView]
    timeline: list[AuditEntryView]

    @classmethod
    def from_domain(cls, detail: SalaryCalculationDetail) -> "CalculationDetailView":
        return cls(
            calculation=CalculationView.from_domain(detail.calculation),
            items=[CalculationItemView.from_domain(item) for item in detail.items],
            timeline=[AuditEntryView.from_domain(entry) for entry in detail.timeline],
        )


class MonthOptionView(WireModel):
    month: int
    label: str
    generated: bool
    future: bool
    selectable: bool

    @classmethod
    def from_domain(cls, option: MonthOption) -> "MonthOptionView":
        return cls(
            month=option.month,
            label=option.label,
            generated=option.generated,
            future=option.future,
            selectable=option.selectable,
        )


class GenerateOptionsView(WireModel):
    """State of the generation picker for one year."""

    year: int
    month: int
    years: list[int]
    months: list[MonthOptionView]
    exhausted: bool


class ClassEstimateView(WireModel):
    class_id: str
    class_name: str
    scheduled_lessons: int
    active_students: int
    rate_applied: Decimal
    rate_tier_description: str
    estimated_amount: Decimal
    has_pending_enrollment_changes: bool
    pending_enrollments: int
    pending_withdrawals: int

    @field_serializer("rate_applied", "estimated_amount")
    def serialize_amount(self, value: Decimal) -> str:
        return str(value)

    @classmethod
    def from_domain(cls, item: ClassEstimate) -> "ClassEstimateView":
        return cls(
            class_id=item.class_id,
            class_name=item.class_name,
            scheduled_lessons=item.scheduled_lessons,
            active_students=item.active_students,
            rate_applied=item.rate_applied,
            rate_tier_description=item.rate_tier_description,
            estimated_amount=item.estimated_amount,
            has_pending_enrollment_changes=item.has_pending_enrollment_changes,
            pending_enrollments=item.pending_enrollments,
            pending_withdrawals=item.pending_withdrawals,
        )


class PreviewView(WireModel):
    """A preview as displayed; totals are absent for an empty breakdown."""

    state: str
    teacher_id: str
    teacher_name: str | None = None
    period: str
    period_label: str
    total_estimated: Decimal | None = None
    base_salary_amount: Decimal | None = None
    grand_total: Decimal | None = None
    class_breakdown: list[ClassEstimateView]
    warnings: list[str]
    pending_change_warnings: list[str]

    @field_serializer("total_estimated", "base_salary_amount", "grand_total")
    def serialize_amount(self, value: Decimal | None) -> str | None:
        return _decimal_to_str(value)

    @classmethod
    def from_domain(cls, preview: SalaryPreview, state: str) -> "PreviewView":
        empty = preview.is_empty
        return cls(
            state=state,
            teacher_id=preview.teacher_id,
            teacher_name=preview.teacher_name,
            period=str(preview.period),
            period_label=preview.period.label,
            total_estimated=None if empty else preview.total_estimated,
            base_salary_amount=(
                preview.base_salary_amount if preview.includes_base_salary and not empty else None
            ),
            grand_total=preview.grand_total,
            class_breakdown=[ClassEstimateView.from_domain(item) for item in preview.class_breakdown],
            warnings=list(preview.warnings),
            pending_change_warnings=list(preview.pending_change_warnings),
        )


class OutcomeView(WireModel):
    success: bool
    kind: str
    message: str | None = None
    field_errors: dict[str, str] = Field(default_factory=dict)
    banner: str | None = None
    retryable: bool = False
    code: str | None = None
    calculation: CalculationView | None = None

    @classmethod
    def from_domain(cls, outcome: DialogOutcome) -> "OutcomeView":
        return cls(
            success=outcome.success,
            kind=outcome.kind.value,
            message=outcome.message,
            field_errors=dict(outcome.field_errors),
            banner=outcome.banner,
            retryable=outcome.retryable,
            code=outcome.code,
            calculation=(
                CalculationView.from_domain(outcome.calculation)
                if outcome.calculation is not None
                else None
            ),
        )


class GenerateBody(WireModel):
    year: int
    month: int


class ApproveBody(WireModel):
    approved_amount: Decimal | str | None = None
    reason: str | None = None


class ReopenBody(WireModel):
    reason: str = ""
