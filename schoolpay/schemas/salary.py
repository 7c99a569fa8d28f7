"""Wire schemas for the salary calculation API (camelCase JSON)."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

from schoolpay.domain.salary import (
    AuditEntry,
    CalculationItem,
    CalculationStatus,
    ClassEstimate,
    EmploymentType,
    PeriodKey,
    RuleSnapshot,
    SalaryCalculation,
    SalaryCalculationDetail,
    SalaryPreview,
)


class WireModel(BaseModel):
    """Base model mapping snake_case attributes onto camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SalaryCalculationPayload(WireModel):
    """One calculation as returned by list, generate, approve and reopen."""

    id: str = Field(validation_alias=AliasChoices("id", "calculationId"))
    teacher_id: str
    teacher_name: str | None = None
    academic_year_id: str | None = None
    period_start: date
    period_end: date | None = None
    employment_type: EmploymentType | None = None
    base_salary_amount: Decimal = Decimal("0")
    calculated_amount: Decimal
    approved_amount: Decimal | None = None
    status: CalculationStatus
    approved_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    def to_domain(self) -> SalaryCalculation:
        employment_type = self.employment_type or (
            EmploymentType.FULL_TIME if self.base_salary_amount > 0 else EmploymentType.CONTRACT
        )
        approved = self.status is CalculationStatus.APPROVED
        return SalaryCalculation(
            id=self.id,
            teacher_id=self.teacher_id,
            teacher_name=self.teacher_name or None,
            academic_year_id=self.academic_year_id,
            period=PeriodKey.from_date(self.period_start),
            employment_type=employment_type,
            base_salary_amount=self.base_salary_amount,
            calculated_amount=self.calculated_amount,
            approved_amount=self.approved_amount if approved else None,
            last_approved_amount=None if approved else self.approved_amount,
            status=self.status,
            approved_at=self.approved_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class RuleSnapshotPayload(WireModel):
    min_students: int
    rate_per_lesson: Decimal
    effective_from: date


class CalculationItemPayload(WireModel):
    class_id: str
    class_name: str
    lessons_count: int
    active_students: int
    rate_applied: Decimal
    amount: Decimal
    rule_snapshot: RuleSnapshotPayload
    student_count_at_lesson: int | None = None

    def to_domain(self) -> CalculationItem:
        snapshot = self.rule_snapshot
        return CalculationItem(
            class_id=self.class_id,
            class_name=self.class_name,
            lessons_count=self.lessons_count,
            active_students=self.active_students,
            rate_applied=self.rate_applied,
            amount=self.amount,
            rule_snapshot=RuleSnapshot(
                min_students=snapshot.min_students,
                rate_per_lesson=snapshot.rate_per_lesson,
                effective_from=snapshot.effective_from,
            ),
            student_count_at_lesson=self.student_count_at_lesson,
        )


class AuditEntryPayload(WireModel):
    id: str
    action: str
    previous_amount: Decimal | None = None
    new_amount: Decimal | None = None
    reason: str | None = None
    created_at: datetime

    def to_domain(self) -> AuditEntry:
        return AuditEntry(
            id=self.id,
            action=self.action,
            previous_amount=self.previous_amount,
            new_amount=self.new_amount,
            reason=self.reason,
            created_at=self.created_at,
        )


class SalaryCalculationDetailPayload(SalaryCalculationPayload):
    items: list[CalculationItemPayload] = Field(default_factory=list)
    audit_log: list[AuditEntryPayload] = Field(default_factory=list)

    def to_detail(self) -> SalaryCalculationDetail:
        return SalaryCalculationDetail(
            calculation=self.to_domain(),
            items=tuple(item.to_domain() for item in self.items),
            audit_log=tuple(entry.to_domain() for entry in self.audit_log),
        )


class ClassSalaryPreviewPayload(WireModel):
    class_id: str
    class_name: str
    scheduled_lessons: int = Field(ge=0)
    active_students: int = Field(ge=0)
    rate_applied: Decimal
    rate_tier_description: str = ""
    estimated_amount: Decimal
    has_pending_enrollment_changes: bool = False
    pending_enrollments: int = Field(default=0, ge=0)
    pending_withdrawals: int = Field(default=0, ge=0)

    def to_domain(self) -> ClassEstimate:
        return ClassEstimate(
            class_id=self.class_id,
            class_name=self.class_name,
            scheduled_lessons=self.scheduled_lessons,
            active_students=self.active_students,
            rate_applied=self.rate_applied,
            rate_tier_description=self.rate_tier_description,
            estimated_amount=self.estimated_amount,
            has_pending_enrollment_changes=self.has_pending_enrollment_changes,
            pending_enrollments=self.pending_enrollments,
            pending_withdrawals=self.pending_withdrawals,
        )


class TeacherSalaryPreviewPayload(WireModel):
    teacher_id: str
    teacher_name: str | None = None
    year: int
    month: int = Field(ge=1, le=12)
    class_breakdown: list[ClassSalaryPreviewPayload] = Field(default_factory=list)
    total_estimated: Decimal = Decimal("0")
    base_salary_amount: Decimal = Decimal("0")
    employment_type: EmploymentType | None = None
    warnings: list[str] = Field(default_factory=list)
    pending_change_warnings: list[str] = Field(default_factory=list)

    def to_domain(self) -> SalaryPreview:
        return SalaryPreview(
            teacher_id=self.teacher_id,
            teacher_name=self.teacher_name or None,
            period=PeriodKey(self.year, self.month),
            total_estimated=self.total_estimated,
            base_salary_amount=self.base_salary_amount,
            employment_type=self.employment_type,
            class_breakdown=tuple(item.to_domain() for item in self.class_breakdown),
            warnings=tuple(self.warnings),
            pending_change_warnings=tuple(self.pending_change_warnings),
        )


class GenerateSalaryRequest(WireModel):
    period_start: str
    period_end: str


class ApproveSalaryRequest(WireModel):
    approved_amount: Decimal
    adjustment_reason: str | None = None

    @field_serializer("approved_amount")
    def serialize_approved_amount(self, value: Decimal) -> float:
        return float(value)


class ReopenSalaryRequest(WireModel):
    reason: str
