"""Interface of the salary computation and persistence collaborator."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Protocol, runtime_checkable

from schoolpay.domain.salary import (
    CalculationStatus,
    SalaryCalculation,
    SalaryCalculationDetail,
    SalaryPreview,
)


@dataclass(frozen=True, slots=True)
class CalculationFilters:
    """Optional filters accepted by the list endpoint."""

    status: CalculationStatus | None = None
    academic_year_id: str | None = None
    from_date: date | None = None
    to_date: date | None = None

    @property
    def is_empty(self) -> bool:
        return (
            self.status is None
            and self.academic_year_id is None
            and self.from_date is None
            and self.to_date is None
        )

    def as_query(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.status is not None:
            params["status"] = self.status.value
        if self.academic_year_id:
            params["academicYearId"] = self.academic_year_id
        if self.from_date is not None:
            params["fromDate"] = self.from_date.isoformat()
        if self.to_date is not None:
            params["toDate"] = self.to_date.isoformat()
        return params

    def matches(self, calculation: SalaryCalculation) -> bool:
        if self.status is not None and calculation.status is not self.status:
            return False
        if self.academic_year_id and calculation.academic_year_id != self.academic_year_id:
            return False
        if self.from_date is not None and calculation.period.period_end < self.from_date:
            return False
        if self.to_date is not None and calculation.period.period_start > self.to_date:
            return False
        return True


@runtime_checkable
class SalaryCalculationApi(Protocol):
    """Remote side of the workflow; it owns amounts and persistence.

    Period bounds are passed as local ``yyyy-MM-dd`` strings. Every method
    raises a ``SalaryError`` subclass on failure.
    """

    async def list_calculations(
        self,
        teacher_id: str,
        filters: CalculationFilters | None = None,
    ) -> list[SalaryCalculation]: ...

    async def get_calculation(
        self, teacher_id: str, calculation_id: str
    ) -> SalaryCalculationDetail: ...

    async def generate(
        self, teacher_id: str, period_start: str, period_end: str
    ) -> SalaryCalculation: ...

    async def approve(
        self,
        teacher_id: str,
        calculation_id: str,
        approved_amount: Decimal,
        adjustment_reason: str | None = None,
    ) -> SalaryCalculation: ...

    async def reopen(
        self, teacher_id: str, calculation_id: str, reason: str
    ) -> SalaryCalculation: ...

    async def preview(
        self, teacher_id: str, period_start: str, period_end: str
    ) -> SalaryPreview: ...
