"""Client-side state holders."""

from .salary_calculation_store import Operation, SalaryCalculationStore

__all__ = ["Operation", "SalaryCalculationStore"]
