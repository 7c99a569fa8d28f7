"""Service layer entrypoints for the salary workflow."""

from .period_availability import MonthOption, PeriodAvailability
from .salary_calculations import SalaryCalculationService
from .salary_dialogs import (
    ApproveSalaryDialog,
    DialogOutcome,
    GenerateSalaryDialog,
    OutcomeKind,
    PreviewViewState,
    ReopenSalaryDialog,
    SalaryCalculationsTab,
    SalaryPreviewPanel,
    outcome_from_error,
)
from .salary_preview import SalaryPreviewEngine, normalize_preview

__all__ = [
    "ApproveSalaryDialog",
    "DialogOutcome",
    "GenerateSalaryDialog",
    "MonthOption",
    "OutcomeKind",
    "PeriodAvailability",
    "PreviewViewState",
    "ReopenSalaryDialog",
    "SalaryCalculationService",
    "SalaryCalculationsTab",
    "SalaryPreviewEngine",
    "SalaryPreviewPanel",
    "normalize_preview",
    "outcome_from_error",
]
