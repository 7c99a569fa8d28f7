"""Domain model for teacher salary calculations."""

from .calculation import (
    CalculationAction,
    CalculationStatus,
    EmploymentType,
    SalaryCalculation,
    TransitionResult,
    approve,
    new_calculation,
    reopen,
)
from .detail import AuditEntry, CalculationItem, RuleSnapshot, SalaryCalculationDetail
from .errors import (
    ConflictError,
    ErrorCode,
    NetworkError,
    RejectedError,
    SalaryError,
    ValidationError,
)
from .period import PeriodKey
from .preview import NO_CLASSES_WARNING, ClassEstimate, SalaryPreview

__all__ = [
    "NO_CLASSES_WARNING",
    "AuditEntry",
    "CalculationAction",
    "CalculationItem",
    "CalculationStatus",
    "ClassEstimate",
    "ConflictError",
    "EmploymentType",
    "ErrorCode",
    "NetworkError",
    "PeriodKey",
    "RejectedError",
    "RuleSnapshot",
    "SalaryCalculation",
    "SalaryCalculationDetail",
    "SalaryError",
    "SalaryPreview",
    "TransitionResult",
    "ValidationError",
    "approve",
    "new_calculation",
    "reopen",
]
