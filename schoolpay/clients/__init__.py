"""Collaborators that compute and persist salary calculations."""

from .base import CalculationFilters, SalaryCalculationApi
from .in_memory import InMemorySalaryApi, TeacherProfile
from .salary_api import SalaryApiClient, SalaryApiPaths

__all__ = [
    "CalculationFilters",
    "InMemorySalaryApi",
    "SalaryApiClient",
    "SalaryApiPaths",
    "SalaryCalculationApi",
    "TeacherProfile",
]
