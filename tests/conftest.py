"""Shared fixtures for the salary workflow tests."""
from __future__ import annotations

import os

# Keep test runs from writing monthly log files into the working tree.
os.environ.setdefault("LOG_DIR", "")
os.environ.setdefault("SALARY_API_BACKEND", "memory")

from datetime import date, datetime, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402
from typing import Callable  # noqa: E402

import pytest  # noqa: E402

from schoolpay.clients import InMemorySalaryApi, TeacherProfile  # noqa: E402
from schoolpay.domain.salary import ClassEstimate, EmploymentType, PeriodKey  # noqa: E402
from schoolpay.services import SalaryCalculationService  # noqa: E402

TODAY = date(2025, 3, 15)
NOW = datetime(2025, 3, 15, 9, 30, tzinfo=timezone.utc)

CONTRACT_TEACHER = "t-ana"
FULL_TIME_TEACHER = "t-marko"


def make_estimate(
    name: str,
    amount: str,
    *,
    lessons: int = 8,
    students: int = 6,
    rate: str = "600",
    pending_enrollments: int = 0,
    pending_withdrawals: int = 0,
) -> ClassEstimate:
    return ClassEstimate(
        class_id=f"class-{name.lower().replace(' ', '-')}",
        class_name=name,
        scheduled_lessons=lessons,
        active_students=students,
        rate_applied=Decimal(rate),
        rate_tier_description=f"{students}+ students",
        estimated_amount=Decimal(amount),
        has_pending_enrollment_changes=bool(pending_enrollments or pending_withdrawals),
        pending_enrollments=pending_enrollments,
        pending_withdrawals=pending_withdrawals,
    )


@pytest.fixture
def estimate() -> Callable[..., ClassEstimate]:
    return make_estimate


@pytest.fixture
def api() -> InMemorySalaryApi:
    """In-memory collaborator with one contract and one full-time teacher."""

    backend = InMemorySalaryApi(today=lambda: TODAY, clock=lambda: NOW, academic_year_id="ay-2024")
    backend.register_teacher(
        TeacherProfile(CONTRACT_TEACHER, "Ana Petrova", EmploymentType.CONTRACT)
    )
    backend.register_teacher(
        TeacherProfile(
            FULL_TIME_TEACHER,
            "Marko Ilievski",
            EmploymentType.FULL_TIME,
            Decimal("30000"),
        )
    )
    for month in (1, 2, 3):
        backend.schedule(
            CONTRACT_TEACHER,
            PeriodKey(2025, month),
            [make_estimate("Business English", "4800")],
        )
    backend.schedule(
        FULL_TIME_TEACHER,
        PeriodKey(2025, 3),
        [make_estimate("Kids Beginners", "2400", lessons=4)],
    )
    return backend


@pytest.fixture
def service(api: InMemorySalaryApi) -> SalaryCalculationService:
    return SalaryCalculationService(api, today=lambda: TODAY)
