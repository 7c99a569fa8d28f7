import asyncio
from datetime import date
from decimal import Decimal

import pytest

from schoolpay.domain.salary import (
    NO_CLASSES_WARNING,
    EmploymentType,
    PeriodKey,
    SalaryPreview,
    ValidationError,
)
from schoolpay.services import PeriodAvailability, SalaryPreviewEngine, normalize_preview

ANA = "t-ana"
APRIL = PeriodKey(2025, 4)
MAY = PeriodKey(2025, 5)


class _GatedPreviewApi:
    """Preview collaborator whose responses are released by the test."""

    def __init__(self) -> None:
        self._gates: dict[str, asyncio.Event] = {}
        self.requested: list[str] = []

    def _gate(self, period_start: str) -> asyncio.Event:
        return self._gates.setdefault(period_start, asyncio.Event())

    def release(self, period: PeriodKey) -> None:
        self._gate(period.wire_bounds()[0]).set()

    async def preview(self, teacher_id: str, period_start: str, period_end: str) -> SalaryPreview:
        self.requested.append(period_start)
        await self._gate(period_start).wait()
        return SalaryPreview(
            teacher_id=teacher_id,
            period=PeriodKey.from_iso(period_start),
            total_estimated=Decimal("0"),
        )


def test_superseded_preview_is_discarded() -> None:
    async def scenario():
        api = _GatedPreviewApi()
        engine = SalaryPreviewEngine(api, ANA)

        first = asyncio.create_task(engine.change_period(APRIL))
        await asyncio.sleep(0)
        second = asyncio.create_task(engine.change_period(MAY))
        await asyncio.sleep(0)
        api.release(APRIL)
        api.release(MAY)

        return engine, await first, await second

    engine, first, second = asyncio.run(scenario())

    assert first is None
    assert second is not None and second.period == MAY
    assert engine.current is second
    assert not engine.is_loading


def test_late_response_for_old_ticket_is_ignored() -> None:
    async def scenario():
        api = _GatedPreviewApi()
        engine = SalaryPreviewEngine(api, ANA)
        engine.select(APRIL)
        pending = asyncio.create_task(engine.load())
        await asyncio.sleep(0)
        engine.select(MAY)
        api.release(APRIL)
        return engine, await pending

    engine, result = asyncio.run(scenario())

    assert result is None
    assert engine.current is None
    assert engine.period == MAY


def test_generated_period_cannot_be_previewed(api) -> None:
    availability = PeriodAvailability([PeriodKey(2025, 3)], date(2025, 3, 15))
    engine = SalaryPreviewEngine(api, ANA, availability_provider=lambda: availability)

    with pytest.raises(ValidationError) as excinfo:
        asyncio.run(engine.change_period(PeriodKey(2025, 3)))

    assert excinfo.value.field == "month"


def test_load_requires_selection(api) -> None:
    with pytest.raises(ValidationError):
        asyncio.run(SalaryPreviewEngine(api, ANA).load())


def test_preview_from_collaborator(api, estimate) -> None:
    api.schedule(
        ANA,
        APRIL,
        [
            estimate("Business English", "4800", pending_enrollments=2, pending_withdrawals=1),
            estimate("Evening Conversation", "0", students=0),
        ],
    )
    engine = SalaryPreviewEngine(api, ANA)

    preview = asyncio.run(engine.change_period(APRIL))

    assert preview.total_estimated == Decimal("4800")
    assert preview.employment_type is EmploymentType.CONTRACT
    assert [item.class_name for item in preview.class_breakdown] == [
        "Business English",
        "Evening Conversation",
    ]
    assert preview.warnings == ("Evening Conversation skipped (0 students)",)
    assert preview.pending_change_warnings == (
        "Business English: +2 enrollments, -1 withdrawal pending",
    )


def test_empty_preview_gets_warning_and_no_total(api) -> None:
    preview = asyncio.run(SalaryPreviewEngine(api, ANA).change_period(MAY))

    assert preview.is_empty
    assert preview.grand_total is None
    assert NO_CLASSES_WARNING in preview.warnings


def test_normalize_replaces_mismatched_total(estimate) -> None:
    raw = SalaryPreview(
        teacher_id=ANA,
        period=APRIL,
        total_estimated=Decimal("9999"),
        class_breakdown=(estimate("Business English", "4800"), estimate("Kids", "1200")),
    )

    assert normalize_preview(raw).total_estimated == Decimal("6000")


def test_normalize_keeps_server_pending_warnings(estimate) -> None:
    raw = SalaryPreview(
        teacher_id=ANA,
        period=APRIL,
        total_estimated=Decimal("4800"),
        class_breakdown=(estimate("Business English", "4800", pending_enrollments=1),),
        pending_change_warnings=("Business English has 1 pending enrollment",),
    )

    assert normalize_preview(raw).pending_change_warnings == (
        "Business English has 1 pending enrollment",
    )
