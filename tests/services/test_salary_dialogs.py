import asyncio
from decimal import Decimal

from schoolpay.domain.salary import (
    CalculationAction,
    CalculationStatus,
    NetworkError,
    PeriodKey,
)
from schoolpay.services import (
    ApproveSalaryDialog,
    GenerateSalaryDialog,
    OutcomeKind,
    PreviewViewState,
    ReopenSalaryDialog,
    SalaryCalculationsTab,
    SalaryPreviewEngine,
    SalaryPreviewPanel,
)

ANA = "t-ana"
MARCH = PeriodKey(2025, 3)


def _generated(service, period: PeriodKey = MARCH):
    return asyncio.run(service.generate(ANA, period))


def test_generate_dialog_defaults_and_success(service) -> None:
    dialog = GenerateSalaryDialog(service, ANA)

    assert asyncio.run(dialog.open()) == MARCH
    assert dialog.is_open
    assert dialog.year_options() == (2025, 2024)
    assert dialog.can_submit

    outcome = asyncio.run(dialog.submit())

    assert outcome.success
    assert outcome.message == "Successfully generated calculation for March 2025"
    assert outcome.calculation.period == MARCH
    assert not dialog.is_open

    # Next time the lowest free month is offered instead of the generated March.
    assert asyncio.run(GenerateSalaryDialog(service, ANA).open()) == PeriodKey(2025, 1)


def test_generate_dialog_blocks_generated_month(service) -> None:
    _generated(service)
    dialog = GenerateSalaryDialog(service, ANA)
    asyncio.run(dialog.open())

    dialog.change_month(3)
    assert not dialog.can_submit
    outcome = asyncio.run(dialog.submit())

    assert not outcome.success
    assert outcome.kind is OutcomeKind.VALIDATION
    assert "month" in outcome.field_errors
    assert dialog.is_open


def test_generate_dialog_year_switch(service) -> None:
    dialog = GenerateSalaryDialog(service, ANA)
    asyncio.run(dialog.open())

    assert dialog.change_year(2024) == PeriodKey(2024, 3)
    dialog.change_month(11)
    assert dialog.change_year(2025) == MARCH
    assert not dialog.is_exhausted


def test_generate_dialog_exhausted_year(service) -> None:
    for month in (1, 2, 3):
        _generated(service, PeriodKey(2025, month))
    dialog = GenerateSalaryDialog(service, ANA)
    asyncio.run(dialog.open())

    assert dialog.is_exhausted
    assert not dialog.can_submit
    assert not any(option.selectable for option in dialog.month_options())


def test_double_submit_is_ignored(service, api) -> None:
    original = api.generate

    async def scenario():
        gate = asyncio.Event()

        async def slow_generate(*args):
            await gate.wait()
            return await original(*args)

        api.generate = slow_generate
        dialog = GenerateSalaryDialog(service, ANA)
        await dialog.open()
        first = asyncio.create_task(dialog.submit())
        await asyncio.sleep(0)
        second = await dialog.submit()
        gate.set()
        return await first, second

    first, second = asyncio.run(scenario())

    assert first.success
    assert second.skipped
    assert len(service.store.calculations(ANA)) == 1


def test_generate_rejection_becomes_banner(service) -> None:
    dialog = GenerateSalaryDialog(service, ANA)
    asyncio.run(dialog.open())
    dialog.change_year(2024)
    dialog.change_month(12)

    outcome = asyncio.run(dialog.submit())

    assert outcome.kind is OutcomeKind.REJECTED
    assert outcome.banner == "No conducted lessons found for the period"
    assert not outcome.retryable


def test_approve_dialog_adjustment_flow(service) -> None:
    calculation = _generated(service)
    dialog = ApproveSalaryDialog(service, calculation)

    assert dialog.amount == Decimal("4800")
    assert not dialog.requires_reason

    dialog.set_amount("4500")
    assert dialog.requires_reason
    assert dialog.difference == Decimal("-300")

    refused = asyncio.run(dialog.submit())
    assert refused.kind is OutcomeKind.VALIDATION
    assert "reason" in refused.field_errors

    dialog.set_reason("One lesson cancelled by school")
    outcome = asyncio.run(dialog.submit())

    assert outcome.success
    assert outcome.message == "Successfully approved calculation for 4,500.00 MKD"
    assert outcome.calculation.approved_amount == Decimal("4500")


def test_approve_dialog_invalid_amount(service) -> None:
    dialog = ApproveSalaryDialog(service, _generated(service))
    dialog.set_amount("-10")

    assert not dialog.requires_reason
    assert dialog.difference is None
    outcome = asyncio.run(dialog.submit())
    assert outcome.field_errors == {"approved_amount": "Approved amount cannot be negative"}


def test_approve_dialog_network_failure_is_retryable(service, api) -> None:
    calculation = _generated(service)

    async def _down(*args, **kwargs):
        raise NetworkError("The salary service did not respond in time")

    api.approve = _down

    outcome = asyncio.run(ApproveSalaryDialog(service, calculation).submit())

    assert outcome.kind is OutcomeKind.NETWORK
    assert outcome.retryable
    assert outcome.banner == "The salary service did not respond in time"
    assert service.store.find(ANA, calculation.id).status is CalculationStatus.PENDING


def test_approve_dialog_message_without_payout_in_response(service) -> None:
    calculation = _generated(service)

    async def _still_pending(*args, **kwargs):
        return calculation

    service.approve = _still_pending
    dialog = ApproveSalaryDialog(service, calculation)

    outcome = asyncio.run(dialog.submit())

    assert outcome.success
    assert outcome.message == "Successfully approved calculation for 4,800.00 MKD"


def test_reopen_dialog(service) -> None:
    calculation = _generated(service)
    asyncio.run(service.approve(ANA, calculation.id, "4800"))
    approved = service.store.find(ANA, calculation.id)
    dialog = ReopenSalaryDialog(service, approved)

    dialog.set_reason("short")
    assert "reason" in asyncio.run(dialog.submit()).field_errors

    dialog.set_reason("Attendance sheet was corrected")
    outcome = asyncio.run(dialog.submit())

    assert outcome.success
    assert outcome.message == "Calculation for March 2025 reopened"


def test_reopen_dialog_conflict_on_stale_row(service) -> None:
    calculation = _generated(service)
    dialog = ReopenSalaryDialog(service, calculation)
    dialog.set_reason("Attendance sheet was corrected")

    outcome = asyncio.run(dialog.submit())

    assert outcome.kind is OutcomeKind.CONFLICT
    assert outcome.code == "cannot_reopen_non_approved"


def test_tab_rows_and_actions(service) -> None:
    first = _generated(service, PeriodKey(2025, 1))
    _generated(service)
    asyncio.run(service.approve(ANA, first.id, "4800"))
    tab = SalaryCalculationsTab(service, ANA)

    outcome = asyncio.run(tab.load())

    assert outcome.success
    assert [row.period_label for row in tab.rows] == ["March 2025", "January 2025"]
    assert [row.status_label for row in tab.rows] == ["Pending", "Approved"]
    assert tab.rows[0].actions == (CalculationAction.APPROVE,)
    assert tab.rows[1].actions == (CalculationAction.REOPEN,)
    assert tab.rows[1].payout_amount == Decimal("4800")
    assert tab.rows[0].payout_amount is None
    assert tab.total_payout == Decimal("4800")
    assert isinstance(tab.approve_dialog(tab.rows[0].id), ApproveSalaryDialog)
    assert isinstance(tab.reopen_dialog(tab.rows[1].id), ReopenSalaryDialog)


def test_tab_keeps_rows_when_refresh_fails(service, api) -> None:
    _generated(service)
    tab = SalaryCalculationsTab(service, ANA)
    asyncio.run(tab.load())

    async def _down(*args, **kwargs):
        raise NetworkError("connection refused")

    api.list_calculations = _down
    outcome = asyncio.run(tab.load())

    assert outcome.kind is OutcomeKind.NETWORK
    assert tab.error is outcome
    assert len(tab.rows) == 1


def test_preview_panel_states(service, api, estimate) -> None:
    api.schedule(ANA, PeriodKey(2025, 4), [estimate("Business English", "4800")])
    asyncio.run(service.ensure_loaded(ANA))
    _generated(service)
    panel = SalaryPreviewPanel(
        SalaryPreviewEngine(api, ANA, availability_provider=lambda: service.availability(ANA))
    )

    assert panel.state is PreviewViewState.IDLE
    assert asyncio.run(panel.show(PeriodKey(2025, 4))) is PreviewViewState.READY
    assert panel.preview.grand_total == Decimal("4800")
    assert asyncio.run(panel.show(PeriodKey(2025, 5))) is PreviewViewState.EMPTY
    assert panel.preview.grand_total is None
    assert asyncio.run(panel.show(MARCH)) is PreviewViewState.ERROR
    assert panel.error.kind is OutcomeKind.VALIDATION


def test_preview_panel_retry_after_network_error(api) -> None:
    original = api.preview
    calls = []

    async def flaky_preview(*args):
        calls.append(args)
        if len(calls) == 1:
            raise NetworkError("connection reset")
        return await original(*args)

    api.preview = flaky_preview
    panel = SalaryPreviewPanel(SalaryPreviewEngine(api, ANA))

    assert asyncio.run(panel.show(PeriodKey(2025, 2))) is PreviewViewState.ERROR
    assert panel.can_retry
    assert panel.error.retryable

    assert asyncio.run(panel.retry()) is PreviewViewState.READY
    assert panel.error is None
    assert len(calls) == 2
