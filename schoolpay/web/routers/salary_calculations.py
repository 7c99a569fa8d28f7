"""JSON routes behind a teacher's salary tab."""
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from schoolpay.clients import CalculationFilters
from schoolpay.core.log import get_logger
from schoolpay.domain.salary import (
    CalculationStatus,
    ConflictError,
    ErrorCode,
    PeriodKey,
    SalaryError,
)
from schoolpay.schemas.salary_views import (
    ApproveBody,
    CalculationDetailView,
    CalculationView,
    GenerateBody,
    GenerateOptionsView,
    MonthOptionView,
    OutcomeView,
    PreviewView,
    ReopenBody,
)
from schoolpay.services import (
    ApproveSalaryDialog,
    DialogOutcome,
    GenerateSalaryDialog,
    OutcomeKind,
    ReopenSalaryDialog,
    outcome_from_error,
)
from schoolpay.web.dependencies import SalaryRuntime, get_runtime

LOGGER = get_logger(__name__)

router = APIRouter(prefix="/teachers", tags=["salary"])

MIN_YEAR = 2020
MAX_YEAR = 2100

STATUS_BY_KIND: dict[OutcomeKind, int] = {
    OutcomeKind.VALIDATION: 422,
    OutcomeKind.CONFLICT: 409,
    OutcomeKind.NETWORK: 503,
    OutcomeKind.REJECTED: 400,
    OutcomeKind.SKIPPED: 409,
}


def _outcome_response(outcome: DialogOutcome, *, success_status: int = 200) -> JSONResponse:
    status_code = success_status if outcome.success else STATUS_BY_KIND[outcome.kind]
    return JSONResponse(
        status_code=status_code,
        content=OutcomeView.from_domain(outcome).model_dump(mode="json", by_alias=True),
    )


def _error_response(exc: SalaryError) -> JSONResponse:
    return _outcome_response(outcome_from_error(exc))


def _invalid(field: str, message: str) -> JSONResponse:
    return _outcome_response(
        DialogOutcome(
            success=False,
            kind=OutcomeKind.VALIDATION,
            message=message,
            field_errors={field: message},
        )
    )


def _not_found() -> DialogOutcome:
    return outcome_from_error(
        ConflictError("Salary calculation not found", code=ErrorCode.CALCULATION_NOT_FOUND)
    )


@router.get("/{teacher_id}/salary-calculations", response_model=list[CalculationView])
async def list_calculations(
    teacher_id: str,
    status: CalculationStatus | None = None,
    academic_year_id: str | None = Query(default=None, alias="academicYearId"),
    from_date: date | None = Query(default=None, alias="fromDate"),
    to_date: date | None = Query(default=None, alias="toDate"),
    runtime: SalaryRuntime = Depends(get_runtime),
):
    """Return the teacher's calculations, newest period first."""

    filters = CalculationFilters(
        status=status,
        academic_year_id=academic_year_id,
        from_date=from_date,
        to_date=to_date,
    )
    try:
        calculations = await runtime.service.list_calculations(teacher_id, filters)
    except SalaryError as exc:
        return _error_response(exc)
    return [CalculationView.from_domain(calculation) for calculation in calculations]


@router.get(
    "/{teacher_id}/salary-calculations/generate-options",
    response_model=GenerateOptionsView,
)
async def generate_options(
    teacher_id: str,
    year: int | None = Query(default=None, ge=MIN_YEAR, le=MAX_YEAR),
    runtime: SalaryRuntime = Depends(get_runtime),
):
    """Month picker state for the generation dialog."""

    dialog = GenerateSalaryDialog(runtime.service, teacher_id)
    try:
        selection = await dialog.open()
    except SalaryError as exc:
        return _error_response(exc)
    if year is not None and year != selection.year:
        selection = dialog.change_year(year)
    return GenerateOptionsView(
        year=selection.year,
        month=selection.month,
        years=list(dialog.year_options()),
        months=[MonthOptionView.from_domain(option) for option in dialog.month_options()],
        exhausted=dialog.is_exhausted,
    )


@router.post("/{teacher_id}/salary-calculations")
async def generate_calculation(
    teacher_id: str,
    body: GenerateBody,
    runtime: SalaryRuntime = Depends(get_runtime),
) -> JSONResponse:
    if not MIN_YEAR <= body.year <= MAX_YEAR:
        return _invalid("year", f"Year must be between {MIN_YEAR} and {MAX_YEAR}")
    try:
        period = PeriodKey(body.year, body.month)
    except ValueError as exc:
        return _invalid("month", str(exc))
    dialog = GenerateSalaryDialog(runtime.service, teacher_id)
    try:
        await dialog.open()
    except SalaryError as exc:
        return _error_response(exc)
    dialog.change_year(period.year)
    dialog.change_month(period.month)
    outcome = await dialog.submit()
    return _outcome_response(outcome, success_status=201)


@router.get(
    "/{teacher_id}/salary-calculations/{calculation_id}",
    response_model=CalculationDetailView,
)
async def calculation_detail(
    teacher_id: str,
    calculation_id: str,
    runtime: SalaryRuntime = Depends(get_runtime),
):
    try:
        detail = await runtime.service.get_detail(teacher_id, calculation_id)
    except SalaryError as exc:
        return _error_response(exc)
    return CalculationDetailView.from_domain(detail)


@router.post("/{teacher_id}/salary-calculations/{calculation_id}/approve")
async def approve_calculation(
    teacher_id: str,
    calculation_id: str,
    body: ApproveBody,
    runtime: SalaryRuntime = Depends(get_runtime),
) -> JSONResponse:
    service = runtime.service
    try:
        await service.ensure_loaded(teacher_id)
    except SalaryError as exc:
        return _error_response(exc)
    calculation = service.store.find(teacher_id, calculation_id)
    if calculation is None:
        return _outcome_response(_not_found())

    dialog = ApproveSalaryDialog(service, calculation, currency=runtime.currency)
    if body.approved_amount is not None:
        dialog.set_amount(body.approved_amount)
    dialog.set_reason(body.reason or "")
    return _outcome_response(await dialog.submit())


@router.post("/{teacher_id}/salary-calculations/{calculation_id}/reopen")
async def reopen_calculation(
    teacher_id: str,
    calculation_id: str,
    body: ReopenBody,
    runtime: SalaryRuntime = Depends(get_runtime),
) -> JSONResponse:
    service = runtime.service
    try:
        await service.ensure_loaded(teacher_id)
    except SalaryError as exc:
        return _error_response(exc)
    calculation = service.store.find(teacher_id, calculation_id)
    if calculation is None:
        return _outcome_response(_not_found())

    dialog = ReopenSalaryDialog(service, calculation)
    dialog.set_reason(body.reason)
    return _outcome_response(await dialog.submit())


@router.get("/{teacher_id}/salary-preview", response_model=PreviewView)
async def salary_preview(
    teacher_id: str,
    year: int = Query(ge=MIN_YEAR, le=MAX_YEAR),
    month: int = Query(ge=1, le=12),
    runtime: SalaryRuntime = Depends(get_runtime),
):
    """Estimate for a period that has not been generated yet."""

    try:
        await runtime.service.ensure_loaded(teacher_id)
    except SalaryError as exc:
        return _error_response(exc)

    panel = runtime.preview_panel(teacher_id)
    state = await panel.show(PeriodKey(year, month))
    if panel.error is not None:
        return _outcome_response(panel.error)
    if panel.preview is None:
        LOGGER.debug("Preview for %s-%02d superseded by a newer request", year, month)
        return JSONResponse(status_code=409, content={"state": state.value, "superseded": True})
    return PreviewView.from_domain(panel.preview, state.value)
