"""Presentation-side use cases behind the salary tab and its dialogs.

Each dialog keeps its own form state, delegates to ``SalaryCalculationService``
and turns any ``SalaryError`` into a ``DialogOutcome`` so that a failure never
escapes into the caller's event loop.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from schoolpay.clients.base import CalculationFilters
from schoolpay.core.formatting import format_amount
from schoolpay.core.log import get_logger
from schoolpay.domain.salary import (
    CalculationAction,
    ConflictError,
    NetworkError,
    PeriodKey,
    SalaryCalculation,
    SalaryError,
    SalaryPreview,
    ValidationError,
)
from schoolpay.domain.salary.calculation import parse_amount
from schoolpay.repositories.salary_calculation_store import Operation

from .period_availability import MonthOption, PeriodAvailability
from .salary_calculations import SalaryCalculationService, payout_total
from .salary_preview import SalaryPreviewEngine

LOGGER = get_logger(__name__)


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    NETWORK = "network"
    REJECTED = "rejected"


@dataclass(frozen=True)
class DialogOutcome:
    """Result of a dialog submit as the UI should render it."""

    success: bool
    kind: OutcomeKind
    message: str | None = None
    field_errors: dict[str, str] = field(default_factory=dict)
    banner: str | None = None
    retryable: bool = False
    code: str | None = None
    calculation: SalaryCalculation | None = None

    @property
    def skipped(self) -> bool:
        return self.kind is OutcomeKind.SKIPPED

    @classmethod
    def succeeded(cls, message: str, calculation: SalaryCalculation | None = None) -> "DialogOutcome":
        return cls(success=True, kind=OutcomeKind.SUCCESS, message=message, calculation=calculation)

    @classmethod
    def ignored(cls) -> "DialogOutcome":
        return cls(success=False, kind=OutcomeKind.SKIPPED, message="Request already in progress")


def outcome_from_error(exc: SalaryError) -> DialogOutcome:
    """Map a workflow error to what the dialog displays."""

    if isinstance(exc, ValidationError):
        if exc.field:
            return DialogOutcome(
                success=False,
                kind=OutcomeKind.VALIDATION,
                message=exc.message,
                field_errors={exc.field: exc.message},
                code=exc.code,
            )
        return DialogOutcome(
            success=False,
            kind=OutcomeKind.VALIDATION,
            message=exc.message,
            banner=exc.message,
            code=exc.code,
        )
    if isinstance(exc, ConflictError):
        kind = OutcomeKind.CONFLICT
    elif isinstance(exc, NetworkError):
        kind = OutcomeKind.NETWORK
    else:
        kind = OutcomeKind.REJECTED
    return DialogOutcome(
        success=False,
        kind=kind,
        message=exc.message,
        banner=exc.message,
        retryable=exc.retryable,
        code=exc.code,
    )


class GenerateSalaryDialog:
    """Month/year picker that creates a new calculation."""

    def __init__(self, service: SalaryCalculationService, teacher_id: str) -> None:
        self._service = service
        self.teacher_id = teacher_id
        self.is_open = False
        self.selection: PeriodKey | None = None
        self._availability: PeriodAvailability | None = None

    @property
    def availability(self) -> PeriodAvailability:
        if self._availability is None:
            self._availability = self._service.availability(self.teacher_id)
        return self._availability

    async def open(self) -> PeriodKey:
        await self._service.ensure_loaded(self.teacher_id)
        self._availability = self._service.availability(self.teacher_id)
        self.selection = self._availability.default_selection()
        self.is_open = True
        return self.selection

    def close(self) -> None:
        self.is_open = False

    def change_year(self, year: int) -> PeriodKey:
        month = self.selection.month if self.selection else self.availability.current_month
        self.selection = self.availability.reselect(month, year)
        return self.selection

    def change_month(self, month: int) -> PeriodKey:
        year = self.selection.year if self.selection else self.availability.current_year
        self.selection = PeriodKey(year, month)
        return self.selection

    def month_options(self) -> list[MonthOption]:
        year = self.selection.year if self.selection else self.availability.current_year
        return self.availability.month_options(year)

    def year_options(self) -> tuple[int, ...]:
        return self.availability.year_options()

    @property
    def is_exhausted(self) -> bool:
        """True when no month of the selected year can be generated."""

        year = self.selection.year if self.selection else self.availability.current_year
        return self.availability.is_year_exhausted(year)

    @property
    def can_submit(self) -> bool:
        if self.selection is None or self.is_exhausted:
            return False
        return self.availability.is_selectable(self.selection.year, self.selection.month)

    async def submit(self) -> DialogOutcome:
        if self._service.store.is_loading(self.teacher_id, Operation.GENERATE):
            return DialogOutcome.ignored()
        if self.selection is None:
            return outcome_from_error(ValidationError("Select a month", field="month"))

        period = self.selection
        try:
            created = await self._service.generate(self.teacher_id, period)
        except SalaryError as exc:
            LOGGER.info("Generation for %s failed: %s", period, exc.message)
            self._availability = self._service.availability(self.teacher_id)
            return outcome_from_error(exc)

        self._availability = None
        self.close()
        return DialogOutcome.succeeded(
            f"Successfully generated calculation for {period.label}", created
        )


class ApproveSalaryDialog:
    """Commits the payout, optionally adjusted with a reason."""

    def __init__(
        self,
        service: SalaryCalculationService,
        calculation: SalaryCalculation,
        *,
        currency: str = "MKD",
    ) -> None:
        self._service = service
        self.calculation = calculation
        self.currency = currency
        self.amount: object = calculation.calculated_amount
        self.reason = ""

    @property
    def requires_reason(self) -> bool:
        """Whether the reason field is shown; only for an adjusted amount."""

        try:
            amount = parse_amount(self.amount)
        except ValidationError:
            return False
        return amount != self.calculation.calculated_amount

    @property
    def difference(self) -> Decimal | None:
        try:
            return parse_amount(self.amount) - self.calculation.calculated_amount
        except ValidationError:
            return None

    def set_amount(self, value: object) -> None:
        self.amount = value

    def set_reason(self, value: str) -> None:
        self.reason = value

    async def submit(self) -> DialogOutcome:
        teacher_id = self.calculation.teacher_id
        if self._service.store.is_loading(teacher_id, Operation.APPROVE):
            return DialogOutcome.ignored()
        try:
            updated = await self._service.approve(
                teacher_id,
                self.calculation.id,
                self.amount,
                self.reason if self.requires_reason else None,
            )
        except SalaryError as exc:
            return outcome_from_error(exc)

        amount = updated.payout_amount
        if amount is None:
            LOGGER.warning("Approved calculation %s came back without a payout", updated.id)
            amount = parse_amount(self.amount)
        return DialogOutcome.succeeded(
            f"Successfully approved calculation for {format_amount(amount, self.currency)}",
            updated,
        )


class ReopenSalaryDialog:
    """Returns an approved calculation to a revisable state."""

    def __init__(self, service: SalaryCalculationService, calculation: SalaryCalculation) -> None:
        self._service = service
        self.calculation = calculation
        self.reason = ""

    def set_reason(self, value: str) -> None:
        self.reason = value

    async def submit(self) -> DialogOutcome:
        teacher_id = self.calculation.teacher_id
        if self._service.store.is_loading(teacher_id, Operation.REOPEN):
            return DialogOutcome.ignored()
        try:
            updated = await self._service.reopen(teacher_id, self.calculation.id, self.reason)
        except SalaryError as exc:
            return outcome_from_error(exc)
        return DialogOutcome.succeeded(
            f"Calculation for {updated.period.label} reopened", updated
        )


@dataclass(frozen=True, slots=True)
class CalculationRow:
    id: str
    period: PeriodKey
    period_label: str
    status: str
    status_label: str
    employment_label: str
    calculated_amount: Decimal
    approved_amount: Decimal | None
    last_approved_amount: Decimal | None
    payout_amount: Decimal | None
    actions: tuple[CalculationAction, ...]

    @classmethod
    def from_calculation(cls, calculation: SalaryCalculation) -> "CalculationRow":
        return cls(
            id=calculation.id,
            period=calculation.period,
            period_label=calculation.period.label,
            status=calculation.status.value,
            status_label=calculation.status.label,
            employment_label=calculation.employment_type.label,
            calculated_amount=calculation.calculated_amount,
            approved_amount=calculation.approved_amount,
            last_approved_amount=calculation.last_approved_amount,
            payout_amount=calculation.payout_amount,
            actions=calculation.allowed_actions,
        )


class SalaryCalculationsTab:
    """List of a teacher's calculations and the entry point to the dialogs."""

    def __init__(
        self,
        service: SalaryCalculationService,
        teacher_id: str,
        *,
        currency: str = "MKD",
    ) -> None:
        self._service = service
        self.teacher_id = teacher_id
        self.currency = currency
        self.rows: list[CalculationRow] = []
        self.error: DialogOutcome | None = None

    @property
    def is_loading(self) -> bool:
        return self._service.store.is_loading(self.teacher_id, Operation.LIST)

    @property
    def total_payout(self) -> Decimal:
        return payout_total(self._service.store.calculations(self.teacher_id))

    async def load(self, filters: CalculationFilters | None = None) -> DialogOutcome:
        try:
            calculations = await self._service.list_calculations(self.teacher_id, filters)
        except SalaryError as exc:
            # Rows from the last successful load stay on screen.
            self.error = outcome_from_error(exc)
            return self.error
        self.error = None
        self.rows = [CalculationRow.from_calculation(calculation) for calculation in calculations]
        return DialogOutcome.succeeded(f"{len(self.rows)} calculation(s)")

    def _calculation(self, calculation_id: str) -> SalaryCalculation:
        calculation = self._service.store.find(self.teacher_id, calculation_id)
        if calculation is None:
            raise KeyError(calculation_id)
        return calculation

    def generate_dialog(self) -> GenerateSalaryDialog:
        return GenerateSalaryDialog(self._service, self.teacher_id)

    def approve_dialog(self, calculation_id: str) -> ApproveSalaryDialog:
        return ApproveSalaryDialog(
            self._service, self._calculation(calculation_id), currency=self.currency
        )

    def reopen_dialog(self, calculation_id: str) -> ReopenSalaryDialog:
        return ReopenSalaryDialog(self._service, self._calculation(calculation_id))


class PreviewViewState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    EMPTY = "empty"
    ERROR = "error"


class SalaryPreviewPanel:
    """View state around ``SalaryPreviewEngine`` with a retry affordance."""

    def __init__(self, engine: SalaryPreviewEngine) -> None:
        self.engine = engine
        self.state = PreviewViewState.IDLE
        self.preview: SalaryPreview | None = None
        self.error: DialogOutcome | None = None

    @property
    def can_retry(self) -> bool:
        return self.state is PreviewViewState.ERROR and self.engine.period is not None

    async def show(self, period: PeriodKey) -> PreviewViewState:
        self.engine.select(period)
        return await self._load()

    async def retry(self) -> PreviewViewState:
        if self.engine.period is None:
            return self.state
        self.engine.select(self.engine.period)
        return await self._load()

    async def _load(self) -> PreviewViewState:
        ticket = self.engine.ticket
        self.state = PreviewViewState.LOADING
        self.preview = None
        self.error = None
        try:
            preview = await self.engine.load()
        except SalaryError as exc:
            self.state = PreviewViewState.ERROR
            self.error = outcome_from_error(exc)
            return self.state
        if preview is None or not self.engine.is_current(ticket):
            # A newer selection owns the panel now.
            return self.state
        self.preview = preview
        self.state = PreviewViewState.EMPTY if preview.is_empty else PreviewViewState.READY
        return self.state
