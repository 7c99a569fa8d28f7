"""Generate, approve and reopen salary calculations against the collaborator."""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Callable

from schoolpay.clients.base import CalculationFilters, SalaryCalculationApi
from schoolpay.core.log import get_logger, log_context
from schoolpay.domain.salary import (
    ConflictError,
    ErrorCode,
    PeriodKey,
    SalaryCalculation,
    SalaryCalculationDetail,
    SalaryError,
    ValidationError,
)
from schoolpay.domain.salary.calculation import approval_reason, parse_amount, reopen_reason
from schoolpay.repositories.salary_calculation_store import Operation, SalaryCalculationStore

from .period_availability import PeriodAvailability

LOGGER = get_logger(__name__)


class SalaryCalculationService:
    """Lifecycle operations for one store of teacher calculations.

    Input is validated locally before any request is sent. After a
    successful mutation the teacher's calculation set is refetched rather
    than patched; after a conflict it is refetched so the caller sees the
    server's view.
    """

    def __init__(
        self,
        api: SalaryCalculationApi,
        store: SalaryCalculationStore | None = None,
        *,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._api = api
        self.store = store or SalaryCalculationStore(api)
        self._today = today

    def today(self) -> date:
        return self._today()

    async def ensure_loaded(self, teacher_id: str) -> tuple[SalaryCalculation, ...]:
        return await self.store.ensure_loaded(teacher_id)

    async def list_calculations(
        self,
        teacher_id: str,
        filters: CalculationFilters | None = None,
    ) -> tuple[SalaryCalculation, ...]:
        """Return the teacher's calculations, optionally filtered server-side.

        Only the unfiltered set is cached, since availability needs every
        generated period.
        """

        if filters is None or filters.is_empty:
            return await self.store.refresh(teacher_id)
        with self.store.tracking(teacher_id, Operation.LIST):
            rows = await self._api.list_calculations(teacher_id, filters)
        return tuple(sorted(rows, key=lambda calculation: calculation.period, reverse=True))

    async def get_detail(self, teacher_id: str, calculation_id: str) -> SalaryCalculationDetail:
        with self.store.tracking(teacher_id, Operation.DETAIL):
            return await self._api.get_calculation(teacher_id, calculation_id)

    def availability(self, teacher_id: str) -> PeriodAvailability:
        return PeriodAvailability(self.store.calculations(teacher_id), self.today())

    async def generate(self, teacher_id: str, period: PeriodKey) -> SalaryCalculation:
        with log_context.bound(teacher_id=teacher_id, period=str(period)), self.store.tracking(
            teacher_id, Operation.GENERATE
        ):
            await self.store.ensure_loaded(teacher_id)
            availability = self.availability(teacher_id)
            if availability.is_generated(period.year, period.month):
                raise ValidationError(
                    "A calculation already exists for this period",
                    field="month",
                    code=ErrorCode.PERIOD_NOT_SELECTABLE,
                )
            if availability.is_future(period.year, period.month):
                raise ValidationError(
                    "Cannot generate salary for future months",
                    field="month",
                    code=ErrorCode.PERIOD_NOT_SELECTABLE,
                )

            period_start, period_end = period.wire_bounds()
            try:
                created = await self._api.generate(teacher_id, period_start, period_end)
            except ConflictError:
                # Typically another session generated the same month first.
                await self._resync(teacher_id)
                raise

            LOGGER.info("Generated salary calculation %s for %s", created.id, period.label)
            await self._refresh_after_mutation(teacher_id)
            return created

    async def approve(
        self,
        teacher_id: str,
        calculation_id: str,
        approved_amount: object,
        reason: str | None = None,
    ) -> SalaryCalculation:
        with log_context.bound(teacher_id=teacher_id, calculation_id=calculation_id), self.store.tracking(
            teacher_id, Operation.APPROVE
        ):
            amount = parse_amount(approved_amount)
            calculation = await self._require(teacher_id, calculation_id)
            adjustment_reason = approval_reason(calculation.calculated_amount, amount, reason)

            try:
                updated = await self._api.approve(
                    teacher_id, calculation_id, amount, adjustment_reason
                )
            except ConflictError:
                await self._resync(teacher_id)
                raise

            if adjustment_reason is None:
                LOGGER.info("Approved calculation at the calculated amount %s", amount)
            else:
                LOGGER.info(
                    "Approved calculation with adjustment %s -> %s",
                    calculation.calculated_amount,
                    amount,
                )
            await self._refresh_after_mutation(teacher_id)
            return updated

    async def reopen(self, teacher_id: str, calculation_id: str, reason: str | None) -> SalaryCalculation:
        with log_context.bound(teacher_id=teacher_id, calculation_id=calculation_id), self.store.tracking(
            teacher_id, Operation.REOPEN
        ):
            text = reopen_reason(reason)
            await self._require(teacher_id, calculation_id)

            try:
                updated = await self._api.reopen(teacher_id, calculation_id, text)
            except ConflictError:
                await self._resync(teacher_id)
                raise

            LOGGER.info("Reopened calculation")
            await self._refresh_after_mutation(teacher_id)
            return updated

    async def _require(self, teacher_id: str, calculation_id: str) -> SalaryCalculation:
        await self.store.ensure_loaded(teacher_id)
        calculation = self.store.find(teacher_id, calculation_id)
        if calculation is None:
            raise ConflictError(
                "Salary calculation not found", code=ErrorCode.CALCULATION_NOT_FOUND
            )
        return calculation

    async def _refresh_after_mutation(self, teacher_id: str) -> None:
        # The mutation is already committed; a failed refetch only marks the cache stale.
        try:
            await self.store.refresh(teacher_id)
        except SalaryError as exc:
            LOGGER.warning("Could not refresh calculations after mutation: %s", exc.message)
            self.store.invalidate(teacher_id)

    async def _resync(self, teacher_id: str) -> None:
        try:
            await self.store.refresh(teacher_id)
        except SalaryError as exc:
            LOGGER.warning("Resync after conflict failed: %s", exc.message)
            self.store.invalidate(teacher_id)


def payout_total(calculations: tuple[SalaryCalculation, ...]) -> Decimal:
    """Sum of authoritative payouts; reopened and pending rows contribute nothing."""

    return sum(
        (calculation.payout_amount for calculation in calculations if calculation.payout_amount is not None),
        Decimal("0"),
    )
