"""Salary projections for a period that has not been generated yet."""
from __future__ import annotations

import asyncio
from dataclasses import replace
from decimal import Decimal
from typing import Callable

from schoolpay.clients.base import SalaryCalculationApi
from schoolpay.core.log import get_logger, log_context
from schoolpay.domain.salary import (
    NO_CLASSES_WARNING,
    ErrorCode,
    PeriodKey,
    SalaryError,
    SalaryPreview,
    ValidationError,
)

from .period_availability import PeriodAvailability

LOGGER = get_logger(__name__)


def normalize_preview(preview: SalaryPreview) -> SalaryPreview:
    """Make a collaborator preview consistent before it is displayed.

    The estimate total becomes the sum of the breakdown, flagged classes get
    a pending-change warning when the server sent none, and an empty
    breakdown carries the no-classes warning.
    """

    total = sum((item.estimated_amount for item in preview.class_breakdown), Decimal("0"))
    if total != preview.total_estimated:
        LOGGER.warning(
            "Preview total %s for %s does not match class breakdown sum %s",
            preview.total_estimated,
            preview.period,
            total,
        )

    pending = list(preview.pending_change_warnings)
    for item in preview.class_breakdown:
        if not item.has_pending_enrollment_changes:
            continue
        if any(item.class_name in warning for warning in pending):
            continue
        summary = item.pending_summary or "enrollment changes"
        pending.append(f"{item.class_name}: {summary} pending")

    warnings = list(preview.warnings)
    if preview.is_empty and NO_CLASSES_WARNING not in warnings:
        warnings.append(NO_CLASSES_WARNING)

    return replace(
        preview,
        total_estimated=total,
        warnings=tuple(warnings),
        pending_change_warnings=tuple(pending),
    )


class SalaryPreviewEngine:
    """Loads previews for one teacher as the selected period changes.

    Every selection takes a new ticket. A response is only accepted when its
    ticket is still current; the request for a superseded selection is also
    cancelled.
    """

    def __init__(
        self,
        api: SalaryCalculationApi,
        teacher_id: str,
        availability_provider: Callable[[], PeriodAvailability] | None = None,
    ) -> None:
        self._api = api
        self.teacher_id = teacher_id
        self._availability_provider = availability_provider
        self._ticket = 0
        self._task: asyncio.Future[SalaryPreview] | None = None
        self.period: PeriodKey | None = None
        self.current: SalaryPreview | None = None

    @property
    def ticket(self) -> int:
        return self._ticket

    @property
    def is_loading(self) -> bool:
        return self._task is not None and not self._task.done()

    def select(self, period: PeriodKey) -> int:
        """Make ``period`` the current selection and drop any pending request."""

        self._ticket += 1
        self.period = period
        self.current = None
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        return self._ticket

    def is_current(self, ticket: int) -> bool:
        return ticket == self._ticket

    async def load(self) -> SalaryPreview | None:
        """Fetch the preview for the current selection.

        Returns ``None`` when the selection changed while the request was in
        flight. Errors for a superseded selection are dropped the same way.
        """

        period = self.period
        if period is None:
            raise ValidationError("Select a period to preview", field="month")
        ticket = self._ticket

        if self._availability_provider is not None:
            availability = self._availability_provider()
            if availability.is_generated(period.year, period.month):
                raise ValidationError(
                    "A calculation already exists for this period; open it instead",
                    field="month",
                    code=ErrorCode.PERIOD_NOT_SELECTABLE,
                )

        period_start, period_end = period.wire_bounds()
        task = asyncio.ensure_future(self._api.preview(self.teacher_id, period_start, period_end))
        self._task = task
        with log_context.bound(teacher_id=self.teacher_id, period=str(period)):
            try:
                raw = await task
            except asyncio.CancelledError:
                if not self.is_current(ticket):
                    LOGGER.debug("Preview request for %s superseded", period)
                    return None
                raise
            except SalaryError:
                if not self.is_current(ticket):
                    LOGGER.debug("Dropping error for superseded preview of %s", period)
                    return None
                raise
            finally:
                if self._task is task:
                    self._task = None

            if not self.is_current(ticket):
                LOGGER.debug("Discarding stale preview for %s", period)
                return None

            preview = normalize_preview(raw)
            self.current = preview
            LOGGER.debug(
                "Preview for %s: %d class(es), estimate %s",
                period,
                len(preview.class_breakdown),
                preview.total_estimated,
            )
            return preview

    async def change_period(self, period: PeriodKey) -> SalaryPreview | None:
        self.select(period)
        return await self.load()
