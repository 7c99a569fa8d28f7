"""Client-side cache of each teacher's salary calculations."""
from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum

from schoolpay.clients.base import SalaryCalculationApi
from schoolpay.core.log import get_logger
from schoolpay.domain.salary import SalaryCalculation, SalaryError

LOGGER = get_logger(__name__)


class Operation(str, Enum):
    LIST = "list"
    DETAIL = "detail"
    GENERATE = "generate"
    APPROVE = "approve"
    REOPEN = "reopen"


class SalaryCalculationStore:
    """Holds the last server-confirmed calculation set per teacher.

    The set is only ever replaced wholesale by ``refresh``; mutations are
    never patched in locally. A failed refresh keeps the previous set, so a
    view built from it stays intact. Loading flags and the last error are
    tracked per ``(teacher, operation)`` pair.
    """

    def __init__(self, api: SalaryCalculationApi) -> None:
        self._api = api
        self._calculations: dict[str, tuple[SalaryCalculation, ...]] = {}
        self._stale: set[str] = set()
        self._in_flight: set[tuple[str, Operation]] = set()
        self._errors: dict[tuple[str, Operation], SalaryError] = {}

    async def refresh(self, teacher_id: str) -> tuple[SalaryCalculation, ...]:
        """Refetch the full calculation set for ``teacher_id``."""

        with self.tracking(teacher_id, Operation.LIST):
            rows = await self._api.list_calculations(teacher_id)
        calculations = tuple(sorted(rows, key=lambda calculation: calculation.period, reverse=True))
        self._calculations[teacher_id] = calculations
        self._stale.discard(teacher_id)
        LOGGER.debug("Loaded %d calculation(s) for teacher %s", len(calculations), teacher_id)
        return calculations

    async def ensure_loaded(self, teacher_id: str) -> tuple[SalaryCalculation, ...]:
        if self.is_loaded(teacher_id):
            return self._calculations[teacher_id]
        return await self.refresh(teacher_id)

    def invalidate(self, teacher_id: str) -> None:
        """Force the next ``ensure_loaded`` to refetch."""

        self._stale.add(teacher_id)

    def is_loaded(self, teacher_id: str) -> bool:
        return teacher_id in self._calculations and teacher_id not in self._stale

    def calculations(self, teacher_id: str) -> tuple[SalaryCalculation, ...]:
        return self._calculations.get(teacher_id, ())

    def find(self, teacher_id: str, calculation_id: str) -> SalaryCalculation | None:
        return next(
            (
                calculation
                for calculation in self.calculations(teacher_id)
                if calculation.id == calculation_id
            ),
            None,
        )

    def is_loading(self, teacher_id: str, operation: Operation) -> bool:
        return (teacher_id, operation) in self._in_flight

    def error(self, teacher_id: str, operation: Operation) -> SalaryError | None:
        return self._errors.get((teacher_id, operation))

    @contextmanager
    def tracking(self, teacher_id: str, operation: Operation) -> Iterator[None]:
        """Mark ``operation`` as in flight and remember how it failed."""

        key = (teacher_id, operation)
        self._in_flight.add(key)
        self._errors.pop(key, None)
        try:
            yield
        except SalaryError as exc:
            self._errors[key] = exc
            raise
        finally:
            self._in_flight.discard(key)
