"""Which calendar months may be chosen for a new salary generation."""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from schoolpay.core.formatting import month_name
from schoolpay.domain.salary import PeriodKey, SalaryCalculation

_ALL_MONTHS = range(1, 13)


@dataclass(frozen=True, slots=True)
class MonthOption:
    """One entry of the month picker."""

    month: int
    label: str
    generated: bool
    future: bool

    @property
    def selectable(self) -> bool:
        return not self.generated and not self.future


class PeriodAvailability:
    """Advisory month gating for one teacher, evaluated against ``today``.

    A month is selectable when no calculation exists for it and it is not in
    the future. The server remains the authority and rejects anything this
    class lets through by mistake.
    """

    def __init__(
        self,
        existing: Iterable[SalaryCalculation | PeriodKey],
        today: date,
    ) -> None:
        self._periods = frozenset(
            item.period if isinstance(item, SalaryCalculation) else item for item in existing
        )
        self.today = today

    @property
    def current_year(self) -> int:
        return self.today.year

    @property
    def current_month(self) -> int:
        return self.today.month

    def generated_months(self, year: int) -> frozenset[int]:
        return frozenset(period.month for period in self._periods if period.year == year)

    def is_generated(self, year: int, month: int) -> bool:
        return PeriodKey(year, month) in self._periods

    def is_future(self, year: int, month: int) -> bool:
        if year > self.current_year:
            return True
        return year == self.current_year and month > self.current_month

    def is_selectable(self, year: int, month: int) -> bool:
        return not self.is_generated(year, month) and not self.is_future(year, month)

    def max_month(self, year: int) -> int:
        """Last month of ``year`` that is not in the future (0 for future years)."""

        if year > self.current_year:
            return 0
        return self.current_month if year == self.current_year else 12

    def first_selectable_month(self, year: int) -> int:
        """Preferred month to offer for ``year``.

        The current month wins when it is selectable, then the lowest free
        month up to ``max_month``. When nothing is free the current month is
        returned and the caller must treat the year as exhausted.
        """

        generated = self.generated_months(year)
        limit = self.max_month(year)
        if self.current_month <= limit and self.current_month not in generated:
            return self.current_month
        for month in range(1, limit + 1):
            if month not in generated:
                return month
        return self.current_month

    def is_year_exhausted(self, year: int) -> bool:
        generated = self.generated_months(year)
        return all(month in generated for month in range(1, self.max_month(year) + 1))

    def default_selection(self) -> PeriodKey:
        """Selection used when the generation dialog opens."""

        year = self.current_year
        if not self.is_generated(year, self.current_month):
            return PeriodKey(year, self.current_month)
        return PeriodKey(year, self.first_selectable_month(year))

    def reselect(self, month: int, year: int) -> PeriodKey:
        """Selection after switching to ``year`` with ``month`` chosen.

        The chosen month is kept unless it is generated or in the future for
        the new year.
        """

        if 1 <= month <= 12 and self.is_selectable(year, month):
            return PeriodKey(year, month)
        return PeriodKey(year, self.first_selectable_month(year))

    def month_options(self, year: int) -> list[MonthOption]:
        generated = self.generated_months(year)
        return [
            MonthOption(
                month=month,
                label=month_name(month),
                generated=month in generated,
                future=self.is_future(year, month),
            )
            for month in _ALL_MONTHS
        ]

    def year_options(self) -> tuple[int, ...]:
        return (self.current_year, self.current_year - 1)
