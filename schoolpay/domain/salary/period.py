"""Calendar-month period used as the unit of salary calculation."""
from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date

from schoolpay.core.formatting import format_period


@dataclass(frozen=True, slots=True, order=True)
class PeriodKey:
    """A ``(year, month)`` pair ordered lexicographically."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if isinstance(self.month, bool) or not isinstance(self.month, int):
            raise ValueError(f"month must be an integer, got {self.month!r}")
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be within 1..12, got {self.month}")

    @classmethod
    def from_date(cls, value: date) -> "PeriodKey":
        return cls(year=value.year, month=value.month)

    @classmethod
    def from_iso(cls, value: str) -> "PeriodKey":
        """Parse the ``yyyy-MM-dd`` period start sent by the collaborator.

        Only the calendar fields are read; the string is never interpreted as
        an instant, so no timezone can shift it into the previous month.
        """

        text = str(value).strip()[:10]
        try:
            year_text, month_text, _ = text.split("-")
            return cls(year=int(year_text), month=int(month_text))
        except ValueError as exc:
            raise ValueError(f"Invalid period date {value!r}") from exc

    @property
    def period_start(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def period_end(self) -> date:
        last_day = calendar.monthrange(self.year, self.month)[1]
        return date(self.year, self.month, last_day)

    @property
    def label(self) -> str:
        return format_period(self.year, self.month)

    def wire_bounds(self) -> tuple[str, str]:
        """Return the first and last day as local ``yyyy-MM-dd`` strings."""

        return (
            f"{self.year:04d}-{self.month:02d}-01",
            f"{self.year:04d}-{self.month:02d}-{self.period_end.day:02d}",
        )

    def contains(self, value: date) -> bool:
        return value.year == self.year and value.month == self.month

    def is_future(self, today: date) -> bool:
        """A period is future when it starts after the month containing ``today``."""

        return (self.year, self.month) > (today.year, today.month)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"
