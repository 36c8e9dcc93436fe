"""Target and reference month resolution."""

import calendar
from datetime import date

from pydantic import BaseModel, Field


class ReportPeriod(BaseModel):
    """A calendar month."""

    year: int
    month: int = Field(ge=1, le=12)

    @property
    def month_name(self) -> str:
        return calendar.month_name[self.month]

    @property
    def label(self) -> str:
        return f"{self.month_name} {self.year}"

    def previous(self) -> "ReportPeriod":
        if self.month == 1:
            return ReportPeriod(year=self.year - 1, month=12)
        return ReportPeriod(year=self.year, month=self.month - 1)

    @classmethod
    def parse(cls, value: str) -> "ReportPeriod":
        """Parse a ``YYYY-MM`` string."""
        try:
            year, month = value.split("-")
            return cls(year=int(year), month=int(month))
        except ValueError:
            raise ValueError(f"Expected a YYYY-MM month, got {value!r}")

    @classmethod
    def from_month_name(cls, month_name: str, year: int) -> "ReportPeriod":
        months = list(calendar.month_name)
        if month_name not in months[1:]:
            raise ValueError(f"Unknown month name: {month_name!r}")
        return cls(year=year, month=months.index(month_name))


def resolve_periods(today: date | None = None) -> tuple[ReportPeriod, ReportPeriod]:
    """
    Return (target, reference) for a run on ``today``.

    The target is the previous calendar month and the reference the month
    before that.
    """
    today = today or date.today()
    target = ReportPeriod(year=today.year, month=today.month).previous()
    return target, target.previous()
