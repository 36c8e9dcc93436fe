"""Report pipeline data models."""

import datetime as dt
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from src.core.spreadsheet import coerce_date, coerce_time

# Monday-first display order
WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
WEEKEND_DAYS = {"Saturday", "Sunday"}
HOURS = list(range(24))

CountTable = dict[int | str, int]


class PipelineStatus(str, Enum):
    """Pipeline lifecycle states."""

    IDLE = "idle"
    STAGE_ONE_RUNNING = "stage_one_running"
    STAGE_ONE_COMPLETE = "stage_one_complete"
    STAGE_TWO_RUNNING = "stage_two_running"
    DONE = "done"
    FAILED = "failed"


class RawLogRow(BaseModel):
    """One recorded chat turn."""

    session_id: str | int | float | None = None
    date: dt.date
    time: dt.time

    @field_validator("date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> dt.date:
        return coerce_date(value)

    @field_validator("time", mode="before")
    @classmethod
    def _coerce_time(cls, value: Any) -> dt.time:
        return coerce_time(value)

    @property
    def timestamp(self) -> dt.datetime:
        """Calendar fields from the date, clock fields from the time."""
        return dt.datetime.combine(self.date, self.time.replace(tzinfo=None))


class SessionRecord(BaseModel):
    """First turn of a distinct session, enriched with time attributes."""

    session_id: str | int | float | None
    timestamp: dt.datetime
    hour: int
    weekday: str
    weekday_index: int  # 0 = Sunday
    is_weekend: bool

    @classmethod
    def from_row(cls, row: RawLogRow) -> "SessionRecord":
        ts = row.timestamp
        weekday = WEEKDAYS[ts.weekday()]
        return cls(
            session_id=row.session_id,
            timestamp=ts,
            hour=ts.hour,
            weekday=weekday,
            weekday_index=(ts.weekday() + 1) % 7,
            is_weekend=weekday in WEEKEND_DAYS,
        )


class PeakTrough(BaseModel):
    """Busiest and quietest weekdays."""

    peak_days: list[str]
    peak_count: int
    trough_day: str
    trough_count: int

    @property
    def peak_label(self) -> str:
        return join_days(self.peak_days)


class PeriodMetrics(BaseModel):
    """Engagement metrics for one month."""

    month_name: str
    year: int
    total_questions: int = 0
    total_sessions: int = 0
    weekday_total: int = 0
    weekend_total: int = 0
    daily_counts: dict[str, int] = Field(default_factory=lambda: {day: 0 for day in WEEKDAYS})
    hourly_counts: dict[int, int] = Field(default_factory=lambda: {hour: 0 for hour in HOURS})

    @field_validator("daily_counts")
    @classmethod
    def _all_weekdays(cls, value: dict[str, int]) -> dict[str, int]:
        if set(value) != set(WEEKDAYS):
            raise ValueError(f"daily counts must hold exactly {', '.join(WEEKDAYS)}")
        return {day: value[day] for day in WEEKDAYS}

    @field_validator("hourly_counts")
    @classmethod
    def _all_hours(cls, value: dict[int, int]) -> dict[int, int]:
        if set(value) != set(HOURS):
            raise ValueError("hourly counts must hold exactly hours 0-23")
        return {hour: value[hour] for hour in HOURS}

    @property
    def label(self) -> str:
        return f"{self.month_name} {self.year}"


class StageResult(BaseModel):
    """Outcome of a pipeline stage run."""

    stage: str
    status: PipelineStatus
    period: str
    total_questions: int
    total_sessions: int
    locations: list[str] = []
    warnings: list[str] = []

    class Config:
        use_enum_values = True


def join_days(days: list[str]) -> str:
    """Join day names as "A", "A and B" or "A, B and C"."""
    if len(days) <= 1:
        return "".join(days)
    return f"{', '.join(days[:-1])} and {days[-1]}"
