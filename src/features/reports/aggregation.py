"""Count tables and weekday statistics over session records."""

from collections import Counter
from collections.abc import Mapping, Sequence

from .metrics import SessionExtraction
from .models import HOURS, WEEKDAYS, PeakTrough, PeriodMetrics, SessionRecord


def group_by_and_count(records: Sequence[SessionRecord], key: str) -> dict:
    """
    Count records per hour or per weekday.

    Hourly tables always hold hours 0-23 and weekday tables always hold all
    seven day names in Monday..Sunday order, zero-filled.
    """
    if key == "hour":
        categories = HOURS
    elif key == "weekday":
        categories = WEEKDAYS
    else:
        raise ValueError(f"Unsupported grouping key: {key}")

    counts = Counter(getattr(record, key) for record in records)
    return {category: counts.get(category, 0) for category in categories}


def filter_records(records: Sequence[SessionRecord], weekend: bool) -> list[SessionRecord]:
    """Keep only weekend or only weekday records."""
    return [record for record in records if record.is_weekend == weekend]


def split_weekday_weekend(records: Sequence[SessionRecord]) -> tuple[int, int]:
    """Return (weekday_total, weekend_total)."""
    weekend = sum(1 for record in records if record.is_weekend)
    return len(records) - weekend, weekend


def compute_peak_trough(daily_counts: Mapping[str, int]) -> PeakTrough:
    """
    Find the busiest and quietest weekdays, scanning Monday to Sunday.

    A higher count replaces the peak set and an equal count joins it. The
    trough is a single day: the first one to reach the lowest count.
    """
    first = WEEKDAYS[0]
    peak_days = [first]
    peak_count = daily_counts[first]
    trough_day = first
    trough_count = daily_counts[first]

    for day in WEEKDAYS[1:]:
        count = daily_counts[day]
        if count > peak_count:
            peak_days = [day]
            peak_count = count
        elif count == peak_count:
            peak_days.append(day)
        if count < trough_count:
            trough_day = day
            trough_count = count

    return PeakTrough(
        peak_days=peak_days,
        peak_count=peak_count,
        trough_day=trough_day,
        trough_count=trough_count,
    )


def build_period_metrics(month_name: str, year: int, extraction: SessionExtraction) -> PeriodMetrics:
    """Aggregate one month's extraction into PeriodMetrics."""
    weekday_total, weekend_total = split_weekday_weekend(extraction.records)
    return PeriodMetrics(
        month_name=month_name,
        year=year,
        total_questions=extraction.total_questions,
        total_sessions=len(extraction.records),
        weekday_total=weekday_total,
        weekend_total=weekend_total,
        daily_counts=group_by_and_count(extraction.records, "weekday"),
        hourly_counts=group_by_and_count(extraction.records, "hour"),
    )
